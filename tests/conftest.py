"""
Pytest configuration and fixtures.

Unit tests run against an in-memory mongomock database. The live suite
(tests/live) needs a real MongoDB and refuses to run against production.
"""

import json
import os

import azure.functions as func
import mongomock
import pytest
from pymongo import MongoClient

PROD_DB_NAME = "dwits"
TEST_DB_NAME = "dwits_test"


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    client = mongomock.MongoClient()
    yield client[TEST_DB_NAME]
    client.close()


@pytest.fixture
def seed_month(db):
    """Insert leaderboard rows for a month: seed_month("2026-01", row, row, ...)."""
    def _seed(month, *rows):
        docs = [{"month": month, **row} for row in rows]
        if docs:
            db.leader_board.insert_many(docs)
        return docs
    return _seed


def _make_request(method="POST", url="/api/dashboard-data", body=None, headers=None, params=None):
    raw = b""
    if body is not None:
        raw = body if isinstance(body, bytes) else json.dumps(body).encode()
    return func.HttpRequest(
        method=method,
        url=url,
        headers=headers or {},
        params=params or {},
        route_params={},
        body=raw,
    )


def _response_json(resp: func.HttpResponse):
    return json.loads(resp.get_body())


@pytest.fixture
def make_request():
    """Build an azure.functions.HttpRequest; dict bodies are JSON encoded."""
    return _make_request


@pytest.fixture
def response_json():
    return _response_json


# ---------- Live MongoDB ----------

@pytest.fixture(scope="session")
def live_db():
    """Real MongoDB for the live suite; skipped unless a connection string is set."""
    mongo_uri = os.getenv("MONGODB_URI") or os.getenv("MongoDb-Connection-String")
    if not mongo_uri:
        pytest.skip("MONGODB_URI not set")

    db_name = os.getenv("DASHBOARD_DB_NAME", PROD_DB_NAME)
    if db_name == PROD_DB_NAME:
        pytest.fail(
            f"SAFETY GUARD: Tests cannot run against production DB. "
            f"Set DASHBOARD_DB_NAME={TEST_DB_NAME} in environment."
        )

    client = MongoClient(mongo_uri, serverSelectionTimeoutMS=5000)
    db = client[db_name]
    yield db
    client.close()
