import json
import azure.functions as func
import os
from datetime import datetime


def cors_headers():
    return {
        "Access-Control-Allow-Origin": os.getenv("ALLOWED_ORIGIN", ""),
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


def json_serial(obj):
    """JSON serializer for objects not serializable by default json code"""
    if isinstance(obj, datetime):
        iso = obj.isoformat()
        if obj.tzinfo is None:
            return iso + "Z"
        return iso
    return str(obj)


def respond(body=None, status=200):
    return func.HttpResponse(
        json.dumps(body, default=json_serial) if body is not None else "",
        status_code=status,
        mimetype="application/json",
        headers=cors_headers()
    )


def options_response():
    return func.HttpResponse("", status_code=204, headers=cors_headers())


def get_json_body(req: func.HttpRequest) -> dict | None:
    """Parsed JSON object body, {} for an empty body, None when the body is not a JSON object."""
    if not req.get_body():
        return {}
    try:
        body = req.get_json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None
