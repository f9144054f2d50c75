import os
import logging
import pymongo
from azure.identity import DefaultAzureCredential
from azure.keyvault.secrets import SecretClient

# Global cache for the MongoDB client to enable connection pooling across invocations
_CLIENT_CACHE = None

# Simple in-process cache for Key Vault secrets
_SECRET_CACHE: dict[str, str] = {}

CONNECTION_STRING_KEYS = [
    "MONGODB_URI",
    "MongoDb-Connection-String",
    "MONGODB_CONNECTION_STRING",
    "CUSTOMCONNSTR_MongoDb-Connection-String",
]

# Bounded timeouts so a slow cluster cannot hang a dashboard request
CLIENT_OPTIONS = {
    "serverSelectionTimeoutMS": 10000,
    "socketTimeoutMS": 45000,
    "retryWrites": True,
    "retryReads": True,
    "maxPoolSize": 10,
}


def get_secret(name: str, default: str | None = None) -> str | None:
    """
    Return a secret from Azure Key Vault when KEY_VAULT_URL is configured.
    Azure KV names cannot contain underscores, so a hyphenated variant is tried too.
    Values are cached per-process.
    """
    if name in _SECRET_CACHE:
        return _SECRET_CACHE[name]

    vault_url = os.getenv("KEY_VAULT_URL")
    if not vault_url:
        return default

    lookup_names = [name]
    if "_" in name:
        lookup_names.append(name.replace("_", "-"))

    try:
        client = SecretClient(vault_url=vault_url, credential=DefaultAzureCredential())
        for _nm in lookup_names:
            try:
                secret = client.get_secret(_nm)
            except Exception:
                continue
            val = getattr(secret, "value", None)
            if isinstance(val, str):
                _SECRET_CACHE[name] = val
                return val
    except Exception as e:
        logging.warning("Secrets: failed to fetch '%s' from Key Vault: %s", name, e)

    return default


def get_connection_string() -> str:
    for key in CONNECTION_STRING_KEYS:
        val = os.getenv(key)
        if val:
            return val

    val = get_secret("MONGODB_URI")
    if val:
        return val

    # CRITICAL: Prevent fallback to localhost:27017
    error_msg = f"MongoDB Connection String not found in environment variables. Checked: {CONNECTION_STRING_KEYS}"
    logging.critical(error_msg)
    raise RuntimeError(error_msg)


def get_db_client(**kwargs):
    """
    Returns a PyMongo client using the connection string from environment variables.
    Uses a global cache to reuse the client across Azure Function invocations.
    """
    global _CLIENT_CACHE

    if _CLIENT_CACHE:
        return _CLIENT_CACHE

    uri = get_connection_string()
    options = {**CLIENT_OPTIONS, **kwargs}

    try:
        client = pymongo.MongoClient(uri, **options)
        _CLIENT_CACHE = client
        return client
    except Exception as e:
        logging.critical(f"Failed to create MongoClient: {e}")
        raise


def get_db(db_name_env="DASHBOARD_DB_NAME", default_db="dwits"):
    """
    Returns the database object.
    """
    client = get_db_client()
    db_name = os.getenv(db_name_env, os.getenv("DB_NAME", default_db))
    return client[db_name]
