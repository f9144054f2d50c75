import os
import logging

from .auth_utils import get_email_from_jwt_cookie
from .db_utils import get_db

ADMIN_COLLECTION = os.getenv("DASHBOARD_ADMIN_COLLECTION", "admin_users")
ADMIN_ROLES = ("admin", "super_admin")


def get_allowed_emails(env_var_name: str) -> set[str]:
    raw = os.getenv(env_var_name, "")
    return {e.strip().lower() for e in raw.split(",") if e.strip()}


def _check_db_role(email: str, db=None) -> bool:
    try:
        db = db if db is not None else get_db()
        user = db[ADMIN_COLLECTION].find_one({"email": email})
    except Exception as e:
        logging.error(f"RBAC DB check failed: {e}")
        return False

    if not user:
        return False
    roles = user.get("roles", [])
    return any(r in roles for r in ADMIN_ROLES)


def is_admin(email: str, db=None) -> bool:
    if not email: return False
    email = email.lower()

    # Check Env
    admins = get_allowed_emails("DASHBOARD_ADMIN_EMAILS")
    if email in admins:
        return True

    # Check DB
    return _check_db_role(email, db)


def _principal_header_trusted() -> bool:
    # App Service Authentication strips client-supplied x-ms-* headers; without it they are spoofable.
    return (
        os.getenv("WEBSITE_AUTH_ENABLED", "").strip().lower() in ("true", "1") or
        os.getenv("DEBUG_RBAC") == "1"
    )


def get_user_email(req) -> str | None:
    # 1. x-ms-client-principal-name, only behind App Service Auth
    if _principal_header_trusted():
        val = req.headers.get("x-ms-client-principal-name")
        if val: return val

    # 2. JWT from cookie / bearer token issued by the dashboard login
    val = get_email_from_jwt_cookie(req)
    if val: return val

    # 3. Dev/Test-only: Allow X-User-Email
    # CRITICAL: In Production, ignore X-User-Email to prevent spoofing
    is_dev_or_test = (
        os.getenv("AZURE_FUNCTIONS_ENVIRONMENT") != "Production" or
        os.getenv("DEBUG_RBAC") == "1"
    )

    if is_dev_or_test:
        val = req.headers.get("X-User-Email")
        if val: return val

    return None
