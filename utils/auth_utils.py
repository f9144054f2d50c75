import os
import logging
import jwt
from http.cookies import SimpleCookie
import azure.functions as func
from cryptography.hazmat.primitives import serialization


def get_public_key():
    """
    Retrieves and formats the public key from environment variables.
    """
    public_key_str = os.getenv("JWT_PUBLIC_KEY")
    if not public_key_str:
        logging.warning("JWT_PUBLIC_KEY environment variable is not set.")
        return None

    # Ensure correct PEM format if possibly stripped or has escaped newlines
    if "\\n" in public_key_str:
        public_key_str = public_key_str.replace("\\n", "\n")

    if not public_key_str.startswith("-----BEGIN PUBLIC KEY-----"):
        public_key_str = f"-----BEGIN PUBLIC KEY-----\n{public_key_str}\n-----END PUBLIC KEY-----"

    try:
        return serialization.load_pem_public_key(public_key_str.encode())
    except Exception as e:
        logging.error(f"Failed to load public key: {e}")
        return None


def _email_from_payload(payload: dict) -> str | None:
    return payload.get("email") or payload.get("preferred_username") or payload.get("upn")


def verify_jwt_token(token: str) -> dict | None:
    """
    Verifies the JWT token using RS256 and the configured public key.
    Returns the decoded payload if valid, None otherwise.
    """
    public_key = get_public_key()
    if not public_key:
        return None

    try:
        return jwt.decode(
            token,
            public_key,
            algorithms=["RS256"],
            options={"verify_aud": False, "verify_iss": False}
        )
    except jwt.ExpiredSignatureError:
        logging.warning("JWT Token has expired.")
    except jwt.InvalidTokenError as e:
        logging.warning(f"Invalid JWT Token: {e}")

    return None


def get_email_from_jwt_cookie(req: func.HttpRequest) -> str | None:
    """
    Extracts the JWT from the session cookie (or a Bearer header) and returns the email if valid.
    """
    cookie_header = req.headers.get("Cookie")
    if not cookie_header:
        auth_header = req.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            payload = verify_jwt_token(auth_header.split(" ", 1)[1])
            if payload:
                return _email_from_payload(payload)
        return None

    cookie_name = os.getenv("JWT_COOKIE_NAME", "session")

    simple_cookie = SimpleCookie()
    try:
        simple_cookie.load(cookie_header)
    except Exception as e:
        logging.error(f"Error parsing cookies: {e}")
        return None

    if cookie_name in simple_cookie:
        payload = verify_jwt_token(simple_cookie[cookie_name].value)
        if payload:
            return _email_from_payload(payload)

    return None
