"""
Bearer-token verification (Firebase) and admin-role lookup.

Routes declare what they need with ``Depends(require_token)`` or
``Depends(require_admin)``; the guards turn auth failures into 401/403
before any store mutation runs.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

import firebase_admin
from fastapi import Depends, Header, HTTPException
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials
from pymongo.database import Database

import config
from config import ConfigurationError
from database import USERS, get_db, get_document

logger = logging.getLogger(__name__)

MISSING_TOKEN_MESSAGE = "Unauthorized. Token not found!"
INVALID_TOKEN_MESSAGE = "Unauthorized access."
DENIED_MESSAGE = "Access denied. Admin only."

_firebase_lock = threading.Lock()


class AuthError(Exception):
    status_code = 401
    message = INVALID_TOKEN_MESSAGE


class MissingToken(AuthError):
    message = MISSING_TOKEN_MESSAGE


class InvalidToken(AuthError):
    pass


class Denied(AuthError):
    status_code = 403
    message = DENIED_MESSAGE


class IdentityServiceError(Exception):
    """The identity service could not be reached to judge a token."""


@dataclass
class Identity:
    uid: str
    email: str
    claims: dict = field(default_factory=dict)


def get_firebase_app() -> firebase_admin.App:
    with _firebase_lock:
        try:
            return firebase_admin.get_app()
        except ValueError:
            pass
        try:
            cred = credentials.Certificate(config.load_service_account())
        except (ValueError, OSError) as exc:
            raise ConfigurationError("FIREBASE_SERVICE_KEY is not a usable service-account credential") from exc
        logger.info("Initializing Firebase Admin app")
        return firebase_admin.initialize_app(cred)


def decode_token(token: str) -> dict:
    return firebase_auth.verify_id_token(token, app=get_firebase_app())


def bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.strip():
        raise MissingToken()
    parts = authorization.split()
    if len(parts) < 2:
        raise InvalidToken()
    return parts[1]


def verify_token(authorization: Optional[str]) -> Identity:
    """Validate the Authorization header against Firebase.

    Every call goes back to Firebase; verdicts are never cached.
    """
    token = bearer_token(authorization)
    try:
        claims = decode_token(token)
    except firebase_auth.CertificateFetchError as exc:
        raise IdentityServiceError("could not fetch Firebase signing keys") from exc
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.UserDisabledError) as exc:
        logger.warning("Rejected ID token: %s", exc.__class__.__name__)
        raise InvalidToken() from exc

    email = claims.get("email")
    if not email:
        logger.warning("Rejected ID token without an email claim")
        raise InvalidToken()
    return Identity(uid=claims.get("uid") or claims.get("sub", ""), email=email, claims=claims)


def authorize(identity: Identity, db: Database) -> dict:
    user = get_document(db, USERS, {"email": identity.email})
    if not user or user.get("role") != "admin":
        logger.info("Admin access denied for %s", identity.email)
        raise Denied()
    return user


def require_token(authorization: Optional[str] = Header(None)) -> Identity:
    try:
        return verify_token(authorization)
    except AuthError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


def require_admin(
    identity: Identity = Depends(require_token),
    db: Database = Depends(get_db),
) -> dict:
    try:
        return authorize(identity, db)
    except Denied as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message)


def is_admin(identity: Identity, db: Database) -> bool:
    try:
        authorize(identity, db)
    except Denied:
        return False
    return True
