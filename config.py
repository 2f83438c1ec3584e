"""
Runtime configuration read from the environment (and a .env file in the
working directory, when present; real environment variables win).

- MONGODB_URI (or DATABASE_URL): MongoDB connection string
- DATABASE_NAME: database holding every collection
- FIREBASE_SERVICE_KEY: service-account JSON, raw or base64-encoded
- PORT / LOG_LEVEL
"""

import base64
import binascii
import json
import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv

load_dotenv(find_dotenv(usecwd=True))

MONGODB_URI = os.getenv("MONGODB_URI") or os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "homeNestDB")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class ConfigurationError(RuntimeError):
    pass


def load_service_account(raw: Optional[str] = None) -> dict:
    """Decode the Firebase service-account credential.

    Hosting dashboards often mangle multi-line JSON, so a base64 copy of the
    file is accepted as well.
    """
    if raw is None:
        raw = os.getenv("FIREBASE_SERVICE_KEY")
    if not raw or not raw.strip():
        raise ConfigurationError("FIREBASE_SERVICE_KEY is not set")

    raw = raw.strip()
    if not raw.startswith("{"):
        try:
            raw = base64.b64decode(raw, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ConfigurationError("FIREBASE_SERVICE_KEY is neither JSON nor base64") from exc

    try:
        account = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError("FIREBASE_SERVICE_KEY is not valid JSON") from exc
    if not isinstance(account, dict):
        raise ConfigurationError("FIREBASE_SERVICE_KEY must be a JSON object")
    return account
