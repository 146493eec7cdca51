"""
Firebase Admin SDK setup.
Identity is resolved outside the core: a verified Firebase ID token yields
the uid that is mapped to a local User.
"""
import json
import os
import logging
from typing import Optional
import firebase_admin
from firebase_admin import credentials, auth, exceptions
from reelforge.config import settings

logger = logging.getLogger(__name__)


_firebase_app: Optional[firebase_admin.App] = None


def _load_credentials(value: str) -> credentials.Base:
    """FIREBASE_CREDENTIALS_JSON holds either a file path or the JSON itself."""
    if os.path.exists(value):
        logger.info(f"Loaded Firebase credentials from file: {value}")
        return credentials.Certificate(value)
    try:
        return credentials.Certificate(json.loads(value))
    except json.JSONDecodeError as e:
        raise ValueError("FIREBASE_CREDENTIALS_JSON must be a valid file path or JSON string") from e


def initialize_firebase() -> None:
    """
    Initialize the Firebase Admin SDK once.
    Falls back to application default credentials when no JSON is configured.
    """
    global _firebase_app

    if _firebase_app is not None:
        return

    if not settings.firebase_project_id:
        raise ValueError("FIREBASE_PROJECT_ID must be set")

    if settings.firebase_credentials_json:
        cred = _load_credentials(settings.firebase_credentials_json)
    else:
        cred = credentials.ApplicationDefault()

    _firebase_app = firebase_admin.initialize_app(
        cred,
        {"projectId": settings.firebase_project_id}
    )


def verify_firebase_token(token: str) -> dict:
    """
    Verify a Firebase ID token and return its claims.

    Raises:
        RuntimeError: If the SDK was never initialized
        ValueError: If the token is invalid, expired or revoked
    """
    if _firebase_app is None:
        raise RuntimeError("Firebase Admin SDK not initialized. Call initialize_firebase() first.")

    try:
        return auth.verify_id_token(token)
    except ValueError:
        raise
    except exceptions.FirebaseError as e:
        raise ValueError(f"Token verification failed: {e}") from e
