import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth as firebase_auth
from sqlalchemy.orm import Session

from sensor_relay.core.settings import settings
from sensor_relay.db import get_db
from sensor_relay.exceptions import UnauthorizedException, ForbiddenException
from sensor_relay.services.store import EventStore, SqlAlchemyEventStore, FirestoreEventStore

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Development tokens, never honoured in production
MOCK_TOKENS = {
    "mock-user-token": "user-1",
    "mock-user-2-token": "user-2",
}


def get_store(db: Session = Depends(get_db)) -> EventStore:
    """Store for the configured backend."""
    if settings.store_backend == "firestore":
        return FirestoreEventStore()
    return SqlAlchemyEventStore(db)


def verify_token(token: str) -> str:
    """Return the uid carried by a Firebase ID token."""
    if not settings.is_production and token in MOCK_TOKENS:
        return MOCK_TOKENS[token]
    try:
        decoded_token = firebase_auth.verify_id_token(token)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as e:
        logger.info(f"Rejected ID token: {e}")
        raise UnauthorizedException("Invalid or expired Firebase token")
    return decoded_token["uid"]


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: EventStore = Depends(get_store),
) -> str:
    """Authenticated uid; the status document is created on first sign-in."""
    if credentials is None:
        raise UnauthorizedException("Authorization header missing or invalid")
    user_id = verify_token(credentials.credentials)
    store.ensure_user(user_id)
    return user_id


def check_event_caller(request: Request, user_id: str) -> None:
    """Enforce REQUIRE_EVENT_AUTH for event submissions.

    Devices post events without credentials by default; when enabled the bearer
    token must belong to the user the event is addressed to.
    """
    if not settings.require_event_auth:
        return
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise UnauthorizedException("Authorization header missing or invalid")
    caller = verify_token(header.split(" ", 1)[1])
    if caller != user_id:
        raise ForbiddenException("Token does not belong to userId")
