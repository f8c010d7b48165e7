import os
import json
import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials

from sensor_relay.core.settings import settings

logger = logging.getLogger(__name__)


def _load_credentials() -> Optional[credentials.Certificate]:
    """Service account from FIREBASE_CERT_JSON, else from the cert file on disk."""
    fb_json = os.environ.get("FIREBASE_CERT_JSON")
    if fb_json:
        try:
            return credentials.Certificate(json.loads(fb_json))
        except (ValueError, IOError) as e:
            # the file may still work
            logger.warning(f"Ignoring FIREBASE_CERT_JSON: {e}")

    cert_path = settings.firebase_cert_path
    if cert_path and os.path.exists(cert_path):
        try:
            return credentials.Certificate(cert_path)
        except (ValueError, IOError) as e:
            logger.warning(f"Ignoring Firebase cert at {cert_path}: {e}")
    return None


def init_firebase() -> bool:
    """Initialize the default Firebase app used for messaging, auth and Firestore.

    Missing credentials are not fatal: the API still serves requests, every
    push is reported as ``messaging/not-configured`` and only mock tokens
    authenticate.

    Returns:
        True when a Firebase app is available afterwards.
    """
    if firebase_admin._apps:
        return True

    cred = _load_credentials()
    if cred is None:
        logger.warning("No Firebase credentials found; skipping Firebase initialization.")
        return False

    firebase_admin.initialize_app(cred)
    logger.info(f"Firebase initialized for project {cred.project_id}")
    return True
