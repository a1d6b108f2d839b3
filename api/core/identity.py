"""
Identity provider adapter.

Authentication records live in Firebase Auth; this module only exposes the
single operation the backend needs (removing an account).
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Optional, Protocol

import firebase_admin
from firebase_admin import auth, credentials

from .config import Settings

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "fuelgo-admin"


class IdentityProvider(Protocol):
    def delete_user(self, uid: str) -> None:
        ...


class FirebaseIdentityProvider:
    """Deletes Firebase Auth users through the Admin SDK.

    The Admin SDK app is initialised on first use so that importing the
    application never requires credentials.
    """

    def __init__(self, service_account_json: str = "") -> None:
        self._service_account_json = service_account_json or ""
        self._app: Optional[firebase_admin.App] = None
        self._lock = threading.Lock()

    def _credential(self):
        raw = self._service_account_json.strip()
        if not raw:
            return credentials.ApplicationDefault()
        return credentials.Certificate(json.loads(raw))

    def _get_app(self) -> firebase_admin.App:
        with self._lock:
            if self._app is None:
                try:
                    self._app = firebase_admin.get_app(FIREBASE_APP_NAME)
                except ValueError:
                    self._app = firebase_admin.initialize_app(self._credential(), name=FIREBASE_APP_NAME)
            return self._app

    def delete_user(self, uid: str) -> None:
        auth.delete_user(uid, app=self._get_app())
        logger.info("Firebase user %s deleted", uid)


def build_identity_provider(settings: Settings) -> FirebaseIdentityProvider:
    return FirebaseIdentityProvider(settings.firebase_service_account)
