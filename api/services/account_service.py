"""Account removal through the identity provider."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import secrets

from api.core.identity import IdentityProvider

logger = logging.getLogger(__name__)


class AccountDeletionError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingUserIdError(AccountDeletionError):
    status_code = 400


class AdminTokenRejectedError(AccountDeletionError):
    status_code = 403


class IdentityProviderError(AccountDeletionError):
    status_code = 500


@dataclass
class AccountService:
    """Deletes authentication records. Irreversible; not retried."""

    identity_provider: IdentityProvider
    admin_token: str = ""

    def _check_admin_token(self, supplied: object) -> None:
        if not self.admin_token:
            if supplied:
                logger.warning("adminToken supplied but ADMIN_DELETE_TOKEN is not configured; token not verified")
            return
        if not isinstance(supplied, str) or not secrets.compare_digest(self.admin_token.encode(), supplied.encode()):
            raise AdminTokenRejectedError("Invalid admin token")

    def delete_account(self, user_id: object, admin_token: str | None = None) -> str:
        uid = user_id.strip() if isinstance(user_id, str) else ""
        if not uid:
            raise MissingUserIdError("userId is required")
        self._check_admin_token(admin_token)
        try:
            self.identity_provider.delete_user(uid)
        except Exception as exc:
            logger.exception("Error deleting user %s", uid)
            raise IdentityProviderError(str(exc)) from exc
        return f"User {uid} deleted successfully"
