"""
Station-owner approval links.

An admin receives an e-mail with one-time links (approve / request
resubmission). Clicking one lands here: the token and the pending user are
validated, the owner is notified and only then the decision is persisted.

The two phases are not compensable: once the owner e-mail is out, a failed
commit (token or user changed concurrently) is reported as
NotifiedButNotCommittedError and logged for manual reconciliation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Callable, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from api.core.mailer import Mailer
from api.db.models import ApprovalAction, ApprovalStatus, ApprovalToken, User
from api.repositories.sql_repository import ApprovalConflictError, SQLRepository

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"

_email_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


class ApprovalError(Exception):
    """Base class for approval-link failures; carries the HTTP status to answer with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidApprovalRequestError(ApprovalError):
    status_code = 400


class TokenNotFoundError(ApprovalError):
    status_code = 404


class TokenGoneError(ApprovalError):
    status_code = 410


class UserNotEligibleError(ApprovalError):
    status_code = 400


class NotificationError(ApprovalError):
    status_code = 500


class NotifiedButNotCommittedError(ApprovalError):
    """The owner e-mail was delivered but the transactional commit was rejected."""

    status_code = 500


@dataclass
class OwnerEmail:
    subject: str
    html_body: str
    text_body: str


@dataclass
class ApprovalOutcome:
    user_id: str
    status: ApprovalStatus
    email: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_action(raw: str | None) -> Optional[ApprovalAction]:
    value = (raw or "").strip().lower()
    try:
        return ApprovalAction(value)
    except ValueError:
        return None


@dataclass
class ApprovalService:
    """Validates an approval link, notifies the owner, then commits the decision."""

    repository: SQLRepository
    mailer: Optional[Mailer] = None
    app_name: str = "FuelGo"
    clock: Callable[[], datetime] = field(default=_utcnow)

    # -------------------------------------- helpers --------------------------------------
    def _token_expired(self, expires_at: datetime | None) -> bool:
        if expires_at is None:
            return False
        # Naive values come back from backends without tz support; they are stored as UTC.
        normalized = expires_at.astimezone(timezone.utc) if expires_at.tzinfo else expires_at.replace(tzinfo=timezone.utc)
        return normalized < self.clock()

    def _load_token(self, token: str) -> ApprovalToken:
        entity = self.repository.get_approval_token(token)
        if entity is None:
            raise TokenNotFoundError("Token not found")
        if entity.used:
            raise TokenGoneError("Token used")
        if self._token_expired(entity.expires_at):
            self.repository.expire_approval_token(token)
            logger.info("Approval token %s expired; marked as used", token)
            raise TokenGoneError("Token expired")
        return entity

    def _load_pending_user(self, entity: ApprovalToken) -> User:
        user_id = (entity.user_id or "").strip()
        if not user_id:
            raise UserNotEligibleError("Token missing userId")
        user = self.repository.get_user(user_id)
        if user is None:
            raise UserNotEligibleError("User not found")
        if user.approval_status != ApprovalStatus.PENDING.value:
            raise UserNotEligibleError("User not pending")
        if not (user.email or "").strip():
            raise UserNotEligibleError("No owner email found")
        return user

    def compose_owner_email(self, action: ApprovalAction, user: User, reason: str | None = None) -> OwnerEmail:
        owner_name = user.name or "Owner"
        station_name = user.station_name or "Unknown Station"
        context = {
            "app_name": self.app_name,
            "owner_name": owner_name,
            "station_name": station_name,
            "reason": reason,
        }
        if action is ApprovalAction.APPROVE:
            subject = f"{self.app_name} Registration APPROVED - Welcome to {self.app_name}!"
            html_body = _email_templates.get_template("emails/approved.html").render(**context)
            text_body = (
                f"Dear {owner_name},\n\n"
                f"Your gas station registration for {station_name} has been APPROVED.\n"
                f"You can now log into your owner account on {self.app_name}.\n\n"
                f"The {self.app_name} Team"
            )
        else:
            subject = f"{self.app_name} Registration - Document Review Required"
            html_body = _email_templates.get_template("emails/resubmission.html").render(**context)
            reason_line = f"Reason: {reason}\n" if reason else ""
            text_body = (
                f"Dear {owner_name},\n\n"
                f"Your registration for {station_name} requires document review.\n"
                f"{reason_line}"
                "Please resubmit with clearer documents.\n\n"
                f"The {self.app_name} Team"
            )
        return OwnerEmail(subject=subject, html_body=html_body, text_body=text_body)

    def _notify_owner(self, to_email: str, message: OwnerEmail) -> None:
        if self.mailer is None:
            logger.warning("Mail transport not configured; skipping owner e-mail to %s", to_email)
            sent = False
        else:
            try:
                sent = self.mailer.send_email(message.subject, to_email, message.html_body, message.text_body)
            except Exception:
                logger.exception("Error sending owner e-mail to %s", to_email)
                sent = False
        if not sent:
            raise NotificationError("Failed to send owner notification email. Status remains pending.")
        logger.info("Owner confirmation e-mail sent to %s", to_email)

    # -------------------------------------- use case --------------------------------------
    def process(self, token: str | None, action: str | None, reason: str | None = None) -> ApprovalOutcome:
        token_value = (token or "").strip()
        parsed = parse_action(action)
        if not token_value or parsed is None:
            raise InvalidApprovalRequestError("Invalid request")
        reason_value = (reason or "").strip() or None
        if parsed is ApprovalAction.APPROVE:
            reason_value = None

        entity = self._load_token(token_value)
        user = self._load_pending_user(entity)
        owner_email = user.email.strip()

        # phase 1: notify
        self._notify_owner(owner_email, self.compose_owner_email(parsed, user, reason_value))

        # phase 2: commit
        try:
            self.repository.commit_approval_decision(token_value, user.id, parsed, reason_value)
        except ApprovalConflictError as exc:
            logger.error(
                "Owner %s notified of %s but commit was rejected (token=%s, user=%s): %s",
                owner_email,
                parsed.value,
                token_value,
                user.id,
                exc,
            )
            raise NotifiedButNotCommittedError(f"Server error: {exc}") from exc

        status = parsed.resulting_status
        logger.info("User %s marked %s via approval link", user.id, status.value)
        return ApprovalOutcome(user_id=user.id, status=status, email=owner_email)
