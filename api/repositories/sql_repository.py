"""High-level data access helpers backed by SQLAlchemy."""
from __future__ import annotations

import secrets
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update

from api.db.models import ApprovalAction, ApprovalStatus, ApprovalToken, User
from api.db.session import get_session


class ApprovalConflictError(Exception):
    """The token or user changed between the initial read and the commit."""


class SQLRepository:
    """CRUD helpers wrapping the SQLAlchemy session."""

    # -------------------------- users --------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        with get_session() as session:
            return session.get(User, user_id)

    def create_user(
        self,
        user_id: str,
        *,
        email: str | None = None,
        name: str | None = None,
        station_name: str | None = None,
        approval_status: str = ApprovalStatus.PENDING.value,
    ) -> User:
        entity = User(
            id=user_id,
            email=email,
            name=name,
            station_name=station_name,
            approval_status=approval_status,
            email_notification_sent=False,
        )
        with get_session() as session:
            session.add(entity)
            session.commit()
            session.refresh(entity)
            return entity

    def update_user_status(self, user_id: str, approval_status: str) -> None:
        with get_session() as session:
            stmt = update(User).where(User.id == user_id).values(approval_status=approval_status, updated_at=func.now())
            session.execute(stmt)
            session.commit()

    # -------------------------- approval tokens --------------------------
    def create_approval_token(
        self,
        user_id: str | None,
        *,
        token: Optional[str] = None,
        expires_at: datetime | None = None,
        used: bool = False,
    ) -> str:
        token_value = token or secrets.token_urlsafe(24)
        entity = ApprovalToken(token=token_value, user_id=user_id, expires_at=expires_at, used=used)
        with get_session() as session:
            session.add(entity)
            session.commit()
        return token_value

    def get_approval_token(self, token: str) -> Optional[ApprovalToken]:
        with get_session() as session:
            return session.get(ApprovalToken, token)

    def expire_approval_token(self, token: str) -> None:
        """Mark an expired token as used so it is permanently inert."""
        with get_session() as session:
            stmt = (
                update(ApprovalToken)
                .where(ApprovalToken.token == token, ApprovalToken.used.is_(False))
                .values(used=True, used_at=func.now())
            )
            session.execute(stmt)
            session.commit()

    def commit_approval_decision(
        self,
        token: str,
        user_id: str,
        action: ApprovalAction,
        reason: str | None = None,
    ) -> None:
        """
        Apply the decision in a single transaction.

        Token and user are re-read (row-locked where the backend supports it)
        and re-validated; the updates themselves are conditional on the same
        guards. Raises ApprovalConflictError and rolls back when either guard
        no longer holds.
        """
        status = action.resulting_status
        with get_session() as session:
            with session.begin():
                fresh_token = session.execute(
                    select(ApprovalToken).where(ApprovalToken.token == token).with_for_update()
                ).scalar_one_or_none()
                if fresh_token is None or fresh_token.used:
                    raise ApprovalConflictError("Token invalid or already used")

                fresh_user = session.execute(
                    select(User).where(User.id == user_id).with_for_update()
                ).scalar_one_or_none()
                if fresh_user is None or fresh_user.approval_status != ApprovalStatus.PENDING.value:
                    raise ApprovalConflictError("User not pending")

                values = {
                    "approval_status": status.value,
                    "email_notification_sent": True,
                    "approval_processed_via": "emailLink",
                    "approval_processed_at": func.now(),
                    "approval_action": action.value,
                    "updated_at": func.now(),
                }
                if action is ApprovalAction.APPROVE:
                    values["approved_at"] = func.now()
                else:
                    values["request_submission_at"] = func.now()
                    if reason:
                        values["rejection_reason"] = reason
                user_result = session.execute(
                    update(User)
                    .where(User.id == user_id, User.approval_status == ApprovalStatus.PENDING.value)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if user_result.rowcount != 1:
                    raise ApprovalConflictError("User not pending")

                token_result = session.execute(
                    update(ApprovalToken)
                    .where(ApprovalToken.token == token, ApprovalToken.used.is_(False))
                    .values(used=True, used_at=func.now(), action=action.value)
                    .execution_options(synchronize_session=False)
                )
                if token_result.rowcount != 1:
                    raise ApprovalConflictError("Token invalid or already used")
