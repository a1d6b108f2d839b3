"""SQLAlchemy models for pending station-owner registrations and approval links."""
from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    String,
    Text,
    func,
)

from .session import Base


class ApprovalStatus(str, enum.Enum):
    """Values stored in ``users.approval_status``."""

    PENDING = "pending"
    APPROVED = "Approved"
    RESUBMISSION = "Resubmission"


class ApprovalAction(str, enum.Enum):
    APPROVE = "approve"
    RESUBMISSION = "resubmission"

    @property
    def resulting_status(self) -> ApprovalStatus:
        if self is ApprovalAction.APPROVE:
            return ApprovalStatus.APPROVED
        return ApprovalStatus.RESUBMISSION


class User(Base):
    __tablename__ = "users"

    id = Column(String(128), primary_key=True)
    email = Column(String(255), nullable=True)
    name = Column(String(255), nullable=True)
    station_name = Column(String(255), nullable=True)
    approval_status = Column(String(32), default=ApprovalStatus.PENDING.value, nullable=False)
    email_notification_sent = Column(Boolean, default=False, nullable=False)
    approval_processed_via = Column(String(32), nullable=True)
    approval_processed_at = Column(DateTime(timezone=True), nullable=True)
    approval_action = Column(String(32), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    request_submission_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class ApprovalToken(Base):
    __tablename__ = "approval_tokens"

    token = Column(String(255), primary_key=True)
    user_id = Column(String(128), nullable=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    used = Column(Boolean, default=False, nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)
    action = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
