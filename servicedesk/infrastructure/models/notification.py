"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, JSON, String

from servicedesk.infrastructure.database import Base
from servicedesk.utils import now_in_app_naive_datetime


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"
    __table_args__ = (
        Index("ix_notification_recipient_status", "recipient_id", "status"),
        Index("ix_notification_recipient_created", "recipient_id", "created_at"),
        Index("ix_notification_related", "related_entity_kind", "related_entity_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    recipient_id = Column(Integer, ForeignKey("user.id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("user.id"), nullable=True)
    title = Column(String(100), nullable=False)
    message = Column(String(500), nullable=False)
    category = Column(String(20), nullable=False, default="SYSTEM")
    priority = Column(String(20), nullable=False, default="MEDIUM")
    status = Column(String(20), nullable=False, default="UNREAD")
    delivery_status = Column(String(20), nullable=False, default="PENDING")
    channels = Column(JSON, nullable=False, default=list)
    related_entity_kind = Column(String(20), nullable=True)
    related_entity_id = Column(String(64), nullable=True)
    link = Column(String(500), nullable=True)
    actions = Column(JSON, nullable=False, default=list)
    extra = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime(), nullable=True)
    read_at = Column(DateTime(), nullable=True)
    expires_at = Column(DateTime(), nullable=False, index=True)


__all__ = ["NotificationModel"]
