"""NotificationOutbox ORM model — notifications enqueued by domain writes."""
import uuid
import enum
from sqlalchemy import Column, String, Text, Integer, DateTime, Enum as SAEnum
from sqlalchemy.sql import func
from app.database import Base


class OutboxStatus(str, enum.Enum):
    pending = "pending"
    sent = "sent"
    failed = "failed"


class NotificationOutbox(Base):
    __tablename__ = "notification_outbox"

    notification_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    recipient_id = Column(String(36), nullable=False)
    subject = Column(String(255), nullable=False)
    body = Column(Text, nullable=False)
    reference_id = Column(String(36), nullable=True)
    reference_table = Column(String(50), nullable=True)
    status = Column(SAEnum(OutboxStatus), nullable=False, default=OutboxStatus.pending, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    sent_at = Column(DateTime(timezone=True), nullable=True)
