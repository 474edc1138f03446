import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

PLANS = ("free", "pro", "business")
SUBSCRIPTION_STATUSES = (
    "active",
    "trialing",
    "past_due",
    "canceled",
    "incomplete",
    "incomplete_expired",
    "unpaid",
)


def _new_id():
    return str(uuid.uuid4())


# PUBLIC_INTERFACE
class User(Base):
    """
    SQLAlchemy model for an account. Its id is the opaque user_id used by notes and subscriptions.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(128), unique=True, nullable=False)
    hashed_password = Column(String(256), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    notes = relationship("Note", back_populates="owner")


# PUBLIC_INTERFACE
class Note(Base):
    """
    SQLAlchemy model for a rich-text note.

    share_id is a capability token: anyone holding it may read the note while is_public is true.
    """
    __tablename__ = "notes"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False, default="")
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    share_id = Column(String(36), unique=True, nullable=True, index=True)
    is_public = Column(Boolean, nullable=False, default=False)

    owner = relationship("User", back_populates="notes")


# PUBLIC_INTERFACE
class Subscription(Base):
    """
    SQLAlchemy model mirroring a user's Stripe subscription. One row per user.
    """
    __tablename__ = "subscriptions"

    user_id = Column(String(36), primary_key=True)
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    stripe_subscription_id = Column(String(255), nullable=True)
    status = Column(String(32), nullable=False, default="active")
    plan = Column(String(32), nullable=False, default="free")
    current_period_end = Column(DateTime, nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
