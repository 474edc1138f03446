"""
Store access for subscription records.

Lookups return None when no row exists. A missing row is the normal state of a
user who never started a checkout and callers treat it as the free plan.
"""
from typing import Optional

from sqlalchemy.orm import Session

from .models import Subscription


# PUBLIC_INTERFACE
class SubscriptionRepository:
    """Reads and upserts subscription rows through a caller-owned session."""

    def __init__(self, db: Session):
        self.db = db

    def get_for_user(self, user_id: str) -> Optional[Subscription]:
        return self.db.get(Subscription, user_id)

    def get_for_customer(self, customer_id: str) -> Optional[Subscription]:
        if not customer_id:
            return None
        return (
            self.db.query(Subscription)
            .filter(Subscription.stripe_customer_id == customer_id)
            .first()
        )

    def upsert(self, user_id: str, **fields) -> Subscription:
        """
        Insert or overwrite the row for user_id with the given fields.

        Fields not passed keep their stored (or default) values. There is no
        versioning, so the last write wins. Unknown field names raise ValueError.
        """
        unknown = set(fields) - set(Subscription.__table__.columns.keys())
        if unknown:
            raise ValueError(f"Unknown subscription fields: {', '.join(sorted(unknown))}")
        record = self.get_for_user(user_id)
        if record is None:
            record = Subscription(user_id=user_id)
            self.db.add(record)
        for name, value in fields.items():
            setattr(record, name, value)
        self.db.flush()
        return record
