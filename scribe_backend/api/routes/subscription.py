from typing import List

from fastapi import APIRouter, Depends

from scribe_database.models import Note, User
from scribe_database.repositories import SubscriptionRepository

from ...billing.plans import FREE_PLAN_ID, SUBSCRIPTION_PLANS, get_plan
from ..dependencies import get_db
from ..schemas import PlanOut, SubscriptionOut
from ..security import get_current_user

router = APIRouter(tags=["Subscription"])

ENTITLED_STATUSES = ("active", "trialing", "past_due")


def effective_plan(record):
    """Plan the user is entitled to. No record means the free plan, which is not an error."""
    if record is None:
        return FREE_PLAN_ID
    if record.status not in ENTITLED_STATUSES:
        return FREE_PLAN_ID
    return record.plan or FREE_PLAN_ID


# PUBLIC_INTERFACE
@router.get("/plans", response_model=List[PlanOut], summary="List subscription plans")
def list_plans():
    return list(SUBSCRIPTION_PLANS.values())

# PUBLIC_INTERFACE
@router.get("/subscription", response_model=SubscriptionOut, summary="Current user's subscription")
def get_subscription(db=Depends(get_db), current_user: User = Depends(get_current_user)):
    """
    The caller's subscription with plan limits applied.
    Users without a subscription row are reported as active on the free plan.
    """
    record = SubscriptionRepository(db).get_for_user(current_user.id)
    plan_id = effective_plan(record)
    note_count = db.query(Note).filter(Note.user_id == current_user.id).count()
    max_notes = get_plan(plan_id)["max_notes"]
    return SubscriptionOut(
        plan=plan_id,
        status=record.status if record is not None else "active",
        current_period_end=record.current_period_end if record is not None else None,
        cancel_at_period_end=bool(record.cancel_at_period_end) if record is not None else False,
        stripe_customer_id=record.stripe_customer_id if record is not None else None,
        has_subscription=record is not None and bool(record.stripe_subscription_id),
        max_notes=max_notes,
        note_count=note_count,
        can_create_note=note_count < max_notes,
    )
