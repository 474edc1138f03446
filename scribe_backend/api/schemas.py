from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# Pydantic models for serialization and validation

class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=64, description="User's username")
    email: EmailStr

class UserCreate(UserBase):
    password: str = Field(..., min_length=5, max_length=72)

class UserOut(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: datetime

class Token(BaseModel):
    access_token: str
    token_type: str


class NoteCreate(BaseModel):
    # Title is checked by the handler so a missing one yields 400 rather than 422
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(default=None, description="Rich-text (HTML) content")

class NoteUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    content: Optional[str] = Field(None)

class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    share_id: Optional[str] = None
    is_public: bool = False

class SharedNoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class ShareRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    note_id: str = Field(..., alias="noteId")


class CheckoutIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    price_id: Optional[str] = Field(None, alias="priceId")
    plan_id: Optional[str] = Field(None, alias="planId")
    billing_interval: Optional[str] = Field(None, alias="billingInterval")

class CreateCheckoutIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    plan_id: Optional[str] = Field(None, alias="planId")
    interval: str = Field("monthly", description="monthly or yearly")
    is_subscription_change: bool = Field(False, alias="isSubscriptionChange")


class PlanFeature(BaseModel):
    name: str
    included: bool

class PlanOut(BaseModel):
    id: str
    name: str
    description: str
    price_monthly: float
    price_yearly: float
    max_notes: int
    max_storage_mb: int
    features: List[PlanFeature] = []

class SubscriptionOut(BaseModel):
    plan: str
    status: str
    current_period_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    stripe_customer_id: Optional[str] = None
    has_subscription: bool = False
    max_notes: int
    note_count: int
    can_create_note: bool
