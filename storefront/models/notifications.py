from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field


class RecipientRole(str, Enum):
    admin = "admin"
    customer = "customer"


class Notification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    recipient_role: RecipientRole
    user_id: Optional[int] = None

    trigger_source: str  # payment_success / shipped / ...
    related_id: int     # order id

    title: str
    content: str

    is_read: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
