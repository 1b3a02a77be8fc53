from sqlmodel import SQLModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime


class Book(SQLModel, table=True):
    """Catalog item as seen by the order engine: identity, title and list price."""

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    author: Optional[str] = None
    cover_image: str = Field(default="/uploads/book_covers/placeholder.jpg")

    # list price of the printed copy; unset means "free" at checkout
    price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
