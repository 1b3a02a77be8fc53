from typing import Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.database import get_session
from storefront.models.user import User
from storefront.schemas.orders_schemas import AccessResponse
from storefront.services.access_service import has_access
from storefront.utils.token import get_optional_user

router = APIRouter()


@router.get("/{book_id}/access", response_model=AccessResponse)
def check_access(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: Optional[User] = Depends(get_optional_user),
):
    """Whether the caller may read the paid content of this book right now."""
    user_id = current_user.id if current_user else None
    return AccessResponse(book_id=book_id, has_access=has_access(session, user_id, book_id))
