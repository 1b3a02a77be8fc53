# -------- ADMIN ORDERS --------
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from sqlmodel import Session

from storefront.database import get_session
from storefront.dependencies.admin import require_admin
from storefront.models.order import OrderKind, OrderStatus
from storefront.models.user import User
from storefront.schemas.orders_schemas import (
    OrderAdminRead,
    OrderDetail,
    OrderEventRead,
    OrderPage,
    StatusUpdate,
    TrackingUpdate,
)
from storefront.services import order_repository
from storefront.services.order_event_service import order_timeline
from storefront.services.order_service import update_status, update_tracking
from storefront.utils.serializers import to_order_admin_read

router = APIRouter()


@router.get("", response_model=OrderPage)
def list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = None,
    kind: Optional[OrderKind] = None,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    total, orders = order_repository.list_orders(
        session, status=status, kind=kind, page=page, limit=limit
    )
    return OrderPage(
        total_items=total,
        total_pages=(total + limit - 1) // limit,
        current_page=page,
        results=[to_order_admin_read(session, o) for o in orders],
    )


@router.get("/{order_id}", response_model=OrderDetail)
def order_details(
    order_id: int,
    session: Session = Depends(get_session),
    _: User = Depends(require_admin),
):
    order = order_repository.get_order(session, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    return OrderDetail(
        order=to_order_admin_read(session, order),
        timeline=[
            OrderEventRead(
                event_type=e.event_type,
                label=e.label,
                meta=e.meta,
                created_by=e.created_by,
                created_at=e.created_at,
            )
            for e in order_timeline(session, order.id)
        ],
    )


@router.put("/{order_id}/status", response_model=OrderAdminRead)
def change_status(
    order_id: int,
    payload: StatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    order = update_status(session, order_id, payload.status, actor=f"admin:{admin.id}")
    return to_order_admin_read(session, order)


@router.put("/{order_id}/tracking", response_model=OrderAdminRead)
def change_tracking(
    order_id: int,
    payload: TrackingUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    order = update_tracking(
        session, order_id, payload.tracking_number, payload.carrier, actor=f"admin:{admin.id}"
    )
    return to_order_admin_read(session, order)
