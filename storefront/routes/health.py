from datetime import datetime

from fastapi import APIRouter, Depends
from sqlmodel import Session, func, select

from storefront.database import get_session
from storefront.models.order import Order, OrderStatus

router = APIRouter()


@router.get("/check")
def health_check(session: Session = Depends(get_session)):
    db_status = "ok"
    pending_orders = None

    try:
        # also proves the orders table is migrated
        pending_orders = session.exec(
            select(func.count()).select_from(Order).where(Order.status == OrderStatus.PENDING)
        ).one()
    except Exception:
        db_status = "failed"

    return {
        "status": "ok",
        "database": db_status,
        "pending_orders": pending_orders,
        "timestamp": datetime.utcnow().isoformat(),
    }
