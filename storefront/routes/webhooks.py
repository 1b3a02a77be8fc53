from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from storefront.database import get_session
from storefront.services.payment_gateway import StripeGateway, get_payment_gateway

router = APIRouter()


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None),
    session: Session = Depends(get_session),
    gateway: StripeGateway = Depends(get_payment_gateway),
):
    # signature covers the exact bytes sent, so read the body unparsed
    payload = await request.body()
    ack = await run_in_threadpool(gateway.handle_webhook, session, payload, stripe_signature)
    return {
        "received": True,
        "event_type": ack.event_type,
        "settled": ack.settled,
    }
