import logging

from storefront.notifications.rules import DEFAULT_TITLES, NOTIFICATION_RULES
from storefront.notifications.channels import Channel
from storefront.notifications.events import OrderNotice
from storefront.services.notification_service import create_notification
from storefront.models.notifications import RecipientRole

logger = logging.getLogger(__name__)


def dispatch_order_event(
    *,
    notice: OrderNotice,
    order,
    session,
    extra: dict | None = None,
    notify_user: bool = True,
    notify_admin: bool = True,
):
    """
    Central notification dispatcher.

    Fire-and-forget: a failing channel is logged and rolled back, and the
    caller's order operation is never affected. Must be called after the
    order change itself has been committed.
    """

    rules = NOTIFICATION_RULES.get(notice, {})
    extra = extra or {}
    title = extra.get("title", DEFAULT_TITLES.get(notice, "Order update"))

    try:
        if notify_user and rules.get(Channel.INAPP_USER):
            create_notification(
                session=session,
                recipient_role=RecipientRole.customer,
                user_id=order.user_id,
                trigger_source=notice.value,
                related_id=order.id,
                title=title,
                content=extra.get("user_content", f"Order #{order.id}: {title.lower()}"),
            )

        if notify_admin and rules.get(Channel.INAPP_ADMIN):
            create_notification(
                session=session,
                recipient_role=RecipientRole.admin,
                user_id=None,
                trigger_source=notice.value,
                related_id=order.id,
                title=extra.get("admin_title", title),
                content=extra.get(
                    "admin_content",
                    f"Order #{order.id} ({order.kind.value}) by user {order.user_id}: {notice.value}",
                ),
            )

        session.commit()
    except Exception:
        logger.exception(f"Notification {notice.value} failed for order {getattr(order, 'id', None)}")
        session.rollback()
