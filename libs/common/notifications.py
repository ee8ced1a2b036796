"""
Notification client for the fire-and-forget side channel.

Domain operations announce events (order placed, payment confirmed, status
changes, withdrawals) to the notifications service. Delivery is best-effort:
``notify`` never raises, so a notification outage can not roll back or fail the
state transition that triggered it.

Usage:
    from libs.common.notifications import get_notifier

    async def handler(notifier: Notifier = Depends(get_notifier)):
        await notifier.notify(
            recipient_id=str(order.customer_auth_id),
            recipient_kind=RecipientKind.CUSTOMER,
            event="payment_confirmed",
            payload={"order_number": order.order_number},
        )
"""

import enum
from typing import Any, Optional, Protocol

import httpx
from fastapi import Request

from libs.common.config import get_settings
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


class RecipientKind(str, enum.Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"


class Notifier(Protocol):
    async def notify(
        self,
        recipient_id: str,
        recipient_kind: RecipientKind,
        event: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> bool: ...


class NotificationClient:
    """
    HTTP client for the notifications service.

    Holds one ``httpx.AsyncClient`` for its lifetime; call ``aclose()`` on shutdown.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        enabled: Optional[bool] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.NOTIFICATIONS_SERVICE_URL).rstrip("/")
        self.enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def notify(
        self,
        recipient_id: str,
        recipient_kind: RecipientKind,
        event: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> bool:
        """
        Send one notification. Returns True when the service accepted it.

        Any failure (connection, HTTP status, serialization) is logged and
        swallowed.
        """
        if not self.enabled:
            logger.debug("Notifications disabled, dropping %s for %s", event, recipient_id)
            return False

        body = {
            "recipient_id": str(recipient_id),
            "recipient_kind": RecipientKind(recipient_kind).value,
            "event": event,
            "payload": payload or {},
        }
        headers = {}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        try:
            response = await self._client.post(
                f"{self.base_url}/notifications", json=body, headers=headers
            )
            if response.status_code >= 400:
                logger.error(
                    "Notification %s for %s %s rejected (http %d): %s",
                    event,
                    body["recipient_kind"],
                    recipient_id,
                    response.status_code,
                    response.text,
                )
                return False
            return True
        except Exception as e:
            logger.error(
                "Failed to send notification %s to %s %s: %s",
                event,
                body["recipient_kind"],
                recipient_id,
                e,
            )
            return False

    async def aclose(self) -> None:
        await self._client.aclose()


async def notify_safely(
    notifier: Optional[Notifier],
    recipient_id: str,
    recipient_kind: RecipientKind,
    event: str,
    payload: Optional[dict[str, Any]] = None,
) -> bool:
    """Call ``notifier.notify`` and contain anything it raises."""
    if notifier is None:
        return False
    try:
        return await notifier.notify(
            recipient_id=str(recipient_id),
            recipient_kind=recipient_kind,
            event=event,
            payload=payload,
        )
    except Exception:
        logger.exception("Notifier raised while sending %s to %s", event, recipient_id)
        return False


def get_notifier(request: Request) -> Notifier:
    """FastAPI dependency returning the app-scoped notifier."""
    return request.app.state.notifier
