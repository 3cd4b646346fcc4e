"""Outbound webhook notifications for order status changes."""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from printshop.core.config import settings
from printshop.models import OrderStatus, Webhook

logger = logging.getLogger(__name__)

ACCESS_TOKEN_ALPHABET: str = string.ascii_letters + string.digits
ACCESS_TOKEN_LENGTH: int = 20


@dataclass(frozen=True)
class NotificationAttemptResult:
    """Outcome of one POST to one subscriber."""

    endpoint_url: str
    success: bool
    http_status: int | None = None
    error_message: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "endpoint_url": self.endpoint_url,
            "success": self.success,
            "http_status": self.http_status,
            "error_message": self.error_message,
        }


@dataclass
class DispatchReport:
    attempts: list[NotificationAttemptResult] = field(default_factory=list)

    @property
    def failures(self) -> list[NotificationAttemptResult]:
        return [attempt for attempt in self.attempts if not attempt.success]

    @property
    def succeeded(self) -> bool:
        """True only when every attempted endpoint confirmed."""
        return not self.failures

    def describe_failures(self) -> str:
        details = "; ".join(
            f"URL: {attempt.endpoint_url}, Error: {attempt.error_message}, Status: {attempt.http_status or 'N/A'}"
            for attempt in self.failures
        )
        return f"{len(self.failures)} of {len(self.attempts)} webhooks failed: {details}"


def generate_access_token(length: int = ACCESS_TOKEN_LENGTH) -> str:
    """Return a random alphanumeric correlation token."""
    return "".join(secrets.choice(ACCESS_TOKEN_ALPHABET) for _ in range(length))


def build_payload(order_id: int, order_status: OrderStatus, now: datetime | None = None) -> dict[str, Any]:
    """Build the wire body sent to subscribers."""
    moment = now or datetime.now(timezone.utc)
    return {
        "data": moment.strftime("%Y-%m-%d %H:%M:%S"),
        "access_token": generate_access_token(),
        "json": {
            "casa_grafica_id": str(order_id),
            "status_id": order_status.id,
            "status": order_status.name,
        },
    }


def list_active_webhooks(db: Session) -> list[Webhook]:
    return list(db.scalars(select(Webhook).where(Webhook.is_active.is_(True)).order_by(Webhook.id.asc())).all())


class WebhookDispatcher:
    """Fans a status change out to every subscriber and waits for all of them.

    A failing subscriber never raises out of ``dispatch``; it is reported in
    the returned ``DispatchReport`` and the caller decides what to do.
    """

    def __init__(self, timeout: float | None = None, transport: httpx.BaseTransport | None = None) -> None:
        self.timeout = settings.webhook_timeout_seconds if timeout is None else timeout
        self._client = httpx.Client(
            timeout=self.timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    def close(self) -> None:
        self._client.close()

    def dispatch(self, endpoints: Sequence[Webhook], order_id: int, order_status: OrderStatus) -> DispatchReport:
        urls = [endpoint.destination_url for endpoint in endpoints]
        if not urls:
            logger.info("[WEBHOOK] No active webhooks registered; order %s needs no confirmation", order_id)
            return DispatchReport()

        # Payloads are built up front so worker threads never touch ORM state.
        payloads = [build_payload(order_id, order_status) for _ in urls]
        with ThreadPoolExecutor(max_workers=len(urls), thread_name_prefix="webhook") as executor:
            attempts = list(executor.map(self._send, urls, payloads))

        report = DispatchReport(attempts=attempts)
        if report.succeeded:
            logger.info("[WEBHOOK] All %s webhooks confirmed order %s -> status %s", len(attempts), order_id, order_status.id)
        else:
            logger.warning("[WEBHOOK] Order %s -> status %s: %s", order_id, order_status.id, report.describe_failures())
        return report

    def _send(self, url: str, payload: dict[str, Any]) -> NotificationAttemptResult:
        try:
            response = self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            logger.debug("[WEBHOOK] POST %s failed: %s", url, exc)
            return NotificationAttemptResult(endpoint_url=url, success=False, error_message=str(exc) or type(exc).__name__)

        if response.is_success:
            return NotificationAttemptResult(endpoint_url=url, success=True, http_status=response.status_code)
        return NotificationAttemptResult(
            endpoint_url=url,
            success=False,
            http_status=response.status_code,
            error_message=f"Request failed with status code {response.status_code}",
        )


_default_dispatcher: WebhookDispatcher | None = None


def get_dispatcher() -> WebhookDispatcher:
    """FastAPI dependency returning the process-wide dispatcher."""
    global _default_dispatcher
    if _default_dispatcher is None:
        _default_dispatcher = WebhookDispatcher()
    return _default_dispatcher


def close_dispatcher() -> None:
    global _default_dispatcher
    if _default_dispatcher is not None:
        _default_dispatcher.close()
        _default_dispatcher = None
