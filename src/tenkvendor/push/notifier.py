"""Push notifier — register devices and fan notifications out to them.

send() delivers to every selected registration concurrently. Each
delivery handles its own failure, so one bad endpoint never cancels the
others:
- PermanentDeliveryFailure → that exact registration is removed
- anything else → logged, registration kept (assumed transient)

Nothing is retried here; a scheduled job can call send() again.
"""

import asyncio
import enum
from dataclasses import dataclass
from typing import Any, Optional

import structlog

from tenkvendor.errors import PermanentDeliveryFailure
from tenkvendor.push.registry import PushRegistration, PushRegistry
from tenkvendor.push.transport import PushTransport

logger = structlog.get_logger()

DEFAULT_URL = "/orders.html"


class SendStatus(str, enum.Enum):
    SENT = "sent"
    NOT_FOUND = "not_found"


class _Outcome(enum.Enum):
    DELIVERED = "delivered"
    REMOVED = "removed"
    FAILED = "failed"


@dataclass(frozen=True)
class SendReport:
    """What happened to one send() call. Attempts, not guarantees."""

    status: SendStatus
    attempted: int = 0
    delivered: int = 0
    removed: int = 0
    failed: int = 0

    @property
    def found(self) -> bool:
        return self.status is SendStatus.SENT


def build_payload(title: str, body: str, url: Optional[str] = None) -> dict[str, str]:
    """The {title, body, url} document the service worker displays."""
    return {"title": title, "body": body, "url": url or DEFAULT_URL}


class PushNotifier:
    def __init__(
        self,
        registry: PushRegistry,
        transport: PushTransport,
        default_url: str = DEFAULT_URL,
    ):
        self.registry = registry
        self.transport = transport
        self.default_url = default_url

    async def register(self, user_id: str, subscription: dict[str, Any]) -> PushRegistration:
        """Store a device subscription for a user. Not deduplicated."""
        registration = await self.registry.add(
            PushRegistration(user_id=str(user_id), subscription=subscription)
        )
        logger.info(
            "push.registered",
            user_id=registration.user_id,
            registration_id=registration.id,
        )
        return registration

    async def send(
        self,
        title: str,
        body: str,
        url: Optional[str] = None,
        target_user_id: Optional[str] = None,
    ) -> SendReport:
        """Notify one user's devices, or every registered device if no user is given."""
        payload = build_payload(title, body, url or self.default_url)
        targets = await self.registry.select(
            str(target_user_id) if target_user_id is not None else None
        )
        if not targets:
            logger.info("push.no_registrations", user_id=target_user_id)
            return SendReport(status=SendStatus.NOT_FOUND)

        outcomes = await asyncio.gather(
            *(self._deliver(registration, payload) for registration in targets)
        )

        report = SendReport(
            status=SendStatus.SENT,
            attempted=len(outcomes),
            delivered=outcomes.count(_Outcome.DELIVERED),
            removed=outcomes.count(_Outcome.REMOVED),
            failed=outcomes.count(_Outcome.FAILED),
        )
        logger.info(
            "push.sent",
            user_id=target_user_id,
            attempted=report.attempted,
            delivered=report.delivered,
            removed=report.removed,
            failed=report.failed,
        )
        return report

    async def _deliver(self, registration: PushRegistration, payload: dict) -> _Outcome:
        try:
            await self.transport.deliver(registration.subscription, payload)
            return _Outcome.DELIVERED
        except PermanentDeliveryFailure as e:
            try:
                await self.registry.remove(registration.id)
            except Exception as remove_error:
                logger.error(
                    "push.registration_remove_failed",
                    registration_id=registration.id,
                    error=str(remove_error),
                )
                return _Outcome.FAILED
            logger.info(
                "push.registration_removed",
                registration_id=registration.id,
                user_id=registration.user_id,
                status_code=e.status_code,
            )
            return _Outcome.REMOVED
        except Exception as e:
            logger.warning(
                "push.delivery_failed",
                registration_id=registration.id,
                user_id=registration.user_id,
                error=str(e),
            )
            return _Outcome.FAILED
