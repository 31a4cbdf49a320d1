"""Web Push transport (VAPID) on top of pywebpush.

pywebpush is synchronous (it posts with requests), so each delivery runs
in a worker thread. The push service answers 404/410 for subscriptions
that no longer exist; those are permanent. Anything else is transient.
"""

import asyncio
import json
from typing import Any, Protocol

from pywebpush import WebPushException, webpush

from tenkvendor.errors import PermanentDeliveryFailure, TransientDeliveryFailure

GONE_STATUSES = (404, 410)


class PushTransport(Protocol):
    async def deliver(self, subscription: dict[str, Any], payload: dict[str, Any]) -> None:
        """Deliver or raise Permanent/TransientDeliveryFailure."""


class WebPushTransport:
    def __init__(self, vapid_private_key: str, vapid_subject: str, ttl: int = 86400):
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl = ttl

    async def deliver(self, subscription: dict[str, Any], payload: dict[str, Any]) -> None:
        await asyncio.to_thread(self._send, subscription, json.dumps(payload))

    def _send(self, subscription: dict[str, Any], data: str) -> None:
        try:
            webpush(
                subscription_info=subscription,
                data=data,
                vapid_private_key=self.vapid_private_key,
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
            )
        except WebPushException as e:
            status = e.response.status_code if e.response is not None else None
            if status in GONE_STATUSES:
                raise PermanentDeliveryFailure(str(e), status_code=status) from e
            raise TransientDeliveryFailure(str(e), status_code=status) from e
        except Exception as e:
            raise TransientDeliveryFailure(str(e)) from e
