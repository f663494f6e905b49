"""Web Push delivery with per-subscription failure isolation.

Each active subscription gets its own delivery attempt. The outcome of one
attempt never affects another: expired endpoints (404/410) are deactivated,
other failures leave the subscription active for the next notification.
"""

import asyncio
import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from pywebpush import WebPushException, webpush

from src.core.models.push_subscription import PushSubscription
from src.core.repositories.notifications import PushSubscriptionRepository

logger = logging.getLogger(__name__)

EXPIRED_STATUS_CODES = frozenset({404, 410})
PUSH_TTL_SECONDS = 24 * 60 * 60


class DeliveryOutcome(str, enum.Enum):
    ok = "ok"
    expired = "expired"
    error = "error"


@dataclass(frozen=True)
class DeliveryResult:
    outcome: DeliveryOutcome
    status_code: int | None = None
    error: str | None = None


@dataclass
class DispatchResult:
    sent: int = 0
    failed: int = 0
    expired: int = 0
    total: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def first_error(self) -> str | None:
        return self.errors[0] if self.errors else None


class PushSender(Protocol):
    async def send(self, subscription: PushSubscription, payload: dict[str, Any]) -> DeliveryResult: ...


def classify_status(status_code: int | None) -> DeliveryOutcome:
    if status_code in EXPIRED_STATUS_CODES:
        return DeliveryOutcome.expired
    return DeliveryOutcome.error


class WebPushSender:
    """Sends VAPID-signed Web Push messages through pywebpush."""

    def __init__(self, vapid_private_key: str, vapid_subject: str, ttl: int = PUSH_TTL_SECONDS) -> None:
        self._vapid_private_key = vapid_private_key
        self._vapid_claims = {"sub": vapid_subject}
        self._ttl = ttl

    async def send(self, subscription: PushSubscription, payload: dict[str, Any]) -> DeliveryResult:
        subscription_info = {"endpoint": subscription.endpoint, "keys": subscription.keys}
        try:
            # pywebpush is blocking (requests)
            await asyncio.to_thread(
                webpush,
                subscription_info=subscription_info,
                data=json.dumps(payload),
                vapid_private_key=self._vapid_private_key,
                vapid_claims=dict(self._vapid_claims),
                ttl=self._ttl,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            return DeliveryResult(
                outcome=classify_status(status_code),
                status_code=status_code,
                error=str(e),
            )
        except Exception as e:
            return DeliveryResult(outcome=DeliveryOutcome.error, error=str(e))
        return DeliveryResult(outcome=DeliveryOutcome.ok)


class PushDispatcher:
    def __init__(self, subscriptions: PushSubscriptionRepository, sender: PushSender) -> None:
        self._subscriptions = subscriptions
        self._sender = sender

    async def send_to_all(self, payload: dict[str, Any]) -> DispatchResult:
        subs = await self._subscriptions.list_active()
        result = DispatchResult(total=len(subs))
        if not subs:
            return result

        outcomes = await asyncio.gather(
            *(self._deliver(sub, payload) for sub in subs),
            return_exceptions=True,
        )

        for sub, outcome in zip(subs, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                logger.error("Push bookkeeping failed for subscription %s: %s", sub.id, outcome)
                outcome = DeliveryResult(outcome=DeliveryOutcome.error, error=str(outcome))

            if outcome.outcome == DeliveryOutcome.ok:
                result.sent += 1
                continue

            result.failed += 1
            if outcome.outcome == DeliveryOutcome.expired:
                result.expired += 1
            result.errors.append(outcome.error or outcome.outcome.value)

        logger.info(
            "Push dispatch: %d sent, %d failed (%d expired) of %d",
            result.sent,
            result.failed,
            result.expired,
            result.total,
        )
        return result

    async def _deliver(self, sub: PushSubscription, payload: dict[str, Any]) -> DeliveryResult:
        outcome = await self._sender.send(sub, payload)
        if outcome.outcome == DeliveryOutcome.ok:
            await self._subscriptions.touch(sub.id)
        elif outcome.outcome == DeliveryOutcome.expired:
            logger.info("Push subscription %s expired (%s), deactivating", sub.id, outcome.status_code)
            await self._subscriptions.deactivate_by_id(sub.id)
        else:
            logger.warning("Push to subscription %s failed: %s", sub.id, outcome.error)
        return outcome
