"""
Push Transport - Web Push Delivery

The dispatcher depends only on the PushTransport protocol: one send per
subscription, returning the push service status code or raising
PushDeliveryError carrying it.

WebPushTransport signs each request with the VAPID key pair from PushConfig
and encrypts the payload for the subscription's keys (pywebpush). pywebpush
is blocking, so every send runs in a worker thread.
"""

import asyncio
import logging
from typing import Optional, Protocol, runtime_checkable

import requests
from pywebpush import WebPushException, webpush

from recallguard.config.settings import PushConfig
from recallguard.models.alert import Urgency
from recallguard.models.push import PushSubscription
from recallguard.utils.error_handling import PushDeliveryError, classify_delivery_failure

logger = logging.getLogger(__name__)


def web_push_urgency(urgency: Optional[Urgency]) -> str:
    """Map alert urgency to the Web Push `Urgency` header value."""
    return "high" if urgency == Urgency.HIGH else "normal"


@runtime_checkable
class PushTransport(Protocol):
    """Sends one serialized payload to one subscription."""

    async def send(
        self,
        subscription: PushSubscription,
        payload: str,
        urgency: Optional[Urgency] = None,
    ) -> int:
        ...


class WebPushTransport:
    """PushTransport delivering VAPID-signed, encrypted Web Push messages."""

    def __init__(self, config: Optional[PushConfig] = None):
        self.config = config or PushConfig()

    async def send(
        self,
        subscription: PushSubscription,
        payload: str,
        urgency: Optional[Urgency] = None,
    ) -> int:
        """
        Deliver one notification.

        Returns:
            Status code returned by the push service.

        Raises:
            PushDeliveryError: VAPID keys missing, network error, or a
                rejected request (terminal for 401/404/410).
        """
        if not self.config.vapid_configured:
            raise PushDeliveryError("VAPID keys not configured")

        return await asyncio.to_thread(self._send_blocking, subscription, payload, urgency)

    def _send_blocking(
        self,
        subscription: PushSubscription,
        payload: str,
        urgency: Optional[Urgency],
    ) -> int:
        endpoint = subscription.endpoint[:60]
        try:
            response = webpush(
                subscription_info=subscription.model_dump(exclude={"expiration_time"}),
                data=payload,
                vapid_private_key=self.config.vapid_private_key,
                vapid_claims={"sub": self.config.vapid_email},
                ttl=self.config.ttl_seconds,
                headers={"Urgency": web_push_urgency(urgency)},
                timeout=self.config.send_timeout_seconds,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise classify_delivery_failure(
                status_code,
                f"Push service returned {status_code} for {endpoint}",
            ) from e
        except requests.RequestException as e:
            raise PushDeliveryError(f"Push request to {endpoint} failed: {e}") from e

        logger.debug(f"Push to {endpoint} accepted with status {response.status_code}")
        return response.status_code
