"""
Web Push Notification Client

Sends browser push notifications using the Web Push protocol with:
- VAPID authentication (private key + contact subject)
- Payload encryption (handled by pywebpush)
- Provider response classification (gone vs. transient failure)
- Bounded per-call wait

The provider call runs in a worker thread. When the wait times out the caller
moves on, but the thread itself cannot be cancelled; it ends when the HTTP
request does, which pywebpush bounds with the same timeout (applied per
connect and per read, not to the whole exchange).
"""

import asyncio
import base64
import json
from enum import Enum
from typing import Optional

import structlog
from pywebpush import WebPushException, webpush

from engagement.config import Settings
from engagement.models.notification import WebPushPayload

logger = structlog.get_logger(__name__)

# Provider statuses meaning the subscription no longer exists
GONE_STATUS_CODES = frozenset({404, 410})


class PushSendResult(str, Enum):
    """Outcome of a single push provider call."""

    SUCCESS = "success"
    GONE = "gone"  # Endpoint permanently invalid; deactivate it
    ERROR = "error"  # Any other failure; keep the endpoint
    TIMEOUT = "timeout"


def mask_endpoint(endpoint: str) -> str:
    """Mask push endpoint for logging (PII protection)."""
    if len(endpoint) > 40:
        return endpoint[:20] + "..." + endpoint[-10:]
    return endpoint


class PushClient:
    """
    Web Push client for browser push notifications.

    Uses pywebpush and VAPID keys for authentication. Without both VAPID keys
    the client is unconfigured and the push channel is disabled.
    """

    def __init__(
        self,
        vapid_public_key: Optional[str] = None,
        vapid_private_key: Optional[str] = None,
        vapid_subject: Optional[str] = None,
        timeout_seconds: float = 10.0,
        ttl_seconds: int = 86400,
    ):
        """
        Initialize push client.

        Args:
            vapid_public_key: VAPID public key (shared with browsers at subscribe time)
            vapid_private_key: VAPID private key used to sign requests
            vapid_subject: Contact for VAPID claims (e.g., mailto:admin@example.com)
            timeout_seconds: Upper bound for one provider call
            ttl_seconds: How long the push service may hold an undelivered message
        """
        self.vapid_public_key = vapid_public_key
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.timeout_seconds = timeout_seconds
        self.ttl_seconds = ttl_seconds

        if not self.is_configured:
            logger.info("push_client_unconfigured_channel_disabled")

    @classmethod
    def from_settings(cls, settings: Settings) -> "PushClient":
        return cls(
            vapid_public_key=settings.vapid_public_key,
            vapid_private_key=settings.vapid_private_key,
            vapid_subject=settings.vapid_subject,
            timeout_seconds=settings.push_timeout_seconds,
            ttl_seconds=settings.push_ttl_seconds,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key and self.vapid_subject)

    async def send(
        self,
        endpoint: str,
        keys: dict[str, str],
        payload: WebPushPayload,
    ) -> PushSendResult:
        """
        Send one push message to one subscription endpoint.

        Never raises for provider failures; the result classifies them.

        Args:
            endpoint: Push service endpoint URL
            keys: Subscription encryption keys (p256dh, auth)
            payload: Message body

        Returns:
            PushSendResult
        """
        data = json.dumps(payload.model_dump(exclude_none=True), ensure_ascii=False)

        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._send_sync, endpoint, keys, data),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            logger.warning(
                "push_send_timed_out",
                endpoint=mask_endpoint(endpoint),
                timeout_seconds=self.timeout_seconds,
            )
            return PushSendResult.TIMEOUT
        except WebPushException as e:
            status_code = getattr(e.response, "status_code", None)
            if status_code in GONE_STATUS_CODES:
                logger.info(
                    "push_subscription_gone",
                    endpoint=mask_endpoint(endpoint),
                    status_code=status_code,
                )
                return PushSendResult.GONE

            logger.error(
                "push_send_failed",
                endpoint=mask_endpoint(endpoint),
                status_code=status_code,
                error=str(e),
            )
            return PushSendResult.ERROR
        except Exception as e:
            logger.error(
                "push_send_failed",
                endpoint=mask_endpoint(endpoint),
                error=str(e),
            )
            return PushSendResult.ERROR

        logger.debug("push_sent", endpoint=mask_endpoint(endpoint))
        return PushSendResult.SUCCESS

    def _send_sync(self, endpoint: str, keys: dict[str, str], data: str) -> None:
        webpush(
            subscription_info={"endpoint": endpoint, "keys": dict(keys)},
            data=data,
            vapid_private_key=self.vapid_private_key,
            # pywebpush adds aud/exp to the claims dict, so pass a fresh one
            vapid_claims={"sub": self.vapid_subject},
            ttl=self.ttl_seconds,
            timeout=self.timeout_seconds,
        )

    @staticmethod
    def generate_vapid_keys() -> tuple[str, str]:
        """
        Generate VAPID key pair for push authentication.

        Returns:
            Tuple of (private_key, public_key), URL-safe base64 without padding
        """
        from cryptography.hazmat.primitives import serialization
        from py_vapid import Vapid

        vapid = Vapid()
        vapid.generate_keys()

        raw_private = vapid.private_key.private_numbers().private_value.to_bytes(32, "big")
        raw_public = vapid.public_key.public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )

        def encode(raw: bytes) -> str:
            return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")

        return (encode(raw_private), encode(raw_public))
