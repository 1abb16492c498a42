"""
Payment Gateway Base

Shared contract of the Ozow and PayFast adapters.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional

from app.domain.payments import (
    PaymentProvider,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
    WebhookNotification,
    WebhookVerification,
)


class PaymentGateway(ABC):
    """
    One payment provider.

    ``verify_webhook`` must fail closed: any error while checking a payload
    is reported as an invalid payload, never raised.
    """

    provider: PaymentProvider
    status_map: Dict[str, PaymentStatus] = {}

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials for this provider are present."""
        pass

    @abstractmethod
    async def verify_webhook(
        self,
        payload: Mapping[str, str],
        context: Optional[Dict[str, Any]] = None,
    ) -> WebhookVerification:
        """Check that a notification really came from the provider."""
        pass

    @abstractmethod
    def parse_webhook(self, payload: Mapping[str, str]) -> WebhookNotification:
        """Normalize a verified notification."""
        pass

    @abstractmethod
    async def initiate(self, request: PaymentRequest, base_url: str) -> PaymentResult:
        """Build the provider redirect for a payment."""
        pass

    def map_status(self, raw_status: Optional[str]) -> PaymentStatus:
        """Provider status to PaymentStatus. Unknown values are failures."""
        return self.status_map.get(raw_status or "", PaymentStatus.FAILED)
