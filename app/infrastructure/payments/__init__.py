"""
Payments Infrastructure Module

Ozow and PayFast gateway adapters.
"""

from typing import Optional

from app.domain.payments import PaymentProvider
from app.infrastructure.payments.base import PaymentGateway
from app.infrastructure.payments.ozow import OzowGateway
from app.infrastructure.payments.payfast import PayFastGateway


def get_gateway(provider: str) -> Optional[PaymentGateway]:
    """Adapter for a provider name, or None if unsupported."""
    try:
        provider = PaymentProvider(str(provider).lower())
    except ValueError:
        return None
    if provider == PaymentProvider.OZOW:
        return OzowGateway()
    return PayFastGateway()


__all__ = ["PaymentGateway", "OzowGateway", "PayFastGateway", "get_gateway"]
