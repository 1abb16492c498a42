"""
PayFast Card Gateway

MD5-signed redirect initiation and three-step ITN (Instant Transaction
Notification) verification: source IP, signature, server-side validation.
"""

import hashlib
import hmac
import html
import ipaddress
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import quote_plus, urlencode

import httpx

from app.config.settings import Settings, get_settings
from app.domain.payments import (
    PaymentProvider,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
    WebhookNotification,
    WebhookVerification,
    cents_to_rands,
    rands_to_cents,
)
from app.infrastructure.exceptions import WebhookVerificationError
from app.infrastructure.payments.base import PaymentGateway


logger = logging.getLogger(__name__)

# Hosts PayFast sends ITNs from
PAYFAST_NETWORKS = [
    ipaddress.ip_network(cidr)
    for cidr in (
        "197.97.145.144/28",
        "41.74.179.192/27",
        "102.216.36.0/28",
        "102.216.36.128/28",
        "144.126.193.139/32",
    )
]

RETURN_PATH = "/api/payments/payfast/return"
CANCEL_PATH = "/api/payments/payfast/cancel"
NOTIFY_PATH = "/api/payments/payfast/notify"

ITEM_NAME_MAX = 100
ITEM_DESCRIPTION_MAX = 255


def payfast_param_string(
    pairs: Iterable[Tuple[str, Any]],
    include_blank: bool = False,
) -> str:
    """
    ``key=value`` pairs joined with ``&``, values URL-encoded with ``+`` for
    spaces. The signature itself is skipped and order is kept.

    Checkout signatures skip empty values; ITN signatures cover every posted
    field, so ITN checks pass ``include_blank=True``.
    """
    parts = []
    for key, value in pairs:
        if key == "signature":
            continue
        text = "" if value is None else str(value).strip()
        if text == "" and not include_blank:
            continue
        parts.append(f"{key}={quote_plus(text)}")
    return "&".join(parts)


def payfast_signature(
    pairs: Iterable[Tuple[str, Any]],
    passphrase: Optional[str] = None,
    include_blank: bool = False,
) -> str:
    """MD5 hex of the parameter string, with the passphrase appended when set."""
    data = payfast_param_string(pairs, include_blank=include_blank)
    if passphrase:
        data = f"{data}&passphrase={quote_plus(passphrase.strip())}"
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def is_payfast_ip(source_ip: Optional[str]) -> bool:
    if not source_ip:
        return False
    try:
        address = ipaddress.ip_address(source_ip)
    except ValueError:
        return False
    return any(address in network for network in PAYFAST_NETWORKS)


class PayFastGateway(PaymentGateway):
    """PayFast adapter."""

    provider = PaymentProvider.PAYFAST
    status_map = {
        "COMPLETE": PaymentStatus.SUCCESS,
        "PENDING": PaymentStatus.PENDING,
        "CANCELLED": PaymentStatus.CANCELLED,
        "FAILED": PaymentStatus.FAILED,
    }

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return self.settings.payfast_configured

    @property
    def base_url(self) -> str:
        return self.settings.payfast_base_url

    @property
    def process_url(self) -> str:
        return f"{self.base_url}/eng/process"

    # =========================================================================
    # Initiation
    # =========================================================================

    def build_fields(self, request: PaymentRequest, base_url: str) -> List[Tuple[str, str]]:
        """Signed form fields in submission order."""
        first, second = request.passthrough()
        name_parts = (request.buyer_name or "").split(" ")
        if request.order_id:
            item_description = f"Order: {request.order_id}"
        else:
            item_description = f"Subscription: {request.plan or ''}"

        fields = [
            ("merchant_id", self.settings.payfast_merchant_id),
            ("merchant_key", self.settings.payfast_merchant_key),
            ("return_url", f"{base_url}{RETURN_PATH}?ref={request.reference}"),
            ("cancel_url", f"{base_url}{CANCEL_PATH}?ref={request.reference}"),
            ("notify_url", f"{base_url}{NOTIFY_PATH}"),
            ("name_first", name_parts[0]),
            ("name_last", " ".join(name_parts[1:])),
            ("email_address", request.buyer_email),
            ("m_payment_id", request.reference),
            ("amount", cents_to_rands(request.amount)),
            ("item_name", request.description[:ITEM_NAME_MAX]),
            ("item_description", item_description[:ITEM_DESCRIPTION_MAX]),
            ("custom_str1", first),
            ("custom_str2", second),
        ]
        fields = [(key, value) for key, value in fields if value]
        fields.append(("signature", payfast_signature(fields, self.settings.payfast_passphrase)))
        return fields

    async def initiate(self, request: PaymentRequest, base_url: str) -> PaymentResult:
        if not self.is_configured:
            return PaymentResult(success=False, error="PayFast not configured")

        fields = self.build_fields(request, base_url)
        logger.info(f"[PAYFAST] Initiated payment {request.reference} for {request.amount} cents")
        return PaymentResult(
            success=True,
            redirect_url=f"{self.process_url}?{urlencode(fields)}",
            transaction_id=request.reference,
        )

    def build_form_html(self, request: PaymentRequest, base_url: str) -> Optional[str]:
        """Auto-submitting HTML form posting the signed fields to PayFast."""
        if not self.is_configured:
            return None

        inputs = "\n".join(
            f'    <input type="hidden" name="{html.escape(key)}" value="{html.escape(value)}" />'
            for key, value in self.build_fields(request, base_url)
        )
        return (
            "<!DOCTYPE html>\n<html>\n<head><title>Redirecting to PayFast...</title></head>\n<body>\n"
            f'  <form id="payfast-form" action="{self.process_url}" method="POST">\n'
            f"{inputs}\n"
            "  </form>\n"
            "  <script>document.getElementById('payfast-form').submit();</script>\n"
            "</body>\n</html>"
        )

    # =========================================================================
    # ITN
    # =========================================================================

    async def verify_webhook(
        self,
        payload: Mapping[str, str],
        context: Optional[Dict[str, Any]] = None,
    ) -> WebhookVerification:
        """
        Verify an ITN.

        Args:
            payload: Posted fields in the order they were received
            context: ``{"source_ip": ...}``
        """
        context = context or {}
        try:
            # Step 1: source host (skipped in sandbox)
            if not self.settings.payfast_sandbox and self.settings.payfast_validate_ip:
                self._check_source_ip(context.get("source_ip"))

            # Step 2: signature
            self._check_signature(payload)

            # Step 3: server-side confirmation
            await self._confirm_with_payfast(payload)

            return WebhookVerification(valid=True)

        except WebhookVerificationError as e:
            logger.warning(f"[PAYFAST] ITN rejected: {e.message}")
            return WebhookVerification(valid=False, reason=e.message)
        except Exception as e:
            logger.error(f"[PAYFAST] ITN verification error: {e}")
            return WebhookVerification(valid=False, reason="Verification failed")

    def _check_source_ip(self, source_ip: Optional[str]) -> None:
        if not is_payfast_ip(source_ip):
            raise WebhookVerificationError(
                f"Invalid source IP: {source_ip}", provider=self.provider.value
            )

    def _check_signature(self, payload: Mapping[str, str]) -> None:
        received = payload.get("signature") or ""
        if not received:
            raise WebhookVerificationError("Missing signature", provider=self.provider.value)

        expected = payfast_signature(
            payload.items(), self.settings.payfast_passphrase, include_blank=True
        )
        if not hmac.compare_digest(expected, received.lower()):
            raise WebhookVerificationError("Invalid signature", provider=self.provider.value)

    async def _confirm_with_payfast(self, payload: Mapping[str, str]) -> None:
        async with httpx.AsyncClient(timeout=self.settings.gateway_timeout_seconds) as client:
            response = await client.post(
                f"{self.base_url}/eng/query/validate",
                content=payfast_param_string(payload.items(), include_blank=True),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        answer = response.text.strip()
        if answer != "VALID":
            raise WebhookVerificationError(
                f"PayFast validation failed: {answer}", provider=self.provider.value
            )

    def parse_webhook(self, payload: Mapping[str, str]) -> WebhookNotification:
        custom_1 = payload.get("custom_str1") or None
        custom_2 = payload.get("custom_str2") or None
        return WebhookNotification(
            provider=self.provider,
            reference=payload.get("m_payment_id") or "",
            transaction_id=payload.get("pf_payment_id") or "",
            status=self.map_status(payload.get("payment_status")),
            amount=rands_to_cents(payload.get("amount_gross")),
            order_id=custom_1,
            milestone_id=custom_2,
            custom_1=custom_1,
            custom_2=custom_2,
            message=payload.get("payment_method") or "",
            raw=dict(payload),
        )
