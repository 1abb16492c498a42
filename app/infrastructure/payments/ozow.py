"""
Ozow Instant EFT Gateway

SHA-512 hash checks over fixed field orders, redirect-based initiation and
a status lookup through the Ozow API.
"""

import hashlib
import hmac
import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx

from app.config.settings import Settings, get_settings
from app.domain.payments import (
    COUNTRY_CODE,
    CURRENCY,
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

REQUEST_HASH_FIELDS = [
    "SiteCode",
    "CountryCode",
    "CurrencyCode",
    "Amount",
    "TransactionReference",
    "BankReference",
    "Optional1",
    "Optional2",
    "Optional3",
    "Optional4",
    "Optional5",
    "Customer",
    "CancelUrl",
    "ErrorUrl",
    "SuccessUrl",
    "NotifyUrl",
    "IsTest",
]

NOTIFY_HASH_FIELDS = [
    "SiteCode",
    "TransactionId",
    "TransactionReference",
    "Amount",
    "Status",
    "Optional1",
    "Optional2",
    "Optional3",
    "Optional4",
    "Optional5",
    "CurrencyCode",
    "IsTest",
    "StatusMessage",
]

SUCCESS_PATH = "/api/payments/ozow/success"
ERROR_PATH = "/api/payments/ozow/error"
CANCEL_PATH = "/api/payments/ozow/cancel"
NOTIFY_PATH = "/api/payments/ozow/notify"

BANK_REFERENCE_MAX = 20


def ozow_hash(values: Mapping[str, str], fields: list[str], private_key: str) -> str:
    """Lowercase SHA-512 hex of the ordered field values plus the private key."""
    joined = "".join(str(values.get(field) or "") for field in fields)
    return hashlib.sha512(f"{joined}{private_key}".encode("utf-8")).hexdigest().lower()


class OzowGateway(PaymentGateway):
    """Ozow adapter."""

    provider = PaymentProvider.OZOW
    status_map = {
        "Complete": PaymentStatus.SUCCESS,
        "Pending": PaymentStatus.PENDING,
        "Cancelled": PaymentStatus.CANCELLED,
        "Error": PaymentStatus.FAILED,
        "Abandoned": PaymentStatus.CANCELLED,
        "PendingInvestigation": PaymentStatus.PENDING,
    }

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return self.settings.ozow_configured

    @property
    def private_key(self) -> str:
        return self.settings.ozow_private_key or ""

    async def initiate(self, request: PaymentRequest, base_url: str) -> PaymentResult:
        """
        Build the signed Ozow redirect URL.

        Optional1/Optional2 carry the order and milestone ids (or user id and
        plan for subscriptions) back in the notification.
        """
        if not self.is_configured:
            return PaymentResult(success=False, error="OZOW not configured")

        first, second = request.passthrough()
        params = {
            "SiteCode": self.settings.ozow_site_code,
            "CountryCode": COUNTRY_CODE,
            "CurrencyCode": CURRENCY,
            "Amount": cents_to_rands(request.amount),
            "TransactionReference": request.reference,
            "BankReference": request.description[:BANK_REFERENCE_MAX],
            "Optional1": first,
            "Optional2": second,
            "Optional3": "",
            "Optional4": "",
            "Optional5": "",
            "Customer": request.buyer_email,
            "CancelUrl": f"{base_url}{CANCEL_PATH}",
            "ErrorUrl": f"{base_url}{ERROR_PATH}",
            "SuccessUrl": f"{base_url}{SUCCESS_PATH}",
            "NotifyUrl": f"{base_url}{NOTIFY_PATH}",
            "IsTest": "true" if self.settings.ozow_test_mode else "false",
        }
        params["HashCheck"] = ozow_hash(params, REQUEST_HASH_FIELDS, self.private_key)

        redirect_url = f"{self.settings.ozow_payment_url}/?{urlencode(params)}"
        logger.info(f"[OZOW] Initiated payment {request.reference} for {request.amount} cents")
        return PaymentResult(
            success=True,
            redirect_url=redirect_url,
            transaction_id=request.reference,
        )

    async def verify_webhook(
        self,
        payload: Mapping[str, str],
        context: Optional[Dict[str, Any]] = None,
    ) -> WebhookVerification:
        """Recompute the notification hash and compare it in constant time."""
        try:
            self._check_hash(payload)
            return WebhookVerification(valid=True)
        except WebhookVerificationError as e:
            logger.warning(f"[OZOW] Notification rejected: {e.message}")
            return WebhookVerification(valid=False, reason=e.message)
        except Exception as e:
            logger.error(f"[OZOW] Webhook verification error: {e}")
            return WebhookVerification(valid=False, reason="Verification failed")

    def _check_hash(self, payload: Mapping[str, str]) -> None:
        if not self.private_key:
            raise WebhookVerificationError("OZOW not configured", provider=self.provider.value)

        received = (payload.get("Hash") or "").lower()
        if not received:
            raise WebhookVerificationError("Missing hash", provider=self.provider.value)

        expected = ozow_hash(payload, NOTIFY_HASH_FIELDS, self.private_key)
        if not hmac.compare_digest(expected, received):
            raise WebhookVerificationError("Invalid signature", provider=self.provider.value)

    def parse_webhook(self, payload: Mapping[str, str]) -> WebhookNotification:
        optional1 = payload.get("Optional1") or None
        optional2 = payload.get("Optional2") or None
        return WebhookNotification(
            provider=self.provider,
            reference=payload.get("TransactionReference") or "",
            transaction_id=payload.get("TransactionId") or "",
            status=self.map_status(payload.get("Status")),
            amount=rands_to_cents(payload.get("Amount")),
            order_id=optional1,
            milestone_id=optional2,
            custom_1=optional1,
            custom_2=optional2,
            message=payload.get("StatusMessage") or "",
            raw=dict(payload),
        )

    async def get_transaction_status(self, reference: str) -> Dict[str, Any]:
        """
        Ask Ozow for the status of a transaction by merchant reference.

        Returns:
            {"success": bool, "status"?: PaymentStatus, "error"?: str}
        """
        if not self.settings.ozow_api_key:
            return {"success": False, "error": "OZOW API key not configured"}

        try:
            async with httpx.AsyncClient(timeout=self.settings.gateway_timeout_seconds) as client:
                response = await client.get(
                    f"{self.settings.ozow_base_url}/GetTransactionByReference",
                    params={
                        "siteCode": self.settings.ozow_site_code,
                        "transactionReference": reference,
                    },
                    headers={
                        "Accept": "application/json",
                        "ApiKey": self.settings.ozow_api_key,
                    },
                )
                response.raise_for_status()
                data = response.json()

            # The API answers with a list of attempts; the latest wins
            if isinstance(data, list):
                data = data[-1] if data else {}
            raw_status = data.get("status") or data.get("Status")
            return {"success": True, "status": self.map_status(raw_status), "raw_status": raw_status}

        except httpx.HTTPStatusError as e:
            logger.warning(f"[OZOW] HTTP {e.response.status_code} checking {reference}")
            return {"success": False, "error": "Failed to fetch transaction status"}
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[OZOW] Status check error for {reference}: {e}")
            return {"success": False, "error": "Failed to check transaction status"}
