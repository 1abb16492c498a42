"""
Unit tests for the Ozow and PayFast gateway adapters.

Covers hash/signature construction, webhook verification (which must fail
closed) and notification parsing.
"""

import hashlib
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.config.settings import Settings
from app.domain.payments import PaymentProvider, PaymentRequest, PaymentStatus
from app.infrastructure.payments import OzowGateway, PayFastGateway, get_gateway
from app.infrastructure.payments.ozow import NOTIFY_HASH_FIELDS, ozow_hash
from app.infrastructure.payments.payfast import (
    is_payfast_ip,
    payfast_param_string,
    payfast_signature,
)


@pytest.fixture
def ozow_settings():
    return Settings(
        ozow_site_code="ZOM-001",
        ozow_private_key="private-key",
        app_url="https://zomieks.test",
    )


@pytest.fixture
def payfast_settings():
    return Settings(
        payfast_merchant_id="10000100",
        payfast_merchant_key="46f0cd694581a",
        payfast_passphrase="jt7NOE43FZPn",
        payfast_sandbox=False,
        payfast_validate_ip=True,
    )


def signed_ozow_payload(private_key="private-key", **overrides):
    payload = {
        "SiteCode": "ZOM-001",
        "TransactionId": "txn_abc",
        "TransactionReference": "ORD-LX2K9A-7QZP",
        "Amount": "515.00",
        "Status": "Complete",
        "Optional1": "ord_7",
        "Optional2": "",
        "CurrencyCode": "ZAR",
        "IsTest": "false",
        "StatusMessage": "",
    }
    payload.update(overrides)
    payload["Hash"] = ozow_hash(payload, NOTIFY_HASH_FIELDS, private_key)
    return payload


def mock_validate_client(answer: str):
    response = MagicMock()
    response.text = answer
    client = MagicMock()
    client.post = AsyncMock(return_value=response)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


class TestGatewayLookup:

    def test_known_providers(self):
        assert isinstance(get_gateway("ozow"), OzowGateway)
        assert isinstance(get_gateway("PAYFAST"), PayFastGateway)

    def test_unknown_provider(self):
        assert get_gateway("stripe") is None


class TestOzow:

    def test_hash_is_lowercase_sha512_of_ordered_values(self):
        values = {"SiteCode": "A", "TransactionId": "B", "Amount": "10.00"}
        expected = hashlib.sha512("ABkey".encode("utf-8")).hexdigest()

        assert ozow_hash(values, ["SiteCode", "TransactionId"], "key") == expected

    @pytest.mark.asyncio
    async def test_verify_accepts_valid_hash(self, ozow_settings):
        gateway = OzowGateway(ozow_settings)

        result = await gateway.verify_webhook(signed_ozow_payload())

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_verify_accepts_uppercase_hash(self, ozow_settings):
        payload = signed_ozow_payload()
        payload["Hash"] = payload["Hash"].upper()

        result = await OzowGateway(ozow_settings).verify_webhook(payload)

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_verify_rejects_tampered_amount(self, ozow_settings):
        payload = signed_ozow_payload()
        payload["Amount"] = "1.00"

        result = await OzowGateway(ozow_settings).verify_webhook(payload)

        assert result.valid is False
        assert result.reason == "Invalid signature"

    @pytest.mark.asyncio
    async def test_verify_rejects_missing_hash(self, ozow_settings):
        payload = signed_ozow_payload()
        del payload["Hash"]

        result = await OzowGateway(ozow_settings).verify_webhook(payload)

        assert result.valid is False

    @pytest.mark.asyncio
    async def test_verify_fails_closed_without_key(self):
        gateway = OzowGateway(Settings(ozow_site_code="ZOM-001", ozow_private_key=None))

        result = await gateway.verify_webhook(signed_ozow_payload())

        assert result.valid is False

    def test_parse_notification(self, ozow_settings):
        notification = OzowGateway(ozow_settings).parse_webhook(signed_ozow_payload())

        assert notification.provider == PaymentProvider.OZOW
        assert notification.reference == "ORD-LX2K9A-7QZP"
        assert notification.transaction_id == "txn_abc"
        assert notification.status == PaymentStatus.SUCCESS
        assert notification.amount == 51500
        assert notification.order_id == "ord_7"
        assert notification.milestone_id is None

    @pytest.mark.parametrize("raw,expected", [
        ("Complete", PaymentStatus.SUCCESS),
        ("PendingInvestigation", PaymentStatus.PENDING),
        ("Abandoned", PaymentStatus.CANCELLED),
        ("Error", PaymentStatus.FAILED),
        ("Mystery", PaymentStatus.FAILED),
        (None, PaymentStatus.FAILED),
    ])
    def test_status_mapping(self, ozow_settings, raw, expected):
        assert OzowGateway(ozow_settings).map_status(raw) == expected

    @pytest.mark.asyncio
    async def test_initiate_builds_signed_redirect(self, ozow_settings):
        gateway = OzowGateway(ozow_settings)

        result = await gateway.initiate(
            PaymentRequest(
                reference="ORD-1-ABCD",
                amount=51500,
                description="Order ZOM-1-ABCD",
                buyer_email="buyer@example.co.za",
                order_id="ord_7",
                milestone_id="ms_1",
            ),
            "https://zomieks.test",
        )

        assert result.success is True
        assert result.redirect_url.startswith("https://pay.ozow.com/?")
        assert "Amount=515.00" in result.redirect_url
        assert "Optional1=ord_7" in result.redirect_url
        assert "Optional2=ms_1" in result.redirect_url
        assert "HashCheck=" in result.redirect_url

    @pytest.mark.asyncio
    async def test_initiate_unconfigured(self):
        gateway = OzowGateway(Settings(ozow_site_code=None, ozow_private_key=None))

        result = await gateway.initiate(
            PaymentRequest(reference="ORD-1", amount=5000, description="x", buyer_email="a@b.co"),
            "https://zomieks.test",
        )

        assert result.success is False


class TestPayFastSignature:

    def test_param_string_keeps_order_and_skips_blanks(self):
        pairs = [
            ("merchant_id", "10000100"),
            ("item_name", "Logo design"),
            ("custom_str2", ""),
            ("amount", "100.00"),
            ("signature", "ignored"),
        ]

        assert payfast_param_string(pairs) == "merchant_id=10000100&item_name=Logo+design&amount=100.00"

    def test_signature_with_passphrase(self):
        pairs = [("merchant_id", "10000100"), ("amount", "100.00")]
        expected = hashlib.md5(
            "merchant_id=10000100&amount=100.00&passphrase=my+secret".encode("utf-8")
        ).hexdigest()

        assert payfast_signature(pairs, "my secret") == expected

    def test_signature_depends_on_field_order(self):
        forward = payfast_signature([("a", "1"), ("b", "2")])
        backward = payfast_signature([("b", "2"), ("a", "1")])

        assert forward != backward

    @pytest.mark.parametrize("address,expected", [
        ("197.97.145.150", True),
        ("41.74.179.200", True),
        ("144.126.193.139", True),
        ("8.8.8.8", False),
        ("not-an-ip", False),
        (None, False),
    ])
    def test_source_ip_check(self, address, expected):
        assert is_payfast_ip(address) is expected


class TestPayFastITN:

    def signed_itn(self, passphrase="jt7NOE43FZPn"):
        fields = [
            ("m_payment_id", "ORD-LX2K9A-7QZP"),
            ("pf_payment_id", "1089250"),
            ("payment_status", "COMPLETE"),
            ("item_name", "Order ZOM-1"),
            ("amount_gross", "515.00"),
            ("custom_str1", "ord_7"),
            ("custom_str2", "ms_1"),
            ("merchant_id", "10000100"),
        ]
        payload = dict(fields)
        payload["signature"] = payfast_signature(fields, passphrase)
        return payload

    @pytest.mark.asyncio
    async def test_rejects_foreign_source_ip(self, payfast_settings):
        gateway = PayFastGateway(payfast_settings)

        result = await gateway.verify_webhook(self.signed_itn(), {"source_ip": "8.8.8.8"})

        assert result.valid is False
        assert "Invalid source IP" in result.reason

    @pytest.mark.asyncio
    async def test_rejects_bad_signature(self, payfast_settings):
        payload = self.signed_itn(passphrase="wrong")

        result = await PayFastGateway(payfast_settings).verify_webhook(
            payload, {"source_ip": "197.97.145.150"}
        )

        assert result.valid is False
        assert result.reason == "Invalid signature"

    @pytest.mark.asyncio
    async def test_blank_fields_are_part_of_the_itn_signature(self, payfast_settings):
        fields = [
            ("m_payment_id", "ORD-LX2K9A-7QZP"),
            ("pf_payment_id", "1089250"),
            ("payment_status", "COMPLETE"),
            ("item_name", "Order ZOM-1"),
            ("item_description", ""),
            ("amount_gross", "515.00"),
            ("custom_str1", "ord_7"),
            ("custom_str2", ""),
            ("merchant_id", "10000100"),
        ]
        signed = (
            "m_payment_id=ORD-LX2K9A-7QZP&pf_payment_id=1089250&payment_status=COMPLETE"
            "&item_name=Order+ZOM-1&item_description=&amount_gross=515.00"
            "&custom_str1=ord_7&custom_str2=&merchant_id=10000100&passphrase=jt7NOE43FZPn"
        )
        payload = dict(fields)
        payload["signature"] = hashlib.md5(signed.encode("utf-8")).hexdigest()
        client = mock_validate_client("VALID")

        with patch("app.infrastructure.payments.payfast.httpx.AsyncClient", return_value=client):
            result = await PayFastGateway(payfast_settings).verify_webhook(
                payload, {"source_ip": "197.97.145.150"}
            )

        assert result.valid is True
        content = client.post.await_args.kwargs["content"]
        assert "&item_description=&" in content
        assert content.endswith("custom_str2=&merchant_id=10000100")

    def test_itn_param_string_keeps_blanks(self):
        pairs = [("item_name", "Logo"), ("custom_str2", ""), ("signature", "x")]

        assert payfast_param_string(pairs, include_blank=True) == "item_name=Logo&custom_str2="

    @pytest.mark.asyncio
    async def test_accepts_when_payfast_confirms(self, payfast_settings):
        client = mock_validate_client("VALID")

        with patch("app.infrastructure.payments.payfast.httpx.AsyncClient", return_value=client):
            result = await PayFastGateway(payfast_settings).verify_webhook(
                self.signed_itn(), {"source_ip": "197.97.145.150"}
            )

        assert result.valid is True
        url = client.post.await_args.args[0]
        assert url == "https://www.payfast.co.za/eng/query/validate"
        assert "signature=" not in client.post.await_args.kwargs["content"]

    @pytest.mark.asyncio
    async def test_rejects_when_payfast_says_invalid(self, payfast_settings):
        client = mock_validate_client("INVALID")

        with patch("app.infrastructure.payments.payfast.httpx.AsyncClient", return_value=client):
            result = await PayFastGateway(payfast_settings).verify_webhook(
                self.signed_itn(), {"source_ip": "197.97.145.150"}
            )

        assert result.valid is False

    @pytest.mark.asyncio
    async def test_validation_error_fails_closed(self, payfast_settings):
        client = mock_validate_client("VALID")
        client.post.side_effect = RuntimeError("network down")

        with patch("app.infrastructure.payments.payfast.httpx.AsyncClient", return_value=client):
            result = await PayFastGateway(payfast_settings).verify_webhook(
                self.signed_itn(), {"source_ip": "197.97.145.150"}
            )

        assert result.valid is False
        assert result.reason == "Verification failed"

    def test_parse_itn(self, payfast_settings):
        notification = PayFastGateway(payfast_settings).parse_webhook(self.signed_itn())

        assert notification.provider == PaymentProvider.PAYFAST
        assert notification.reference == "ORD-LX2K9A-7QZP"
        assert notification.transaction_id == "1089250"
        assert notification.status == PaymentStatus.SUCCESS
        assert notification.amount == 51500
        assert notification.order_id == "ord_7"
        assert notification.milestone_id == "ms_1"

    @pytest.mark.asyncio
    async def test_initiate_unconfigured(self):
        gateway = PayFastGateway(Settings(payfast_merchant_id=None, payfast_merchant_key=None))

        result = await gateway.initiate(
            PaymentRequest(reference="SUB-MONTHLY-1-user", amount=9900, description="Pro", buyer_email="a@b.co"),
            "https://zomieks.test",
        )

        assert result.success is False
        assert result.error == "PayFast not configured"

    def test_fields_are_signed_in_submission_order(self, payfast_settings):
        gateway = PayFastGateway(payfast_settings)
        fields = gateway.build_fields(
            PaymentRequest(
                reference="SUB-MONTHLY-1-user_42",
                amount=9900,
                description="Zomieks Pro Monthly",
                buyer_email="thandi@example.co.za",
                buyer_name="Thandi Mokoena",
                user_id="user_42",
                plan="monthly",
            ),
            "https://zomieks.test",
        )

        keys = [key for key, _ in fields]
        assert keys[0] == "merchant_id"
        assert keys[-1] == "signature"
        values = dict(fields)
        assert values["amount"] == "99.00"
        assert values["custom_str1"] == "user_42"
        assert values["custom_str2"] == "monthly"
        assert values["name_last"] == "Mokoena"
        assert values["signature"] == payfast_signature(fields[:-1], "jt7NOE43FZPn")
