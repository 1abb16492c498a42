"""
API Tests for payment webhooks (Ozow, PayFast)

Verifies:
- Authentication failure answers 400 and writes nothing
- Verified notifications are parsed and reconciled
- Processing errors are rolled back and still acknowledged
- Gateway return redirects land on the right dashboard page
"""

import pytest

from app.domain.payments import (
    PaymentProvider,
    PaymentStatus,
    WebhookNotification,
    WebhookVerification,
)


class TestPayFastITN:

    def test_invalid_itn_is_rejected(self, client, mock_payfast, mock_reconciler, sample_payfast_itn):
        mock_payfast.verify_webhook.return_value = WebhookVerification(
            valid=False, reason="Invalid signature"
        )

        response = client.post("/api/payments/payfast/notify", data=sample_payfast_itn)

        assert response.status_code == 400
        assert response.text == "Invalid ITN"
        mock_reconciler.reconcile.assert_not_called()

    def test_valid_itn_is_reconciled(self, client, mock_payfast, mock_reconciler, sample_payfast_itn):
        mock_payfast.verify_webhook.return_value = WebhookVerification(valid=True)
        notification = WebhookNotification(
            provider=PaymentProvider.PAYFAST,
            reference="ORD-LX2K9A-7QZP",
            status=PaymentStatus.SUCCESS,
            amount=51500,
            order_id="ord_7",
        )
        mock_payfast.parse_webhook.return_value = notification

        response = client.post("/api/payments/payfast/notify", data=sample_payfast_itn)

        assert response.status_code == 200
        assert response.text == "OK"
        mock_reconciler.reconcile.assert_awaited_once_with(notification)

    def test_itn_fields_reach_gateway_in_order(self, client, mock_payfast, mock_reconciler, sample_payfast_itn):
        mock_payfast.verify_webhook.return_value = WebhookVerification(valid=False)

        client.post("/api/payments/payfast/notify", data=sample_payfast_itn)

        payload = mock_payfast.verify_webhook.call_args.args[0]
        assert list(payload.keys()) == list(sample_payfast_itn.keys())

    def test_legacy_webhook_path(self, client, mock_payfast, mock_reconciler, sample_payfast_itn):
        mock_payfast.verify_webhook.return_value = WebhookVerification(valid=True)

        response = client.post("/api/webhooks/payfast", data=sample_payfast_itn)

        assert response.status_code == 200
        assert response.text == "OK"
        mock_reconciler.reconcile.assert_awaited_once()

    def test_processing_error_is_acknowledged(
        self, client, mock_payfast, mock_reconciler, db_session, sample_payfast_itn
    ):
        mock_payfast.verify_webhook.return_value = WebhookVerification(valid=True)
        mock_reconciler.reconcile.side_effect = RuntimeError("db down")

        response = client.post("/api/payments/payfast/notify", data=sample_payfast_itn)

        assert response.status_code == 200
        assert response.text == "OK"
        db_session.rollback.assert_awaited()


class TestOzowNotify:

    def test_invalid_hash_is_rejected(self, client, mock_ozow, mock_reconciler, sample_ozow_notification):
        mock_ozow.verify_webhook.return_value = WebhookVerification(valid=False, reason="Invalid signature")

        response = client.post("/api/payments/ozow/notify", data=sample_ozow_notification)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid signature"}
        mock_reconciler.reconcile.assert_not_called()

    def test_valid_notification_is_reconciled(self, client, mock_ozow, mock_reconciler, sample_ozow_notification):
        mock_ozow.verify_webhook.return_value = WebhookVerification(valid=True)

        response = client.post("/api/payments/ozow/notify", data=sample_ozow_notification)

        assert response.status_code == 200
        assert response.json() == {"success": True}
        mock_ozow.parse_webhook.assert_called_once()
        mock_reconciler.reconcile.assert_awaited_once()

    def test_processing_error_returns_success_false(
        self, client, mock_ozow, mock_reconciler, db_session, sample_ozow_notification
    ):
        mock_ozow.verify_webhook.return_value = WebhookVerification(valid=True)
        mock_reconciler.reconcile.side_effect = RuntimeError("boom")

        response = client.post("/api/payments/ozow/notify", data=sample_ozow_notification)

        assert response.status_code == 200
        assert response.json() == {"success": False}
        db_session.rollback.assert_awaited()


class TestReturnRedirects:

    def test_ozow_success_uses_passthrough_order(self, client, mock_transactions):
        response = client.get(
            "/api/payments/ozow/success",
            params={"TransactionReference": "ORD-1-ABCD", "Optional1": "ord_7", "Optional2": "ms_2"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        location = response.headers["location"]
        assert location.endswith("/dashboard/orders/ord_7?payment=success&milestone=ms_2")
        mock_transactions.get_by_reference.assert_not_called()

    def test_payfast_cancel_looks_up_pending_transaction(self, client, mock_transactions):
        pending = type("Pending", (), {"order_id": "ord_9", "milestone_id": None})()
        mock_transactions.get_by_reference.return_value = pending

        response = client.get(
            "/api/payments/payfast/cancel",
            params={"ref": "ORD-2-WXYZ"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"].endswith("/dashboard/orders/ord_9?payment=cancelled")
        mock_transactions.get_by_reference.assert_awaited_once_with("ORD-2-WXYZ")

    def test_subscription_return_goes_to_subscription_page(self, client, mock_transactions):
        response = client.get(
            "/api/payments/payfast/return",
            params={"ref": "SUB-MONTHLY-1718000000000-user_42"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert response.headers["location"].endswith("/dashboard/subscription?payment=success")

    def test_unknown_order_falls_back_to_order_list(self, client, mock_transactions):
        response = client.post("/api/payments/ozow/error", data={}, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"].endswith("/dashboard/orders?payment=error")
