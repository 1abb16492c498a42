"""
API tests for review endpoints and the mock subscription confirmation.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from app.domain.marketplace import ReviewType
from app.domain.models import ActionResult
from app.domain.subscription import SubscriptionPlan


@pytest.fixture
def mock_review_actions(app):
    from app.api.routes.reviews import get_review_actions

    actions = MagicMock()
    actions.create_review = AsyncMock(return_value=ActionResult.ok(review_id="rev_1"))
    actions.get_reviews_for_user = AsyncMock(return_value=ActionResult.ok(reviews=[]))
    actions.can_review_order = AsyncMock(
        return_value=ActionResult.ok(can_review=False, has_reviewed=False, review_type=None)
    )
    app.dependency_overrides[get_review_actions] = lambda: actions
    return actions


class TestReviewEndpoints:

    def test_create_requires_login(self, client, login_as, mock_review_actions):
        login_as(None)

        response = client.post(
            "/api/reviews", json={"order_id": "ord_1", "overall_rating": 5, "comment": "Great work overall"}
        )

        assert response.status_code == 401
        mock_review_actions.create_review.assert_not_called()

    def test_create(self, client, login_as, identity, mock_review_actions):
        login_as(identity)

        response = client.post(
            "/api/reviews", json={"order_id": "ord_1", "overall_rating": 5, "comment": "Great work overall"}
        )

        assert response.status_code == 201
        assert response.json() == {"success": True, "review_id": "rev_1"}

    def test_rating_out_of_range_is_422(self, client, login_as, identity, mock_review_actions):
        login_as(identity)

        response = client.post(
            "/api/reviews", json={"order_id": "ord_1", "overall_rating": 6, "comment": "Great work overall"}
        )

        assert response.status_code == 422
        mock_review_actions.create_review.assert_not_called()

    def test_public_reviews_filter_by_type(self, client, login_as, mock_review_actions):
        login_as(None)

        response = client.get("/api/reviews/users/seller_1?type=buyer_to_seller&limit=10")

        assert response.status_code == 200
        mock_review_actions.get_reviews_for_user.assert_awaited_once_with(
            "seller_1", ReviewType.BUYER_TO_SELLER, 10
        )

    def test_eligibility_is_public(self, client, login_as, mock_review_actions):
        login_as(None)

        response = client.get("/api/reviews/orders/ord_1/eligibility")

        assert response.status_code == 200
        assert response.json()["can_review"] is False
        mock_review_actions.can_review_order.assert_awaited_once_with(None, "ord_1")


class TestConfirmSubscriptionEndpoint:

    @pytest.fixture
    def mock_subscription_actions(self, app):
        from app.api.routes.subscriptions import get_subscription_actions

        actions = MagicMock()
        actions.confirm_subscription = AsyncMock(return_value=ActionResult.ok(plan="monthly"))
        app.dependency_overrides[get_subscription_actions] = lambda: actions
        return actions

    def test_confirm(self, client, login_as, identity, mock_subscription_actions):
        login_as(identity)

        response = client.post(
            "/api/subscriptions/confirm",
            json={"plan": "monthly", "reference": "SUB-MONTHLY-1700000000000-user_1"},
        )

        assert response.status_code == 200
        assert response.json()["plan"] == "monthly"
        mock_subscription_actions.confirm_subscription.assert_awaited_once_with(
            identity, SubscriptionPlan.MONTHLY, "SUB-MONTHLY-1700000000000-user_1"
        )

    def test_confirm_failure_is_400(self, client, login_as, identity, mock_subscription_actions):
        login_as(identity)
        mock_subscription_actions.confirm_subscription.return_value = ActionResult.fail(
            "Payment already processed"
        )

        response = client.post(
            "/api/subscriptions/confirm",
            json={"plan": "monthly", "reference": "SUB-MONTHLY-1700000000000-user_1"},
        )

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Payment already processed"}
