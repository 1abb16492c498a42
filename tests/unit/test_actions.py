"""
Unit tests for action classes.

Repositories are swapped for mocks after construction; each test checks the
business rule an action enforces and the ActionResult it reports.
"""

import pytest
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

from sqlalchemy.exc import IntegrityError

from app.actions.admin import AdminActions
from app.actions.auth import AuthActions
from app.actions.messaging import MessagingActions, preview
from app.actions.orders import OrderActions
from app.actions.outsourcing import INVITATION_TTL, OutsourcingActions
from app.actions.payments import PaymentActions
from app.actions.projects import ProjectActions
from app.actions.reviews import ReviewActions, summarize_ratings
from app.actions.services import FREE_SERVICE_LIMIT_MESSAGE, ServiceActions
from app.actions.shortlist import ShortlistActions
from app.actions.subscriptions import MOCK_CHECKOUT_PATH, SubscriptionActions
from app.domain.marketplace import (
    FREE_BID_LIMIT_MESSAGE,
    CreateOutsourceRequest,
    CreateReviewRequest,
    CreateServiceRequest,
    ShortlistAddRequest,
    SubmitBidRequest,
)
from app.domain.models import NOT_LOGGED_IN
from app.domain.subscription import PRO_REQUIRED_MESSAGE, SubscriptionPlan
from app.infrastructure.auth.passwords import hash_password
from app.infrastructure.db.models.messaging import Conversation
from app.infrastructure.db.models.outsourcing import OutsourceRequest


def async_repo(**methods):
    repo = MagicMock()
    for name, value in methods.items():
        setattr(repo, name, AsyncMock(return_value=value))
    return repo


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.notify = AsyncMock()
    return mock


def free_subscription(**overrides):
    values = {
        "id": "sub_1",
        "plan": "free",
        "status": "active",
        "bids_used": 0,
        "services_used": 0,
        "current_period_start": None,
        "current_period_end": None,
        "cancelled_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def pro_subscription(**overrides):
    overrides.setdefault("plan", "monthly")
    overrides.setdefault(
        "current_period_end", datetime.now(timezone.utc) + timedelta(days=20)
    )
    return free_subscription(**overrides)


# =============================================================================
# Accounts
# =============================================================================

class TestAuthActions:

    @pytest.fixture
    def actions(self, db_session, notifier):
        store = MagicMock()
        store.create_session = AsyncMock(
            return_value=("opaque-token", SimpleNamespace(expires_at=datetime(2030, 1, 1)))
        )
        store.delete_session = AsyncMock()
        actions = AuthActions(db_session, notifier, session_store=store)
        actions.users = async_repo(get_by_email=None, save=None)
        actions.profiles = async_repo(create=None)
        actions.subscriptions = async_repo(create_free=None)
        actions.tokens = async_repo(create_verification_token=None)
        actions.email = async_repo(send=None)
        return actions

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,email,password,confirm,error", [
        ("", "a@b.co", "Secret123", "Secret123", "All fields are required"),
        ("Thandi", "a@b.co", "Secret123", "Secret124", "Passwords do not match"),
        ("Thandi", "not-an-email", "Secret123", "Secret123", "Invalid email format"),
    ])
    async def test_register_validation(self, actions, name, email, password, confirm, error):
        result = await actions.register(name, email, password, confirm)

        assert result.success is False
        assert result.error == error

    @pytest.mark.asyncio
    async def test_register_weak_password_lists_all_errors(self, actions):
        result = await actions.register("Thandi", "a@b.co", "weakpass", "weakpass")

        assert result.success is False
        assert result.error == "Password must contain at least one uppercase letter"
        assert result.errors == [
            "Password must contain at least one uppercase letter",
            "Password must contain at least one number",
        ]

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, actions):
        actions.users.get_by_email.return_value = SimpleNamespace(id="u1")

        result = await actions.register("Thandi", "Thandi@Example.co.za", "Secret123", "Secret123")

        assert result.error == "An account with this email already exists"
        actions.users.get_by_email.assert_awaited_once_with("thandi@example.co.za")

    @pytest.mark.asyncio
    async def test_register_creates_account_and_session(self, actions):
        actions.users.create = AsyncMock(side_effect=lambda user: setattr(user, "id", "u_new") or user)

        result = await actions.register("Thandi", "thandi@example.co.za", "Secret123", "Secret123")

        assert result.success is True
        assert result.data["user_id"] == "u_new"
        assert result.data["token"] == "opaque-token"
        actions.subscriptions.create_free.assert_awaited_once()
        actions.tokens.create_verification_token.assert_awaited_once()
        assert actions.email.send.await_args.kwargs["template"] == "email_verification"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, actions):
        actions.users.get_by_email.return_value = SimpleNamespace(
            id="u1", is_suspended=False, password_hash=hash_password("Secret123")
        )

        result = await actions.login("thandi@example.co.za", "Secret999")

        assert result.error == "Invalid email or password"
        actions.sessions.create_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_login_suspended(self, actions):
        actions.users.get_by_email.return_value = SimpleNamespace(
            id="u1", is_suspended=True, suspended_reason="Fraud", password_hash="x"
        )

        result = await actions.login("thandi@example.co.za", "Secret123")

        assert result.error == "Your account has been suspended. Fraud"


# =============================================================================
# Bids
# =============================================================================

class TestBidActions:

    @pytest.fixture
    def actions(self, db_session, notifier):
        actions = ProjectActions(db_session, notifier)
        actions.projects = async_repo(
            get_by_id=SimpleNamespace(id="p1", buyer_id="buyer", status="open", title="Logo"),
            increment_bid_count=None,
        )
        actions.bids = async_repo(get_for_bidder=None)
        actions.subscriptions = async_repo(get_by_user_id=free_subscription(), increment_usage=None)
        return actions

    def bid(self):
        return SubmitBidRequest(
            project_id="p1", amount=150000, proposal="I can do this well", delivery_days=7
        )

    @pytest.mark.asyncio
    async def test_unverified_cannot_bid(self, actions, identity):
        result = await actions.submit_bid(identity, self.bid())

        assert result.error == "You must verify your ID to submit bids"

    @pytest.mark.asyncio
    async def test_free_bid_limit(self, actions, identity):
        identity.is_id_verified = True
        actions.subscriptions.get_by_user_id.return_value = free_subscription(bids_used=5)

        result = await actions.submit_bid(identity, self.bid())

        assert result.error == FREE_BID_LIMIT_MESSAGE
        actions.bids.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_pro_is_not_capped(self, actions, identity, notifier):
        identity.is_id_verified = True
        actions.subscriptions.get_by_user_id.return_value = pro_subscription(bids_used=40)
        actions.bids.create = AsyncMock(side_effect=lambda bid: setattr(bid, "id", "bid_1") or bid)

        result = await actions.submit_bid(identity, self.bid())

        assert result.success is True
        assert result.data == {"bid_id": "bid_1"}
        actions.subscriptions.increment_usage.assert_awaited_once_with("user_1", "bids_used")
        assert notifier.notify.await_args.args[0].user_id == "buyer"

    @pytest.mark.asyncio
    async def test_cannot_bid_on_own_project(self, actions, identity):
        identity.is_id_verified = True
        actions.projects.get_by_id.return_value = SimpleNamespace(
            id="p1", buyer_id="user_1", status="open", title="Logo"
        )

        result = await actions.submit_bid(identity, self.bid())

        assert result.error == "You cannot bid on your own project"


# =============================================================================
# Payments
# =============================================================================

class TestPaymentActions:

    @pytest.fixture
    def actions(self, db_session, notifier):
        actions = PaymentActions(db_session, notifier)
        actions.orders = async_repo(get_by_id=SimpleNamespace(
            id="ord_7",
            buyer_id="user_1",
            status="pending_payment",
            total_amount=51500,
            order_number="ZOM-1",
        ))
        actions.milestones = async_repo(get_for_order=None)
        actions.transactions = async_repo(create=None, mark_failed=True)
        actions.users = async_repo(get_by_id=None)
        return actions

    @pytest.mark.asyncio
    async def test_requires_login(self, actions):
        result = await actions.initiate_payment(None, "ord_7")

        assert result.error == NOT_LOGGED_IN

    @pytest.mark.asyncio
    async def test_unknown_provider(self, actions, identity):
        result = await actions.initiate_payment(identity, "ord_7", provider="bitcoin")

        assert result.error == "Invalid payment provider"

    @pytest.mark.asyncio
    async def test_other_buyers_order(self, actions, identity):
        actions.orders.get_by_id.return_value.buyer_id = "someone_else"

        result = await actions.initiate_payment(identity, "ord_7")

        assert result.error == "Order not found"

    @pytest.mark.asyncio
    async def test_order_already_paid(self, actions, identity):
        actions.orders.get_by_id.return_value.status = "in_progress"

        result = await actions.initiate_payment(identity, "ord_7")

        assert result.error == "Order already paid"

    @pytest.mark.asyncio
    async def test_milestone_already_funded(self, actions, identity):
        actions.milestones.get_for_order.return_value = SimpleNamespace(
            id="ms_1", status="funded", amount=20000, title="Draft"
        )

        result = await actions.initiate_payment(identity, "ord_7", milestone_id="ms_1")

        assert result.error == "Milestone already funded"

    @pytest.mark.asyncio
    async def test_amount_below_minimum(self, actions, identity):
        actions.orders.get_by_id.return_value.total_amount = 4999

        result = await actions.initiate_payment(identity, "ord_7")

        assert result.error == "Payment amount is below the R50 minimum"
        actions.transactions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_gateway_failure_marks_ledger_failed(self, actions, identity):
        # PayFast credentials are absent in the test environment
        result = await actions.initiate_payment(identity, "ord_7", provider="payfast")

        assert result.success is False
        actions.transactions.create.assert_awaited_once()
        pending = actions.transactions.create.await_args.args[0]
        assert pending.status == "pending"
        assert pending.type == "escrow_fund"
        assert pending.provider_reference.startswith("ORD-")
        actions.transactions.mark_failed.assert_awaited_once()


# =============================================================================
# Messaging & Shortlist
# =============================================================================

class TestMessagingActions:

    @pytest.fixture
    def actions(self, db_session, notifier):
        actions = MessagingActions(db_session, notifier)
        actions.conversations = async_repo(get_by_id=None)
        actions.users = async_repo(get_by_id=None)
        return actions

    @pytest.mark.asyncio
    async def test_empty_message(self, actions, identity):
        result = await actions.send_message(identity, "conv_1", "   ")

        assert result.error == "Message cannot be empty"
        actions.conversations.get_by_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_cannot_message_self(self, actions, identity):
        result = await actions.get_or_create_conversation(identity, "user_1")

        assert result.error == "You cannot message yourself"

    @pytest.mark.asyncio
    async def test_unknown_conversation(self, actions, identity):
        result = await actions.send_message(identity, "conv_1", "Hello")

        assert result.error == "Conversation not found"

    def test_preview_truncates(self):
        assert preview("short") == "short"
        assert preview("x" * 150) == "x" * 100 + "..."

    @pytest.mark.asyncio
    async def test_conversation_details(self, actions, identity):
        actions.conversations.get_by_id.return_value = Conversation(
            id="conv_1", participant1_id="u2", participant2_id="user_1"
        )
        actions.users.get_by_id.return_value = SimpleNamespace(id="u2", name="Sipho", avatar_url=None)

        result = await actions.get_conversation_by_id(identity, "conv_1")

        conversation = result.data["conversation"]
        assert conversation["id"] == "conv_1"
        assert conversation["other_user"] == {"id": "u2", "name": "Sipho", "avatar_url": None}
        actions.users.get_by_id.assert_awaited_once_with("u2")

    @pytest.mark.asyncio
    async def test_conversation_details_hidden_from_outsiders(self, actions, identity):
        actions.conversations.get_by_id.return_value = Conversation(
            id="conv_1", participant1_id="u2", participant2_id="u3"
        )

        result = await actions.get_conversation_by_id(identity, "conv_1")

        assert result.error == "Conversation not found"


class TestShortlistActions:

    @pytest.fixture
    def actions(self, db_session, notifier):
        actions = ShortlistActions(db_session, notifier)
        actions.subscriptions = async_repo(get_by_user_id=free_subscription())
        actions.users = async_repo(get_by_id=SimpleNamespace(id="freelancer"))
        actions.shortlist = async_repo(get_entry=None)
        return actions

    @pytest.mark.asyncio
    async def test_free_plan_is_refused(self, actions, identity):
        result = await actions.add_to_shortlist(identity, ShortlistAddRequest(user_id="freelancer"))

        assert result.error == PRO_REQUIRED_MESSAGE

    @pytest.mark.asyncio
    async def test_cannot_add_self(self, actions, identity):
        actions.subscriptions.get_by_user_id.return_value = pro_subscription()

        result = await actions.add_to_shortlist(identity, ShortlistAddRequest(user_id="user_1"))

        assert result.error == "You cannot add yourself to your shortlist"

    @pytest.mark.asyncio
    async def test_expired_pro_is_refused(self, actions, identity):
        actions.subscriptions.get_by_user_id.return_value = pro_subscription(
            current_period_end=datetime.now(timezone.utc) - timedelta(days=1)
        )

        result = await actions.get_shortlist(identity)

        assert result.error == PRO_REQUIRED_MESSAGE

    @pytest.mark.asyncio
    async def test_anonymous_check(self, actions):
        result = await actions.is_in_shortlist(None, "freelancer")

        assert result.success is True
        assert result.data == {"in_shortlist": False}

    @pytest.mark.asyncio
    async def test_shortlist_by_category(self, actions, identity):
        actions.subscriptions.get_by_user_id.return_value = pro_subscription()
        entry = MagicMock(shortlisted_user_id="freelancer")
        entry.model_dump.return_value = {"shortlisted_user_id": "freelancer", "category_id": "cat_design"}
        actions.shortlist.list_for_user = AsyncMock(return_value=[entry])
        actions.users.get_by_id.return_value = SimpleNamespace(
            id="freelancer", name="Lerato", avatar_url=None, is_id_verified=True
        )

        result = await actions.get_shortlist_by_category(identity, "cat_design")

        assert result.success is True
        assert result.data["entries"][0]["category_id"] == "cat_design"
        actions.shortlist.list_for_user.assert_awaited_once_with("user_1", "cat_design")


# =============================================================================
# Orders, Services & Outsourcing
# =============================================================================

class TestOrderRequirements:

    @pytest.fixture
    def actions(self, db_session, notifier):
        actions = OrderActions(db_session, notifier)
        actions.orders = async_repo(get_by_id=None, save=None)
        return actions

    def order(self, **overrides):
        values = {
            "id": "ord_1",
            "order_number": "ZMK-2410-ABCD",
            "buyer_id": "user_1",
            "seller_id": "seller_1",
            "status": "pending_requirements",
            "requirements": None,
        }
        values.update(overrides)
        return SimpleNamespace(**values)

    @pytest.mark.asyncio
    async def test_requirements_start_the_order(self, actions, identity, notifier):
        order = self.order()
        actions.orders.get_by_id.return_value = order

        result = await actions.submit_requirements(identity, "ord_1", "  Logo in navy and gold  ")

        assert result.data == {"order_id": "ord_1", "status": "in_progress"}
        assert order.requirements == "Logo in navy and gold"
        assert notifier.notify.await_args.args[0].user_id == "seller_1"

    @pytest.mark.asyncio
    async def test_requirements_on_running_order_keep_status(self, actions, identity):
        order = self.order(status="in_progress")
        actions.orders.get_by_id.return_value = order

        result = await actions.submit_requirements(identity, "ord_1", "Use the attached brand guide")

        assert result.data["status"] == "in_progress"
        assert order.requirements == "Use the attached brand guide"

    @pytest.mark.asyncio
    async def test_only_buyer_submits_requirements(self, actions, identity):
        actions.orders.get_by_id.return_value = self.order(buyer_id="buyer_9", seller_id="user_1")

        result = await actions.submit_requirements(identity, "ord_1", "Anything")

        assert result.error == "Unauthorized"
        actions.orders.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_delivered_order_refuses_requirements(self, actions, identity):
        actions.orders.get_by_id.return_value = self.order(status="delivered")

        result = await actions.submit_requirements(identity, "ord_1", "Too late")

        assert result.error == "Order is not awaiting requirements"


class TestServiceActions:

    @pytest.fixture
    def verified(self, identity):
        return identity.model_copy(update={"is_id_verified": True})

    @pytest.fixture
    def actions(self, db_session, notifier):
        actions = ServiceActions(db_session, notifier)
        actions.subscriptions = async_repo(get_by_user_id=free_subscription(), increment_usage=None)
        actions.categories = async_repo(get_active=SimpleNamespace(id="cat_design"))
        actions.services = async_repo()
        actions.services.create = AsyncMock(side_effect=lambda service: service)
        return actions

    def service_request(self):
        return CreateServiceRequest(
            title="Brand identity design",
            description="A full brand identity with logo, palette and type",
            category_id="cat_design",
            basic={"name": "Basic", "price": 150000, "delivery_days": 5},
        )

    @pytest.mark.asyncio
    async def test_unverified_seller_is_refused(self, actions, identity):
        result = await actions.create_service(identity, self.service_request())

        assert result.error == "You must verify your ID to create services"

    @pytest.mark.asyncio
    async def test_free_plan_allows_one_service(self, actions, verified):
        result = await actions.create_service(verified, self.service_request())

        assert result.success is True
        assert result.data["slug"].startswith("brand-identity-design-")
        actions.subscriptions.increment_usage.assert_awaited_once_with("user_1", "services_used")

    @pytest.mark.asyncio
    async def test_free_plan_second_service_is_refused(self, actions, verified):
        actions.subscriptions.get_by_user_id.return_value = free_subscription(services_used=1)

        result = await actions.create_service(verified, self.service_request())

        assert result.error == FREE_SERVICE_LIMIT_MESSAGE
        actions.services.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_pro_plan_has_no_service_cap(self, actions, verified):
        actions.subscriptions.get_by_user_id.return_value = pro_subscription(services_used=12)

        result = await actions.create_service(verified, self.service_request())

        assert result.success is True

    @pytest.mark.asyncio
    async def test_lapsed_pro_falls_back_to_free_cap(self, actions, verified):
        actions.subscriptions.get_by_user_id.return_value = pro_subscription(
            services_used=3,
            current_period_end=datetime.now(timezone.utc) - timedelta(days=1),
        )

        result = await actions.create_service(verified, self.service_request())

        assert result.error == FREE_SERVICE_LIMIT_MESSAGE


class TestOutsourcingActions:

    @pytest.fixture
    def actions(self, db_session, notifier):
        actions = OutsourcingActions(db_session, notifier)
        actions.subscriptions = async_repo(get_by_user_id=pro_subscription())
        actions.orders = async_repo(
            get_by_id=SimpleNamespace(id="ord_1", seller_id="user_1", status="in_progress")
        )
        actions.requests = async_repo(get_active_for_order=None, get_by_id=None, save=None)
        actions.requests.create = AsyncMock(side_effect=lambda request: request)
        actions.invitations = async_repo(
            list_by_request=[],
            get_by_id=None,
            get_for_invitee=None,
            save=None,
            reject_others=None,
        )
        actions.invitations.create = AsyncMock(side_effect=lambda invitation: invitation)
        actions.users = async_repo(get_by_id=SimpleNamespace(id="worker"))
        return actions

    def outsource_request(self, **overrides):
        values = {
            "original_order_id": "ord_1",
            "title": "Vectorise the logo",
            "description": "Trace the supplied sketch",
            "amount": 50000,
            "delivery_days": 3,
            "invitee_ids": ["worker_1", "worker_2", "worker_1", "user_1"],
        }
        values.update(overrides)
        return CreateOutsourceRequest(**values)

    def pending_invitation(self, **overrides):
        values = {
            "id": "inv_1",
            "request_id": "req_1",
            "invitee_id": "user_1",
            "status": "pending",
            "expires_at": datetime.now(timezone.utc) + timedelta(hours=1),
            "responded_at": None,
        }
        values.update(overrides)
        return SimpleNamespace(**values)

    @pytest.mark.asyncio
    async def test_free_plan_cannot_outsource(self, actions, identity):
        actions.subscriptions.get_by_user_id.return_value = free_subscription()

        result = await actions.create_outsource_request(identity, self.outsource_request())

        assert result.error == PRO_REQUIRED_MESSAGE
        actions.requests.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_invitations_expire_after_48_hours(self, actions, identity, notifier):
        before = datetime.now(timezone.utc)

        result = await actions.create_outsource_request(identity, self.outsource_request())

        assert result.data["invitations_sent"] == 2
        invitations = [call.args[0] for call in actions.invitations.create.await_args_list]
        assert [i.invitee_id for i in invitations] == ["worker_1", "worker_2"]
        for invitation in invitations:
            assert before + INVITATION_TTL <= invitation.expires_at <= datetime.now(timezone.utc) + INVITATION_TTL
        assert INVITATION_TTL == timedelta(hours=48)
        assert notifier.notify.await_count == 2

    @pytest.mark.asyncio
    async def test_expired_invitation_cannot_be_accepted(self, actions, identity):
        invitation = self.pending_invitation(
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1)
        )
        actions.invitations.get_by_id.return_value = invitation

        result = await actions.accept_invitation(identity, "inv_1")

        assert result.error == "Invitation has expired"
        assert invitation.status == "expired"
        actions.invitations.save.assert_awaited_once_with(invitation)
        actions.invitations.reject_others.assert_not_called()

    @pytest.mark.asyncio
    async def test_accepting_rejects_other_invitations(self, actions, identity, notifier):
        invitation = self.pending_invitation()
        request = SimpleNamespace(
            id="req_1",
            status="open",
            outsourcer_id="seller_9",
            outsourced_to_id=None,
            assigned_at=None,
            title="Vectorise the logo",
        )
        actions.invitations.get_by_id.return_value = invitation
        actions.requests.get_by_id.return_value = request

        result = await actions.accept_invitation(identity, "inv_1")

        assert result.data == {"request_id": "req_1"}
        assert invitation.status == "accepted"
        assert request.status == "assigned"
        assert request.outsourced_to_id == "user_1"
        actions.invitations.reject_others.assert_awaited_once_with("req_1", "inv_1")
        assert notifier.notify.await_args.args[0].user_id == "seller_9"

    @pytest.mark.asyncio
    async def test_assigned_request_refuses_second_acceptance(self, actions, identity):
        actions.invitations.get_by_id.return_value = self.pending_invitation()
        actions.requests.get_by_id.return_value = SimpleNamespace(id="req_1", status="assigned")

        result = await actions.accept_invitation(identity, "inv_1")

        assert result.error == "This request has already been assigned"
        actions.invitations.reject_others.assert_not_called()

    @pytest.mark.asyncio
    async def test_my_outsource_work_hides_anonymous_outsourcer(self, actions, identity):
        actions.requests.list_by_worker = AsyncMock(
            return_value=[
                OutsourceRequest(
                    id="req_1",
                    original_order_id="ord_1",
                    outsourcer_id="seller_9",
                    outsourced_to_id="user_1",
                    title="Vectorise the logo",
                    description="Trace the supplied sketch",
                    amount=50000,
                    delivery_days=3,
                    is_anonymous=True,
                )
            ]
        )

        result = await actions.get_my_outsource_work(identity)

        assert result.data["work"][0]["id"] == "req_1"
        assert result.data["work"][0]["outsourcer_id"] is None

    @pytest.mark.asyncio
    async def test_request_detail_for_invitee(self, actions, identity):
        actions.requests.get_by_id.return_value = OutsourceRequest(
            id="req_1",
            original_order_id="ord_1",
            outsourcer_id="seller_9",
            title="Vectorise the logo",
            description="Trace the supplied sketch",
            amount=50000,
            delivery_days=3,
            is_anonymous=False,
        )
        actions.invitations.get_for_invitee.return_value = self.pending_invitation()

        result = await actions.get_outsource_request_by_id(identity, "req_1")

        assert result.data["request"]["outsourcer_id"] == "seller_9"
        assert "invitations" not in result.data["request"]
        actions.invitations.get_for_invitee.assert_awaited_once_with("req_1", "user_1")

    @pytest.mark.asyncio
    async def test_request_detail_hidden_from_strangers(self, actions, identity):
        actions.requests.get_by_id.return_value = SimpleNamespace(
            id="req_1", outsourcer_id="seller_9", outsourced_to_id=None
        )

        result = await actions.get_outsource_request_by_id(identity, "req_1")

        assert result.error == "Outsource request not found"


# =============================================================================
# Subscriptions
# =============================================================================

class TestSubscriptionActions:

    @pytest.fixture
    def actions(self, db_session, notifier):
        gateway = MagicMock()
        gateway.initiate = AsyncMock()
        actions = SubscriptionActions(db_session, notifier, gateway=gateway)
        actions.subscriptions = async_repo(get_by_user_id=free_subscription(), save=None)
        actions.users = async_repo(get_by_id=None)
        return actions

    @pytest.mark.asyncio
    async def test_cannot_cancel_free_plan(self, actions, identity):
        result = await actions.cancel_subscription(identity)

        assert result.error == "Cannot cancel free plan"

    @pytest.mark.asyncio
    async def test_cancel_keeps_plan_until_period_end(self, actions, identity):
        subscription = pro_subscription()
        actions.subscriptions.get_by_user_id.return_value = subscription

        result = await actions.cancel_subscription(identity)

        assert result.success is True
        assert subscription.cancelled_at is not None
        assert subscription.plan == "monthly"
        assert result.data["active_until"] == subscription.current_period_end

    @pytest.mark.asyncio
    async def test_cancel_twice(self, actions, identity):
        actions.subscriptions.get_by_user_id.return_value = pro_subscription(
            cancelled_at=datetime.now(timezone.utc)
        )

        result = await actions.cancel_subscription(identity)

        assert result.error == "Subscription is already cancelled"

    @pytest.mark.asyncio
    async def test_checkout_refused_for_active_pro(self, actions, identity):
        actions.subscriptions.get_by_user_id.return_value = pro_subscription()

        result = await actions.create_checkout(identity, SubscriptionPlan.MONTHLY)

        assert result.error == "You already have an active subscription"

    @pytest.mark.asyncio
    async def test_checkout_without_payfast_uses_mock_page(self, actions, identity):
        result = await actions.create_checkout(
            identity, SubscriptionPlan.ANNUAL, base_url="https://zomieks.test/"
        )

        assert result.success is True
        assert result.data["checkout_url"].startswith(f"https://zomieks.test{MOCK_CHECKOUT_PATH}?plan=annual")
        assert "amount=99900" in result.data["checkout_url"]
        assert result.data["reference"].startswith("SUB-ANNUAL-")
        actions.gateway.initiate.assert_not_called()

    @pytest.mark.asyncio
    async def test_live_checkout_returns_redirect_and_form(self, actions, identity):
        live = MagicMock(payfast_configured=True, payfast_sandbox=False, app_url="https://zomieks.co.za")
        actions.gateway.initiate.return_value = SimpleNamespace(
            success=True, redirect_url="https://www.payfast.co.za/eng/process?m_payment_id=SUB-1", error=None
        )
        actions.gateway.build_form_html = MagicMock(return_value="<form id=\"payfast-form\"></form>")

        with patch("app.actions.subscriptions.get_settings", return_value=live):
            result = await actions.create_checkout(identity, SubscriptionPlan.MONTHLY)

        assert result.success is True
        assert result.data["checkout_url"].startswith("https://www.payfast.co.za/eng/process")
        assert "payfast-form" in result.data["checkout_form"]
        request, base_url = actions.gateway.initiate.call_args.args
        assert request.amount == 9900
        assert request.plan == "monthly"
        assert request.description == "Zomieks Pro Monthly"
        assert base_url == "https://zomieks.co.za"
        actions.gateway.build_form_html.assert_called_once_with(request, base_url)

    @pytest.mark.asyncio
    async def test_subscription_view(self, actions, identity):
        result = await actions.get_subscription(identity)

        view = result.data["subscription"]
        assert view["plan"] == "free"
        assert view["days_remaining"] is None
        assert view["can_upgrade"] is True
        assert view["can_cancel"] is False

    @pytest.fixture
    def mock_mode(self):
        settings = MagicMock(payfast_configured=False, payfast_sandbox=False)
        with patch("app.actions.subscriptions.get_settings", return_value=settings):
            yield settings

    @pytest.mark.asyncio
    async def test_confirm_mock_checkout_activates_plan(self, actions, identity, notifier, mock_mode):
        actions.transactions = async_repo(is_settled=False, record_completed=True, attach_subscription=None)
        actions.subscriptions.activate_plan = AsyncMock(return_value=pro_subscription(id="sub_1"))
        reference = "SUB-ANNUAL-1700000000000-user_1"

        result = await actions.confirm_subscription(identity, SubscriptionPlan.ANNUAL, reference)

        assert result.success is True
        assert result.data["plan"] == "annual"
        recorded_reference, values = actions.transactions.record_completed.call_args.args
        assert recorded_reference == reference
        assert values["amount"] == 99900
        assert values["type"] == "subscription"
        assert values["provider"] == "payfast"
        assert values["subscription_id"] == "sub_1"
        kwargs = actions.subscriptions.activate_plan.call_args.kwargs
        assert kwargs["plan"] == SubscriptionPlan.ANNUAL
        assert kwargs["payment_reference"] == reference
        assert (kwargs["period_end"] - kwargs["period_start"]).days in (365, 366)
        notification = notifier.notify.call_args.args[0]
        assert notification.title == "Subscription Activated!"
        assert notification.send_email is True

    @pytest.mark.asyncio
    async def test_confirm_twice_is_refused(self, actions, identity, notifier, mock_mode):
        actions.transactions = async_repo(is_settled=False, record_completed=False)
        actions.subscriptions.activate_plan = AsyncMock()

        result = await actions.confirm_subscription(
            identity, SubscriptionPlan.MONTHLY, "SUB-MONTHLY-1700000000000-user_1"
        )

        assert result.error == "Payment already processed"
        actions.subscriptions.activate_plan.assert_not_called()
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm_rejects_reference_for_another_user_or_plan(self, actions, identity, mock_mode):
        actions.transactions = async_repo(is_settled=False, record_completed=True)

        other_user = await actions.confirm_subscription(
            identity, SubscriptionPlan.MONTHLY, "SUB-MONTHLY-1700000000000-user_2"
        )
        other_plan = await actions.confirm_subscription(
            identity, SubscriptionPlan.MONTHLY, "SUB-ANNUAL-1700000000000-user_1"
        )

        assert other_user.error == "Invalid payment reference"
        assert other_plan.error == "Invalid payment reference"
        actions.transactions.record_completed.assert_not_called()

    @pytest.mark.asyncio
    async def test_confirm_refused_when_payfast_is_live(self, actions, identity):
        live = MagicMock(payfast_configured=True, payfast_sandbox=False)
        actions.transactions = async_repo(is_settled=False, record_completed=True)

        with patch("app.actions.subscriptions.get_settings", return_value=live):
            result = await actions.confirm_subscription(
                identity, SubscriptionPlan.MONTHLY, "SUB-MONTHLY-1700000000000-user_1"
            )

        assert result.error == "Subscriptions are confirmed by the payment provider"
        actions.transactions.record_completed.assert_not_called()


# =============================================================================
# Reviews
# =============================================================================

def completed_order(**overrides):
    values = {
        "id": "ord_1",
        "order_number": "ZMK-2410-ABCD",
        "buyer_id": "user_1",
        "seller_id": "seller_1",
        "status": "completed",
        "service_id": None,
        "project_id": None,
        "buyer_has_reviewed": False,
        "seller_has_reviewed": False,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def review_row(overall, **overrides):
    values = {
        "overall_rating": overall,
        "communication_rating": None,
        "quality_rating": None,
        "value_rating": None,
        "timeliness_rating": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestReviewActions:

    @pytest.fixture
    def actions(self, db_session, notifier):
        actions = ReviewActions(db_session, notifier)
        actions.orders = async_repo(get_by_id=completed_order(), save=None, count_for_seller=0)
        actions.reviews = async_repo(
            create=SimpleNamespace(id="rev_1"),
            get_by_id=None,
            save=None,
            list_seller_ratings=[],
        )
        actions.users = async_repo(get_by_id=None)
        return actions

    def review_request(self, **overrides):
        values = {"order_id": "ord_1", "overall_rating": 5, "comment": "Great work, delivered early"}
        values.update(overrides)
        return CreateReviewRequest(**values)

    @pytest.mark.asyncio
    async def test_buyer_reviews_seller(self, actions, identity, notifier):
        order = completed_order()
        actions.orders.get_by_id.return_value = order

        result = await actions.create_review(identity, self.review_request(comment="  Great work, delivered early  "))

        assert result.success is True
        assert result.data == {"review_id": "rev_1"}
        review = actions.reviews.create.await_args.args[0]
        assert review.review_type == "buyer_to_seller"
        assert review.reviewee_id == "seller_1"
        assert review.comment == "Great work, delivered early"
        assert order.buyer_has_reviewed is True
        assert order.seller_has_reviewed is False
        notification = notifier.notify.await_args.args[0]
        assert notification.user_id == "seller_1"
        assert notification.message == "You received a 5-star review for order ZMK-2410-ABCD"

    @pytest.mark.asyncio
    async def test_seller_reviews_buyer(self, actions, identity):
        actions.orders.get_by_id.return_value = completed_order(buyer_id="buyer_9", seller_id="user_1")

        result = await actions.create_review(identity, self.review_request(overall_rating=4))

        assert result.success is True
        review = actions.reviews.create.await_args.args[0]
        assert review.review_type == "seller_to_buyer"
        assert review.reviewee_id == "buyer_9"

    @pytest.mark.asyncio
    async def test_only_completed_orders_can_be_reviewed(self, actions, identity):
        actions.orders.get_by_id.return_value = completed_order(status="delivered")

        result = await actions.create_review(identity, self.review_request())

        assert result.error == "Can only review completed orders"
        actions.reviews.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_outsider_cannot_review(self, actions, identity):
        actions.orders.get_by_id.return_value = completed_order(buyer_id="a", seller_id="b")

        result = await actions.create_review(identity, self.review_request())

        assert result.error == "You are not part of this order"

    @pytest.mark.asyncio
    async def test_one_review_per_party(self, actions, identity):
        actions.orders.get_by_id.return_value = completed_order(buyer_has_reviewed=True)

        result = await actions.create_review(identity, self.review_request())

        assert result.error == "You have already reviewed this order"

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_review(self, actions, identity, notifier):
        actions.reviews.create.side_effect = IntegrityError("insert", {}, Exception("duplicate"))

        result = await actions.create_review(identity, self.review_request())

        assert result.error == "You have already reviewed this order"
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_short_comment_rejected(self, actions, identity):
        result = await actions.create_review(identity, self.review_request(comment="   ok thanks   "))

        assert result.error == "Review must be at least 10 characters"

    @pytest.mark.asyncio
    async def test_seller_responds_once(self, actions):
        seller = SimpleNamespace(user_id="seller_1")
        review = SimpleNamespace(
            reviewee_id="seller_1",
            review_type="buyer_to_seller",
            seller_response=None,
            seller_response_at=None,
        )
        actions.reviews.get_by_id.return_value = review

        first = await actions.respond_to_review(seller, "rev_1", "Thanks, a pleasure to work with you")
        second = await actions.respond_to_review(seller, "rev_1", "Editing my earlier response")

        assert first.success is True
        assert review.seller_response == "Thanks, a pleasure to work with you"
        assert review.seller_response_at is not None
        assert second.error == "You have already responded to this review"

    @pytest.mark.asyncio
    async def test_cannot_respond_to_seller_review(self, actions, identity):
        actions.reviews.get_by_id.return_value = SimpleNamespace(
            reviewee_id="user_1", review_type="seller_to_buyer", seller_response=None
        )

        result = await actions.respond_to_review(identity, "rev_1", "I disagree with this review")

        assert result.error == "Can only respond to buyer reviews"

    @pytest.mark.asyncio
    async def test_can_review_order(self, actions, identity):
        result = await actions.can_review_order(identity, "ord_1")

        assert result.data == {"can_review": True, "has_reviewed": False, "review_type": "buyer_to_seller"}

    @pytest.mark.asyncio
    async def test_can_review_order_anonymous(self, actions):
        result = await actions.can_review_order(None, "ord_1")

        assert result.data == {"can_review": False, "has_reviewed": False, "review_type": None}
        actions.orders.get_by_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_outsider_sees_no_order_reviews(self, actions, identity):
        actions.orders.get_by_id.return_value = completed_order(buyer_id="a", seller_id="b")
        actions.reviews.list_for_order = AsyncMock(return_value=[review_row(5)])

        result = await actions.get_order_reviews(identity, "ord_1")

        assert result.data == {"reviews": []}
        actions.reviews.list_for_order.assert_not_called()

    @pytest.mark.asyncio
    async def test_user_stats(self, actions):
        actions.reviews.list_seller_ratings.return_value = [
            review_row(5, communication_rating=5),
            review_row(4, communication_rating=4),
            review_row(4),
        ]
        actions.orders.count_for_seller.side_effect = [3, 4]

        result = await actions.get_user_stats("seller_1")

        stats = result.data["stats"]
        assert stats["average_rating"] == 4.3
        assert stats["total_reviews"] == 3
        assert stats["five_star_count"] == 1
        assert stats["four_star_count"] == 2
        assert stats["avg_communication"] == 4.5
        assert stats["avg_quality"] is None
        assert stats["completed_orders"] == 3
        assert stats["completion_rate"] == 75
        actions.orders.count_for_seller.assert_any_await("seller_1", "completed")

    @pytest.mark.asyncio
    async def test_stats_without_orders(self, actions):
        result = await actions.get_user_stats("seller_1")

        stats = result.data["stats"]
        assert stats["average_rating"] == 0
        assert stats["total_reviews"] == 0
        assert stats["completion_rate"] == 100


class TestSummarizeRatings:

    def test_rounds_half_up(self):
        summary = summarize_ratings([review_row(5), review_row(4), review_row(4), review_row(4)])

        assert summary["average_rating"] == 4.3

    def test_ignores_unrated_criteria(self):
        summary = summarize_ratings([review_row(3, value_rating=2), review_row(1)])

        assert summary["avg_value"] == 2
        assert summary["avg_timeliness"] is None
        assert summary["one_star_count"] == 1
        assert summary["three_star_count"] == 1


# =============================================================================
# Admin
# =============================================================================

class TestAdminActions:

    @pytest.fixture
    def store(self):
        store = MagicMock()
        store.delete_all_user_sessions = AsyncMock(return_value=2)
        return store

    @pytest.fixture
    def actions(self, db_session, notifier, store):
        actions = AdminActions(db_session, notifier, session_store=store)
        actions.users = async_repo(get_by_id=None, save=None)
        actions.audit = async_repo(log=None)
        return actions

    @pytest.mark.asyncio
    async def test_regular_user_is_unauthorized(self, actions, identity):
        result = await actions.get_platform_stats(identity)

        assert result.error == "Unauthorized"

    @pytest.mark.asyncio
    async def test_moderator_cannot_suspend(self, actions, admin_identity):
        admin_identity.role = "moderator"

        result = await actions.suspend_user(admin_identity, "u1", "Spam")

        assert result.error == "Unauthorized"

    @pytest.mark.asyncio
    async def test_cannot_suspend_admin(self, actions, admin_identity):
        actions.users.get_by_id.return_value = SimpleNamespace(id="admin_2", role="admin")

        result = await actions.suspend_user(admin_identity, "admin_2", "Spam")

        assert result.error == "Cannot suspend an admin"

    @pytest.mark.asyncio
    async def test_suspend_revokes_sessions(self, actions, admin_identity, store, notifier):
        user = SimpleNamespace(id="u1", role="user", is_suspended=False, suspended_reason=None)
        actions.users.get_by_id.return_value = user

        result = await actions.suspend_user(admin_identity, "u1", "Fraud")

        assert result.success is True
        assert result.data == {"sessions_revoked": 2}
        assert user.is_suspended is True
        assert user.suspended_reason == "Fraud"
        store.delete_all_user_sessions.assert_awaited_once_with("u1")
        assert actions.audit.log.await_args.kwargs["action"] == "user.suspend"
        assert notifier.notify.await_args.args[0].title == "Account Suspended"
