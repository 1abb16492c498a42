"""Initial marketplace schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id():
    return sa.Column('id', sa.String(36), primary_key=True)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _user_fk(name, nullable=False):
    return sa.Column(name, sa.String(36), sa.ForeignKey('users.id'), nullable=nullable)


def _ts(name):
    return sa.Column(name, sa.DateTime(timezone=True))


def upgrade() -> None:
    # Accounts
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String, nullable=False),
        sa.Column('name', sa.String(100)),
        sa.Column('avatar_url', sa.String),
        sa.Column('role', sa.String(20), server_default='user', nullable=False),
        sa.Column('is_email_verified', sa.Boolean, server_default='false', nullable=False),
        sa.Column('is_id_verified', sa.Boolean, server_default='false', nullable=False),
        sa.Column('is_suspended', sa.Boolean, server_default='false', nullable=False),
        sa.Column('suspended_reason', sa.String),
        _ts('last_login_at'),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'user_profiles',
        _id(),
        _user_fk('user_id'),
        sa.Column('headline', sa.String(150)),
        sa.Column('bio', sa.String),
        sa.Column('location', sa.String(100)),
        sa.Column('skills', sa.JSON),
        sa.Column('hourly_rate', sa.Integer),
        *_timestamps(),
    )
    op.create_index('ix_user_profiles_user_id', 'user_profiles', ['user_id'], unique=True)

    op.create_table(
        'user_verifications',
        _id(),
        _user_fk('user_id'),
        sa.Column('document_type', sa.String(50), nullable=False),
        sa.Column('document_url', sa.String),
        sa.Column('selfie_url', sa.String),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('notes', sa.String),
        sa.Column('reviewed_by', sa.String(36)),
        _ts('reviewed_at'),
        *_timestamps(),
    )
    op.create_index('ix_user_verifications_user_id', 'user_verifications', ['user_id'])
    op.create_index('ix_user_verifications_status', 'user_verifications', ['status'])

    for table in ('email_verification_tokens', 'password_reset_tokens'):
        op.create_table(
            table,
            _id(),
            _user_fk('user_id'),
            sa.Column('token', sa.String(128), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
            *_timestamps(),
        )
        op.create_index(f'ix_{table}_user_id', table, ['user_id'])
        op.create_index(f'ix_{table}_token', table, ['token'], unique=True)

    op.create_table(
        'subscriptions',
        _id(),
        _user_fk('user_id'),
        sa.Column('plan', sa.String(20), server_default='free', nullable=False),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('bids_used', sa.Integer, server_default='0', nullable=False),
        sa.Column('services_used', sa.Integer, server_default='0', nullable=False),
        _ts('current_period_start'),
        _ts('current_period_end'),
        _ts('cancelled_at'),
        sa.Column('payment_reference', sa.String(255)),
        *_timestamps(),
    )
    # One subscription per user; the activation upsert targets this index
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'], unique=True)

    # Catalog
    op.create_table(
        'categories',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('description', sa.String),
        sa.Column('icon', sa.String(50)),
        sa.Column('parent_id', sa.String(36), sa.ForeignKey('categories.id')),
        sa.Column('sort_order', sa.Integer, server_default='0', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_categories_slug', 'categories', ['slug'], unique=True)

    op.create_table(
        'services',
        _id(),
        _user_fk('seller_id'),
        sa.Column('category_id', sa.String(36), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('description', sa.String, nullable=False),
        sa.Column('short_description', sa.String(300)),
        sa.Column('pricing_tiers', sa.JSON),
        sa.Column('tags', sa.JSON),
        sa.Column('delivery_days', sa.Integer, server_default='7', nullable=False),
        sa.Column('max_revisions', sa.Integer, server_default='1', nullable=False),
        sa.Column('view_count', sa.Integer, server_default='0', nullable=False),
        sa.Column('order_count', sa.Integer, server_default='0', nullable=False),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('is_active', sa.Boolean, server_default='true', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_services_seller_id', 'services', ['seller_id'])
    op.create_index('ix_services_category_id', 'services', ['category_id'])
    op.create_index('ix_services_slug', 'services', ['slug'], unique=True)
    op.create_index('ix_services_status', 'services', ['status'])

    # Projects & bids
    op.create_table(
        'projects',
        _id(),
        _user_fk('buyer_id'),
        sa.Column('category_id', sa.String(36), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('description', sa.String, nullable=False),
        sa.Column('budget_type', sa.String(20), server_default='fixed', nullable=False),
        sa.Column('budget_min', sa.Integer),
        sa.Column('budget_max', sa.Integer),
        _ts('deadline'),
        sa.Column('expected_duration', sa.String(50)),
        sa.Column('skills', sa.JSON),
        sa.Column('bid_count', sa.Integer, server_default='0', nullable=False),
        sa.Column('view_count', sa.Integer, server_default='0', nullable=False),
        sa.Column('status', sa.String(20), server_default='open', nullable=False),
        sa.Column('awarded_bid_id', sa.String(36)),
        _ts('awarded_at'),
        *_timestamps(),
    )
    op.create_index('ix_projects_buyer_id', 'projects', ['buyer_id'])
    op.create_index('ix_projects_category_id', 'projects', ['category_id'])
    op.create_index('ix_projects_slug', 'projects', ['slug'], unique=True)
    op.create_index('ix_projects_status', 'projects', ['status'])

    op.create_table(
        'bids',
        _id(),
        sa.Column('project_id', sa.String(36), sa.ForeignKey('projects.id'), nullable=False),
        _user_fk('bidder_id'),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('proposal', sa.String, nullable=False),
        sa.Column('delivery_days', sa.Integer, nullable=False),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('project_id', 'bidder_id', name='uq_bids_project_bidder'),
    )
    op.create_index('ix_bids_project_id', 'bids', ['project_id'])
    op.create_index('ix_bids_bidder_id', 'bids', ['bidder_id'])

    # Orders & payments
    op.create_table(
        'orders',
        _id(),
        sa.Column('order_number', sa.String(40), nullable=False),
        _user_fk('buyer_id'),
        _user_fk('seller_id'),
        sa.Column('order_type', sa.String(20), server_default='service', nullable=False),
        sa.Column('service_id', sa.String(36)),
        sa.Column('service_tier', sa.String(20)),
        sa.Column('project_id', sa.String(36)),
        sa.Column('bid_id', sa.String(36)),
        sa.Column('requirements', sa.String),
        sa.Column('subtotal', sa.Integer, nullable=False),
        sa.Column('buyer_fee', sa.Integer, server_default='0', nullable=False),
        sa.Column('seller_fee', sa.Integer, server_default='0', nullable=False),
        sa.Column('total_amount', sa.Integer, nullable=False),
        sa.Column('seller_earnings', sa.Integer, nullable=False),
        sa.Column('currency', sa.String(3), server_default='ZAR', nullable=False),
        sa.Column('delivery_days', sa.Integer, server_default='7', nullable=False),
        _ts('delivery_deadline'),
        sa.Column('revisions_allowed', sa.Integer, server_default='2', nullable=False),
        sa.Column('revisions_used', sa.Integer, server_default='0', nullable=False),
        sa.Column('status', sa.String(30), server_default='pending_payment', nullable=False),
        sa.Column('delivery_message', sa.String),
        sa.Column('revision_reason', sa.String),
        sa.Column('cancellation_reason', sa.String),
        sa.Column('cancelled_by', sa.String(36)),
        _ts('delivered_at'),
        _ts('completed_at'),
        sa.Column('buyer_has_reviewed', sa.Boolean, server_default='false', nullable=False),
        sa.Column('seller_has_reviewed', sa.Boolean, server_default='false', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'])
    op.create_index('ix_orders_seller_id', 'orders', ['seller_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table(
        'milestones',
        _id(),
        sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.String),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('sort_order', sa.Integer, server_default='1', nullable=False),
        _ts('due_date'),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        _ts('funded_at'),
        _ts('submitted_at'),
        _ts('released_at'),
        *_timestamps(),
    )
    op.create_index('ix_milestones_order_id', 'milestones', ['order_id'])

    op.create_table(
        'transactions',
        _id(),
        sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id')),
        sa.Column('milestone_id', sa.String(36)),
        sa.Column('subscription_id', sa.String(36)),
        _user_fk('user_id'),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('currency', sa.String(3), server_default='ZAR', nullable=False),
        sa.Column('provider', sa.String(20), nullable=False),
        sa.Column('provider_reference', sa.String(255)),
        sa.Column('provider_transaction_id', sa.String(255)),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('error_message', sa.String),
        _ts('completed_at'),
        *_timestamps(),
    )
    op.create_index('ix_transactions_order_id', 'transactions', ['order_id'])
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    # Idempotency key for gateway notifications
    op.create_index('ix_transactions_provider_reference', 'transactions', ['provider_reference'], unique=True)

    # Notifications & messaging
    op.create_table(
        'notifications',
        _id(),
        _user_fk('user_id'),
        sa.Column('type', sa.String(40), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.String, nullable=False),
        sa.Column('entity_type', sa.String(40)),
        sa.Column('entity_id', sa.String(36)),
        sa.Column('is_read', sa.Boolean, server_default='false', nullable=False),
        _ts('read_at'),
        sa.Column('email_sent', sa.Boolean, server_default='false', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])

    op.create_table(
        'conversations',
        _id(),
        _user_fk('participant1_id'),
        _user_fk('participant2_id'),
        sa.Column('order_id', sa.String(36)),
        _ts('last_message_at'),
        *_timestamps(),
    )
    op.create_index('ix_conversations_participant1_id', 'conversations', ['participant1_id'])
    op.create_index('ix_conversations_participant2_id', 'conversations', ['participant2_id'])

    op.create_table(
        'messages',
        _id(),
        sa.Column('conversation_id', sa.String(36), sa.ForeignKey('conversations.id'), nullable=False),
        _user_fk('sender_id'),
        sa.Column('content', sa.String, nullable=False),
        sa.Column('is_read', sa.Boolean, server_default='false', nullable=False),
        _ts('read_at'),
        *_timestamps(),
    )
    op.create_index('ix_messages_conversation_id', 'messages', ['conversation_id'])

    op.create_table(
        'shortlist',
        _id(),
        _user_fk('user_id'),
        _user_fk('shortlisted_user_id'),
        sa.Column('category_id', sa.String(36)),
        sa.Column('notes', sa.String),
        sa.Column('priority', sa.Integer, server_default='0', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('user_id', 'shortlisted_user_id', name='uq_shortlist_user_target'),
    )
    op.create_index('ix_shortlist_user_id', 'shortlist', ['user_id'])

    op.create_table(
        'reviews',
        _id(),
        sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id'), nullable=False),
        _user_fk('reviewer_id'),
        _user_fk('reviewee_id'),
        sa.Column('review_type', sa.String(20), nullable=False),
        sa.Column('overall_rating', sa.Integer, nullable=False),
        sa.Column('communication_rating', sa.Integer),
        sa.Column('quality_rating', sa.Integer),
        sa.Column('value_rating', sa.Integer),
        sa.Column('timeliness_rating', sa.Integer),
        sa.Column('title', sa.String(200)),
        sa.Column('comment', sa.String, nullable=False),
        sa.Column('seller_response', sa.String),
        _ts('seller_response_at'),
        sa.Column('is_visible', sa.Boolean, server_default='true', nullable=False),
        sa.Column('is_reported', sa.Boolean, server_default='false', nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('order_id', 'reviewer_id', name='uq_reviews_order_reviewer'),
    )
    op.create_index('ix_reviews_order_id', 'reviews', ['order_id'])
    op.create_index('ix_reviews_reviewer_id', 'reviews', ['reviewer_id'])
    op.create_index('ix_reviews_reviewee_id', 'reviews', ['reviewee_id'])

    # Outsourcing
    op.create_table(
        'outsource_requests',
        _id(),
        sa.Column('original_order_id', sa.String(36), sa.ForeignKey('orders.id'), nullable=False),
        _user_fk('outsourcer_id'),
        _user_fk('outsourced_to_id', nullable=True),
        sa.Column('category_id', sa.String(36)),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.String, nullable=False),
        sa.Column('requirements', sa.String),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('delivery_days', sa.Integer, nullable=False),
        _ts('deadline'),
        sa.Column('status', sa.String(20), server_default='open', nullable=False),
        sa.Column('is_anonymous', sa.Boolean, server_default='true', nullable=False),
        _ts('assigned_at'),
        _ts('delivered_at'),
        _ts('completed_at'),
        *_timestamps(),
    )
    op.create_index('ix_outsource_requests_original_order_id', 'outsource_requests', ['original_order_id'])
    op.create_index('ix_outsource_requests_outsourcer_id', 'outsource_requests', ['outsourcer_id'])
    op.create_index('ix_outsource_requests_status', 'outsource_requests', ['status'])

    op.create_table(
        'outsource_invitations',
        _id(),
        sa.Column('request_id', sa.String(36), sa.ForeignKey('outsource_requests.id'), nullable=False),
        _user_fk('invitee_id'),
        sa.Column('message', sa.String),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        _ts('responded_at'),
        *_timestamps(),
    )
    op.create_index('ix_outsource_invitations_request_id', 'outsource_invitations', ['request_id'])
    op.create_index('ix_outsource_invitations_invitee_id', 'outsource_invitations', ['invitee_id'])

    # Moderation
    op.create_table(
        'disputes',
        _id(),
        sa.Column('order_id', sa.String(36), sa.ForeignKey('orders.id'), nullable=False),
        _user_fk('raised_by_id'),
        _user_fk('against_id'),
        sa.Column('category', sa.String(40), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.String, nullable=False),
        sa.Column('status', sa.String(20), server_default='open', nullable=False),
        sa.Column('resolution', sa.String(20)),
        sa.Column('resolution_notes', sa.String),
        sa.Column('resolution_amount', sa.Integer),
        sa.Column('resolved_by', sa.String(36)),
        _ts('resolved_at'),
        *_timestamps(),
    )
    op.create_index('ix_disputes_order_id', 'disputes', ['order_id'])
    op.create_index('ix_disputes_status', 'disputes', ['status'])

    op.create_table(
        'audit_logs',
        _id(),
        sa.Column('actor_id', sa.String(36), nullable=False),
        sa.Column('actor_email', sa.String(255), nullable=False),
        sa.Column('action', sa.String(60), nullable=False),
        sa.Column('entity_type', sa.String(40), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=False),
        sa.Column('changes', sa.JSON),
        sa.Column('metadata', sa.JSON),
        *_timestamps(),
    )
    op.create_index('ix_audit_logs_actor_id', 'audit_logs', ['actor_id'])


def downgrade() -> None:
    for table in (
        'audit_logs',
        'disputes',
        'outsource_invitations',
        'outsource_requests',
        'reviews',
        'shortlist',
        'messages',
        'conversations',
        'notifications',
        'transactions',
        'milestones',
        'orders',
        'bids',
        'projects',
        'services',
        'categories',
        'subscriptions',
        'password_reset_tokens',
        'email_verification_tokens',
        'user_verifications',
        'user_profiles',
        'users',
    ):
        op.drop_table(table)
