"""Baseline schema for the AI Business Assistant

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates every table the API reads or writes, enables row level security
on each of them and installs delete_auth_user_direct(), the SQL
fallback account deletion uses when the auth admin API is unavailable.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision: str = '0001_business_assistant_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Tables whose rows belong to the user named in user_id.
USER_OWNED_TABLES = (
    'user_subscriptions',
    'expenses',
    'knowledge_base',
    'conversations',
    'usage_counters',
    'notification_preferences',
    'notification_history',
    'integrations',
    'profiles',
)


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _id() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True,
                     server_default=sa.text('gen_random_uuid()'))


def _user_id(**kwargs) -> sa.Column:
    return sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, index=True, **kwargs)


def upgrade() -> None:
    # =========================================================================
    # 1. Billing
    # =========================================================================
    op.create_table(
        'user_subscriptions',
        _id(),
        _user_id(unique=True),
        sa.Column('stripe_customer_id', sa.String(255), index=True),
        sa.Column('stripe_subscription_id', sa.String(255), unique=True, index=True),
        sa.Column('plan_name', sa.String(100), server_default='Free', nullable=False),
        sa.Column('status', sa.String(20), server_default='active', nullable=False),
        sa.Column('current_period_start', sa.DateTime(timezone=True)),
        sa.Column('current_period_end', sa.DateTime(timezone=True)),
        sa.Column('cancel_at_period_end', sa.Boolean, server_default='false', nullable=False),
        *_timestamps(),
    )

    # =========================================================================
    # 2. Expenses and business profile
    # =========================================================================
    op.create_table(
        'expenses',
        _id(),
        _user_id(),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('category', sa.String(50), server_default='other', nullable=False),
        sa.Column('date', sa.Date, server_default=sa.func.current_date(), nullable=False),
        sa.Column('receipt_url', sa.Text),
        sa.Column('source', sa.String(20), server_default='manual', nullable=False),
        sa.Column('external_message_id', sa.String(255), index=True),
        *_timestamps(),
    )
    op.create_index('ix_expenses_user_date', 'expenses', ['user_id', 'date'])

    op.create_table(
        'knowledge_base',
        _id(),
        _user_id(),
        sa.Column('business_name', sa.String(255), nullable=False),
        sa.Column('industry', sa.String(100), server_default='general', nullable=False),
        sa.Column('target_audience', sa.String(255)),
        sa.Column('products_services', sa.Text),
        sa.Column('tags', sa.JSON),
        *_timestamps(),
    )

    op.create_table(
        'profiles',
        _id(),
        _user_id(unique=True),
        sa.Column('business_name', sa.String(255)),
        sa.Column('industry', sa.String(100)),
        *_timestamps(),
    )

    # =========================================================================
    # 3. Chat
    # =========================================================================
    op.create_table(
        'conversations',
        _id(),
        _user_id(),
        sa.Column('title', sa.String(255)),
        *_timestamps(),
    )

    op.create_table(
        'messages',
        _id(),
        sa.Column('conversation_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('content', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # =========================================================================
    # 4. Usage counters
    # =========================================================================
    op.create_table(
        'usage_counters',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('period_index', sa.Integer, nullable=False),
        sa.Column('receipt_uploads', sa.Integer, server_default='0', nullable=False),
        sa.Column('ai_content_generations', sa.Integer, server_default='0', nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # =========================================================================
    # 5. Notifications
    # =========================================================================
    toggles = {
        'email_notifications': 'true',
        'push_notifications': 'true',
        'sms_notifications': 'false',
        'expense_alerts': 'true',
        'budget_warnings': 'true',
        'large_expense_alerts': 'true',
        'duplicate_expense_warnings': 'true',
        'ai_insights': 'true',
        'smart_categorization_suggestions': 'true',
        'receipt_processing_status': 'true',
        'login_alerts': 'true',
        'account_changes': 'true',
        'data_export_completion': 'true',
        'feature_updates': 'false',
        'product_announcements': 'false',
        'tips_and_tutorials': 'false',
        'daily_summaries': 'false',
        'weekly_insights': 'true',
        'monthly_reports': 'true',
        'quiet_hours_enabled': 'false',
    }
    op.create_table(
        'notification_preferences',
        _id(),
        _user_id(unique=True),
        *[sa.Column(name, sa.Boolean, server_default=default, nullable=False) for name, default in toggles.items()],
        sa.Column('quiet_hours_start', sa.String(8), server_default='22:00:00'),
        sa.Column('quiet_hours_end', sa.String(8), server_default='08:00:00'),
        sa.Column('timezone', sa.String(64), server_default='UTC', nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'notification_history',
        _id(),
        _user_id(),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text, nullable=False),
        sa.Column('delivery_channel', sa.String(20), nullable=False),
        sa.Column('delivery_status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('delivery_error', sa.Text),
        sa.Column('related_expense_id', postgresql.UUID(as_uuid=True)),
        sa.Column('related_data', sa.JSON),
        sa.Column('scheduled_for', sa.DateTime(timezone=True)),
        sa.Column('sent_at', sa.DateTime(timezone=True)),
        *_timestamps(),
    )

    # =========================================================================
    # 6. Integrations and newsletter
    # =========================================================================
    op.create_table(
        'integrations',
        _id(),
        _user_id(),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('enabled', sa.Boolean, server_default='true', nullable=False),
        sa.Column('external_address', sa.String(255), index=True),
        sa.Column('credential_encrypted', sa.Text),
        sa.Column('config', sa.JSON),
        *_timestamps(),
    )

    op.create_table(
        'newsletter_subscriptions',
        _id(),
        sa.Column('email', sa.String(320), unique=True, nullable=False),
        sa.Column('source', sa.String(50), server_default='website_footer', nullable=False),
        sa.Column('user_agent', sa.Text),
        sa.Column('ip_address', sa.String(64)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # =========================================================================
    # 7. Row level security
    # =========================================================================
    for table in USER_OWNED_TABLES:
        op.execute(f"ALTER TABLE public.{table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"""
            CREATE POLICY {table}_owner_policy ON public.{table}
            FOR ALL USING (user_id = auth.uid()) WITH CHECK (user_id = auth.uid())
        """)

    # Billing rows are written only by the webhook (service role).
    op.execute("DROP POLICY user_subscriptions_owner_policy ON public.user_subscriptions")
    op.execute("""
        CREATE POLICY user_subscriptions_select_policy ON public.user_subscriptions
        FOR SELECT USING (user_id = auth.uid())
    """)

    op.execute("ALTER TABLE public.messages ENABLE ROW LEVEL SECURITY")
    op.execute("""
        CREATE POLICY messages_owner_policy ON public.messages
        FOR ALL USING (
            EXISTS (
                SELECT 1 FROM public.conversations c
                WHERE c.id = conversation_id AND c.user_id = auth.uid()
            )
        )
    """)

    # Anyone may sign up; nobody may read the list through the API.
    op.execute("ALTER TABLE public.newsletter_subscriptions ENABLE ROW LEVEL SECURITY")
    op.execute("""
        CREATE POLICY newsletter_insert_policy ON public.newsletter_subscriptions
        FOR INSERT WITH CHECK (true)
    """)

    # =========================================================================
    # 8. Identity deletion fallback
    # =========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION public.delete_auth_user_direct(target_user_id uuid)
        RETURNS boolean
        LANGUAGE plpgsql
        SECURITY DEFINER
        SET search_path = public, auth
        AS $$
        DECLARE
            deleted_count integer;
        BEGIN
            DELETE FROM auth.users WHERE id = target_user_id;
            GET DIAGNOSTICS deleted_count = ROW_COUNT;
            RETURN deleted_count > 0;
        END;
        $$
    """)
    op.execute("REVOKE ALL ON FUNCTION public.delete_auth_user_direct(uuid) FROM PUBLIC, anon, authenticated")
    op.execute("GRANT EXECUTE ON FUNCTION public.delete_auth_user_direct(uuid) TO service_role")


def downgrade() -> None:
    op.execute("DROP FUNCTION IF EXISTS public.delete_auth_user_direct(uuid)")

    for table in (
        'newsletter_subscriptions',
        'integrations',
        'notification_history',
        'notification_preferences',
        'usage_counters',
        'messages',
        'conversations',
        'profiles',
        'knowledge_base',
        'expenses',
        'user_subscriptions',
    ):
        op.drop_table(table)
