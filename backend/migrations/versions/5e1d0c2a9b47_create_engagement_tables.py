"""Create engagement workflow tables

Revision ID: 5e1d0c2a9b47
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '5e1d0c2a9b47'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

verification_status = sa.Enum('PENDING', 'VERIFIED', 'REJECTED', name='verificationstatus')
brief_status = sa.Enum(
    'DRAFT', 'OPEN', 'MATCHED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED', name='briefstatus'
)
proposal_status = sa.Enum(
    'SUBMITTED', 'UNDER_REVIEW', 'COUNTER_OFFERED', 'ACCEPTED', 'REJECTED', 'WITHDRAWN',
    name='proposalstatus',
)
entry_type = sa.Enum('MILESTONE', 'UPDATE', 'ISSUE', name='entrytype')
notification_type = sa.Enum(
    'PROPOSAL_RECEIVED', 'PROPOSAL_ACCEPTED', 'PROPOSAL_REJECTED',
    'MESSAGE_RECEIVED', 'BRIEF_MATCHED', 'PROJECT_UPDATE',
    name='notificationtype',
)


def upgrade() -> None:
    op.create_table(
        'brand_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('company_name', sa.String(200), nullable=False),
        sa.Column('logo_url', sa.String(2048), nullable=True),
        sa.Column('industry', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_brand_profiles_user_id'), 'brand_profiles', ['user_id'], unique=True)

    op.create_table(
        'manufacturer_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('company_name', sa.String(200), nullable=False),
        sa.Column('logo_url', sa.String(2048), nullable=True),
        sa.Column('verification_status', verification_status, nullable=False),
        sa.Column('capabilities', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('factory_location', sa.String(200), nullable=True),
        sa.Column('min_order_quantity', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_manufacturer_profiles_user_id'), 'manufacturer_profiles', ['user_id'], unique=True)
    op.create_index(
        op.f('ix_manufacturer_profiles_verification_status'),
        'manufacturer_profiles', ['verification_status'], unique=False,
    )

    op.create_table(
        'briefs',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('brand_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('requirements', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('budget_min', sa.Numeric(14, 2), nullable=False),
        sa.Column('budget_max', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('timeline', sa.String(255), nullable=False),
        sa.Column('target_delivery_date', sa.Date(), nullable=True),
        sa.Column('attachments', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('status', brief_status, nullable=False),
        sa.Column('ai_generated', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_briefs_brand_id'), 'briefs', ['brand_id'], unique=False)
    op.create_index(op.f('ix_briefs_category'), 'briefs', ['category'], unique=False)
    op.create_index(op.f('ix_briefs_status'), 'briefs', ['status'], unique=False)

    op.create_table(
        'proposals',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('brief_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('manufacturer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('price', sa.Numeric(14, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('delivery_timeline', sa.String(255), nullable=False),
        sa.Column('target_delivery_date', sa.Date(), nullable=True),
        sa.Column('details', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('attachments', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('status', proposal_status, nullable=False),
        sa.Column('counter_offer_history', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('submitted_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['brief_id'], ['briefs.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_proposals_brief_id'), 'proposals', ['brief_id'], unique=False)
    op.create_index(op.f('ix_proposals_manufacturer_id'), 'proposals', ['manufacturer_id'], unique=False)
    op.create_index(
        'uq_proposals_active_pair', 'proposals', ['brief_id', 'manufacturer_id'], unique=True,
        postgresql_where=sa.text("status <> 'WITHDRAWN' AND deleted_at IS NULL"),
    )
    op.create_index(
        'uq_proposals_accepted_brief', 'proposals', ['brief_id'], unique=True,
        postgresql_where=sa.text("status = 'ACCEPTED'"),
    )

    op.create_table(
        'brief_matches',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('brief_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('manufacturer_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('match_type', sa.String(32), nullable=False),
        sa.Column('match_score', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['brief_id'], ['briefs.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('brief_id', 'manufacturer_id', name='uq_brief_matches_pair')
    )
    op.create_index(op.f('ix_brief_matches_brief_id'), 'brief_matches', ['brief_id'], unique=False)
    op.create_index(op.f('ix_brief_matches_manufacturer_id'), 'brief_matches', ['manufacturer_id'], unique=False)

    op.create_table(
        'execution_log_entries',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('brief_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('author_id', sa.String(64), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('entry_type', entry_type, nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['brief_id'], ['briefs.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_execution_log_entries_brief_id'), 'execution_log_entries', ['brief_id'], unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('recipient_id', sa.String(64), nullable=False),
        sa.Column('type', notification_type, nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('data', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_recipient_id'), 'notifications', ['recipient_id'], unique=False)

    op.create_table(
        'pending_effects',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('effect_type', sa.String(64), nullable=False),
        sa.Column('payload', postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='PENDING'),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.Column('next_attempt_at', sa.DateTime(), nullable=False),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_pending_effects_due', 'pending_effects', ['status', 'next_attempt_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_pending_effects_due', table_name='pending_effects')
    op.drop_table('pending_effects')
    op.drop_index(op.f('ix_notifications_recipient_id'), table_name='notifications')
    op.drop_table('notifications')
    op.drop_index(op.f('ix_execution_log_entries_brief_id'), table_name='execution_log_entries')
    op.drop_table('execution_log_entries')
    op.drop_index(op.f('ix_brief_matches_manufacturer_id'), table_name='brief_matches')
    op.drop_index(op.f('ix_brief_matches_brief_id'), table_name='brief_matches')
    op.drop_table('brief_matches')
    op.drop_index('uq_proposals_accepted_brief', table_name='proposals')
    op.drop_index('uq_proposals_active_pair', table_name='proposals')
    op.drop_index(op.f('ix_proposals_manufacturer_id'), table_name='proposals')
    op.drop_index(op.f('ix_proposals_brief_id'), table_name='proposals')
    op.drop_table('proposals')
    op.drop_index(op.f('ix_briefs_status'), table_name='briefs')
    op.drop_index(op.f('ix_briefs_category'), table_name='briefs')
    op.drop_index(op.f('ix_briefs_brand_id'), table_name='briefs')
    op.drop_table('briefs')
    op.drop_index(op.f('ix_manufacturer_profiles_verification_status'), table_name='manufacturer_profiles')
    op.drop_index(op.f('ix_manufacturer_profiles_user_id'), table_name='manufacturer_profiles')
    op.drop_table('manufacturer_profiles')
    op.drop_index(op.f('ix_brand_profiles_user_id'), table_name='brand_profiles')
    op.drop_table('brand_profiles')
    for enum in (notification_type, entry_type, proposal_status, brief_status, verification_status):
        enum.drop(op.get_bind(), checkfirst=True)
