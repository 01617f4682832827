"""Initial loyalty schema (members, ledgers, catalog, completions, redemptions).

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-16
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1b2c3d4e5f6'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def _targeting():
    return [
        sa.Column('target_tiers', sa.JSON(), nullable=True),
        sa.Column('target_member_types', sa.JSON(), nullable=True),
        sa.Column('target_sub_types', sa.JSON(), nullable=True),
    ]


def _ledger(table):
    op.create_table(
        table,
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(10), nullable=False),
        sa.Column('source', sa.String(30), nullable=False),
        sa.Column('source_id', sa.String(64), nullable=True),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.CheckConstraint('amount > 0', name=f'ck_{table}_amount_positive'),
    )
    op.create_index(f'ix_{table}_profile_id', table, ['profile_id'])


def upgrade():
    """Create all loyalty tables."""
    # Members
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('member_code', sa.String(20), nullable=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(30), nullable=True),
        sa.Column('member_type', sa.String(30), nullable=False, server_default='other'),
        sa.Column('tier', sa.String(20), nullable=False, server_default='bronze'),
        sa.Column('approval_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_coins', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_code'),
        sa.CheckConstraint('total_points >= 0', name='ck_profiles_points_non_negative'),
        sa.CheckConstraint('total_coins >= 0', name='ck_profiles_coins_non_negative'),
    )

    op.create_table(
        'farm_details',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('farm_name', sa.String(200), nullable=True),
        sa.Column('position', sa.String(30), nullable=True),
        sa.Column('animal_types', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('profile_id'),
    )
    op.create_table(
        'company_details',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('company_name', sa.String(200), nullable=True),
        sa.Column('business_type', sa.String(40), nullable=True),
        sa.Column('is_elanco', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('profile_id'),
    )
    op.create_table(
        'vet_details',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('clinic_name', sa.String(200), nullable=True),
        sa.Column('vet_type', sa.String(30), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('profile_id'),
    )

    op.create_table(
        'tier_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tier', sa.String(20), nullable=False),
        sa.Column('display_name', sa.String(50), nullable=False),
        sa.Column('min_points', sa.Integer(), nullable=False),
        sa.Column('max_points', sa.Integer(), nullable=True),
        sa.Column('benefits', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tier'),
    )

    # Ledgers
    _ledger('points_transactions')
    _ledger('coins_transactions')

    # Catalog
    op.create_table(
        'content',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('content_type', sa.String(20), nullable=False, server_default='article'),
        sa.Column('points_reward', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('media_url', sa.String(500), nullable=True),
        sa.Column('thumbnail_url', sa.String(500), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('published_at', sa.DateTime(), nullable=True),
        *_targeting(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_table(
        'quiz_questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('options', sa.JSON(), nullable=False),
        sa.Column('correct_answer', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_quiz_questions_content_id', 'quiz_questions', ['content_id'])
    op.create_table(
        'survey_questions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('question_type', sa.String(30), nullable=False, server_default='text'),
        sa.Column('options', sa.JSON(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('order_index', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['content_id'], ['content.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_survey_questions_content_id', 'survey_questions', ['content_id'])

    op.create_table(
        'missions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('mission_type', sa.String(20), nullable=False, server_default='manual'),
        sa.Column('points_reward', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('coins_reward', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('qr_code', sa.String(255), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('reward_overrides', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('start_date', sa.DateTime(), nullable=True),
        sa.Column('end_date', sa.DateTime(), nullable=True),
        *_targeting(),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'rewards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('image_url', sa.String(500), nullable=True),
        sa.Column('points_cost', sa.Integer(), nullable=False),
        sa.Column('tier_points_cost', sa.JSON(), nullable=True),
        sa.Column('stock_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_targeting(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_rewards_stock_non_negative'),
        sa.CheckConstraint('points_cost >= 0', name='ck_rewards_points_cost_non_negative'),
    )

    # Completions
    op.create_table(
        'content_progress',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('content_id', sa.Integer(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('progress_percent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quiz_score', sa.Integer(), nullable=True),
        sa.Column('survey_responses', sa.JSON(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['content_id'], ['content.id']),
        sa.UniqueConstraint('profile_id', 'content_id', name='uq_content_progress_profile_content'),
    )
    op.create_index('ix_content_progress_profile_id', 'content_progress', ['profile_id'])

    op.create_table(
        'mission_completions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('mission_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('coins_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('proof_image_url', sa.String(500), nullable=True),
        sa.Column('proof_data', sa.JSON(), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.ForeignKeyConstraint(['mission_id'], ['missions.id']),
        sa.UniqueConstraint('profile_id', 'mission_id', name='uq_mission_completions_profile_mission'),
    )
    op.create_index('ix_mission_completions_profile_id', 'mission_completions', ['profile_id'])

    op.create_table(
        'daily_checkins',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('checkin_date', sa.Date(), nullable=False),
        sa.Column('streak_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('day_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('coins_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
        sa.UniqueConstraint('profile_id', 'checkin_date', name='uq_daily_checkins_profile_date'),
    )
    op.create_index('ix_daily_checkins_profile_id', 'daily_checkins', ['profile_id'])

    op.create_table(
        'checkin_rewards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('day_number', sa.Integer(), nullable=False),
        sa.Column('coins_reward', sa.Integer(), nullable=False),
        sa.Column('is_bonus', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('day_number'),
    )

    op.create_table(
        'receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('image_url', sa.String(500), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('store_name', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('points_awarded', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(), nullable=True),
        sa.Column('reviewed_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id']),
    )
    op.create_index('ix_receipts_profile_id', 'receipts', ['profile_id'])

    # Redemptions
    op.create_table(
        'reward_redemptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('profile_id', sa.Integer(), nullable=False),
        sa.Column('reward_id', sa.Integer(), nullable=False),
        sa.Column('redemption_code', sa.String(50), nullable=False),
        sa.Column('points_spent', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('shipping_address', sa.Text(), nullable=False),
        sa.Column('tracking_number', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column('shipped_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['profile_id'], ['profiles.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['reward_id'], ['rewards.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('redemption_code'),
    )
    op.create_index('ix_redemptions_profile_created', 'reward_redemptions', ['profile_id', 'created_at'])
    op.create_index('ix_redemptions_status', 'reward_redemptions', ['status'])

    # Default check-in cycle: 5 coins a day, 50 on day 7
    checkin_rewards = sa.table(
        'checkin_rewards',
        sa.column('day_number', sa.Integer()),
        sa.column('coins_reward', sa.Integer()),
        sa.column('is_bonus', sa.Boolean()),
    )
    op.bulk_insert(checkin_rewards, [
        {'day_number': day, 'coins_reward': 50 if day == 7 else 5, 'is_bonus': day == 7}
        for day in range(1, 8)
    ])


def downgrade():
    """Drop all loyalty tables."""
    for table in (
        'reward_redemptions',
        'receipts',
        'checkin_rewards',
        'daily_checkins',
        'mission_completions',
        'content_progress',
        'rewards',
        'missions',
        'survey_questions',
        'quiz_questions',
        'content',
        'coins_transactions',
        'points_transactions',
        'tier_settings',
        'vet_details',
        'company_details',
        'farm_details',
        'profiles',
    ):
        op.drop_table(table)
