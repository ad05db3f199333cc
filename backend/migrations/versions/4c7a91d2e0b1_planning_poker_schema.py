"""planning poker schema: users, sessions, stories, votes

Revision ID: 4c7a91d2e0b1
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c7a91d2e0b1'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    existing_tables = set(insp.get_table_names())

    if 'user' not in existing_tables:
        op.create_table(
            'user',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('email', sa.String(length=255), nullable=False),
            sa.Column('password_hash', sa.String(length=256), nullable=False),
            sa.Column('role', sa.String(length=32), nullable=False),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_user_email', 'user', ['email'], unique=True)

    if 'planning_session' not in existing_tables:
        op.create_table(
            'planning_session',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('name', sa.String(length=128), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('status', sa.String(length=32), nullable=False),
            sa.Column('created_by', sa.Integer(), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(['created_by'], ['user.id']),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_planning_session_status', 'planning_session', ['status'])

    if 'session_participant' not in existing_tables:
        op.create_table(
            'session_participant',
            sa.Column('session_id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.ForeignKeyConstraint(['session_id'], ['planning_session.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['user_id'], ['user.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('session_id', 'user_id'),
        )

    if 'story' not in existing_tables:
        op.create_table(
            'story',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('session_id', sa.Integer(), nullable=False),
            sa.Column('title', sa.String(length=255), nullable=False),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('status', sa.String(length=32), nullable=False),
            sa.Column('time_limit_minutes', sa.Integer(), nullable=False),
            sa.Column('initial_estimate', sa.Integer(), nullable=True),
            sa.Column('final_estimate', sa.Integer(), nullable=True),
            sa.Column('voting_started_at', sa.Float(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
            sa.ForeignKeyConstraint(['session_id'], ['planning_session.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index('ix_story_session_id', 'story', ['session_id'])

    if 'vote' not in existing_tables:
        op.create_table(
            'vote',
            sa.Column('id', sa.Integer(), nullable=False),
            sa.Column('story_id', sa.Integer(), nullable=False),
            sa.Column('user_id', sa.Integer(), nullable=False),
            sa.Column('value', sa.Integer(), nullable=False),
            sa.Column('comment', sa.Text(), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(['story_id'], ['story.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['user_id'], ['user.id']),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('story_id', 'user_id', name='uq_vote_story_user'),
        )
        op.create_index('ix_vote_story_id', 'vote', ['story_id'])


def downgrade():
    op.drop_index('ix_vote_story_id', table_name='vote')
    op.drop_table('vote')
    op.drop_index('ix_story_session_id', table_name='story')
    op.drop_table('story')
    op.drop_table('session_participant')
    op.drop_index('ix_planning_session_status', table_name='planning_session')
    op.drop_table('planning_session')
    op.drop_index('ix_user_email', table_name='user')
    op.drop_table('user')
