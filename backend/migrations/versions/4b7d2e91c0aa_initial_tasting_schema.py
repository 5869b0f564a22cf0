"""initial tasting schema

Revision ID: 4b7d2e91c0aa
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4b7d2e91c0aa'
down_revision = None
branch_labels = None
depends_on = None


def _game_fk():
    return sa.Column('game_id', sa.Integer(), sa.ForeignKey('game.id'), nullable=False, index=True)


def upgrade():
    op.create_table(
        'game',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('game_code', sa.String(length=10), nullable=False, unique=True, index=True),
        sa.Column('host_uid', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='setup'),
        sa.Column('current_round', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('total_rounds', sa.Integer(), nullable=False, server_default='3'),
        sa.Column('setup_players', sa.Integer(), nullable=True),
        sa.Column('setup_bottles', sa.Integer(), nullable=True),
        sa.Column('setup_bottles_per_round', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_table(
        'player',
        sa.Column('id', sa.Integer(), primary_key=True),
        _game_fk(),
        sa.Column('uid', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('game_id', 'uid', name='uq_player_game_uid'),
    )
    op.create_table(
        'wine',
        sa.Column('id', sa.Integer(), primary_key=True),
        _game_fk(),
        sa.Column('wine_id', sa.String(length=100), nullable=False),
        sa.Column('letter', sa.String(length=3), nullable=False, server_default=''),
        sa.Column('label_blinded', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('nickname', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('price_cents', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('game_id', 'wine_id', name='uq_wine_game_wine'),
    )
    op.create_table(
        'round',
        sa.Column('id', sa.Integer(), primary_key=True),
        _game_fk(),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('state', sa.String(length=16), nullable=False, server_default='closed'),
        sa.UniqueConstraint('game_id', 'round_number', name='uq_round_game_number'),
    )
    op.create_table(
        'round_wine',
        sa.Column('id', sa.Integer(), primary_key=True),
        _game_fk(),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('wine_id', sa.String(length=100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=True),
        sa.UniqueConstraint('game_id', 'wine_id', name='uq_round_wine_game_wine'),
    )
    op.create_table(
        'round_submission',
        sa.Column('id', sa.Integer(), primary_key=True),
        _game_fk(),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('uid', sa.String(length=64), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('ranking', sa.Text(), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('game_id', 'round_number', 'uid', name='uq_submission_round_uid'),
    )
    op.create_table(
        'round_draft',
        sa.Column('id', sa.Integer(), primary_key=True),
        _game_fk(),
        sa.Column('round_number', sa.Integer(), nullable=False),
        sa.Column('uid', sa.String(length=64), nullable=False),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('ranking', sa.Text(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('game_id', 'round_number', 'uid', name='uq_draft_round_uid'),
    )
    op.create_table(
        'gambit_submission',
        sa.Column('id', sa.Integer(), primary_key=True),
        _game_fk(),
        sa.Column('uid', sa.String(length=64), nullable=False),
        sa.Column('cheapest_wine_id', sa.String(length=100), nullable=True),
        sa.Column('most_expensive_wine_id', sa.String(length=100), nullable=True),
        sa.Column('favorite_wine_ids', sa.Text(), nullable=False, server_default='[]'),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('game_id', 'uid', name='uq_gambit_game_uid'),
    )


def downgrade():
    for table in (
        'gambit_submission', 'round_draft', 'round_submission', 'round_wine', 'round', 'wine', 'player', 'game',
    ):
        op.drop_table(table)
