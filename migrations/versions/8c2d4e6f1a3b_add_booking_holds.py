"""add booking holds

Revision ID: 8c2d4e6f1a3b
Revises: 4f1a2b3c5d6e
Create Date: 2026-03-16 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8c2d4e6f1a3b'
down_revision = '4f1a2b3c5d6e'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'booking_holds',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('field_id', sa.Integer(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('hour', sa.String(length=5), nullable=False),
        sa.Column('session_token', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['field_id'], ['fields.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('field_id', 'date', 'hour', name='uq_booking_holds_slot')
    )
    with op.batch_alter_table('booking_holds', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_booking_holds_field_id'), ['field_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_booking_holds_expires_at'), ['expires_at'], unique=False)


def downgrade():
    with op.batch_alter_table('booking_holds', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_booking_holds_expires_at'))
        batch_op.drop_index(batch_op.f('ix_booking_holds_field_id'))
    op.drop_table('booking_holds')
