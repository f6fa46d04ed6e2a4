"""Create verification, photo and transition tables

Revision ID: 001_create_verifications
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM, UUID


# revision identifiers, used by Alembic.
revision: str = '001_create_verifications'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

verification_status = sa.Enum('pending', 'approved', 'rejected', name='verificationstatus')
photo_status = sa.Enum('pending', 'approved', 'rejected', name='photostatus')
location_type = sa.Enum('farm', 'village', name='locationtype')
rejection_reason = sa.Enum(
    'poor_photo_quality',
    'face_not_visible',
    'incorrect_location',
    'insufficient_photos',
    'duplicate_request',
    'crop_mismatch',
    'fake_or_manipulated',
    'incomplete_information',
    'suspicious_activity',
    'other',
    name='rejectionreason',
)


def upgrade() -> None:
    """Create verifications, verification_photos and verification_transitions."""

    # 1. Verification requests
    op.create_table(
        'verifications',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('request_id', sa.String(32), nullable=False),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('crop_id', sa.String(64), nullable=False),
        sa.Column('crop_name', sa.String(100), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('village', sa.String(100), nullable=True),
        sa.Column('taluk', sa.String(100), nullable=True),
        sa.Column('district', sa.String(100), nullable=True),
        sa.Column('quantity', sa.String(50), nullable=True),
        sa.Column('variety', sa.String(100), nullable=True),
        sa.Column('moisture', sa.String(20), nullable=True),
        sa.Column('will_dry', sa.String(10), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('location_type', location_type, nullable=True),
        sa.Column('status', verification_status, nullable=False, server_default='pending'),
        sa.Column('rejection_reason', rejection_reason, nullable=True),
        sa.Column('rejection_notes', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_verifications_request_id', 'verifications', ['request_id'], unique=True)
    op.create_index('ix_verifications_user_id', 'verifications', ['user_id'])
    op.create_index('ix_verifications_crop_id', 'verifications', ['crop_id'])
    op.create_index('ix_verifications_status', 'verifications', ['status'])
    op.create_index('ix_verifications_created_at', 'verifications', ['created_at'])
    op.create_index('ix_verifications_user_id_created_at', 'verifications', ['user_id', 'created_at'])
    # At most one pending or approved request per owner
    op.create_index(
        'uq_verifications_active_owner',
        'verifications',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('pending', 'approved')"),
    )

    # 2. Photos, each with its own review status
    op.create_table(
        'verification_photos',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('verification_id', UUID(as_uuid=True), sa.ForeignKey('verifications.id'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('url', sa.String(500), nullable=False),
        sa.Column('status', photo_status, nullable=False, server_default='pending'),
    )
    op.create_index('ix_verification_photos_verification_id', 'verification_photos', ['verification_id'])

    # 3. Lifecycle transitions, one row per mutation
    op.create_table(
        'verification_transitions',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('verification_id', UUID(as_uuid=True), sa.ForeignKey('verifications.id'), nullable=False),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('actor_id', sa.String(100), nullable=True),
        sa.Column('from_status', ENUM(name='verificationstatus', create_type=False), nullable=True),
        sa.Column('to_status', ENUM(name='verificationstatus', create_type=False), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_verification_transitions_verification_id', 'verification_transitions', ['verification_id'])
    op.create_index('ix_verification_transitions_created_at', 'verification_transitions', ['created_at'])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_index('ix_verification_transitions_created_at', table_name='verification_transitions')
    op.drop_index('ix_verification_transitions_verification_id', table_name='verification_transitions')
    op.drop_table('verification_transitions')
    op.drop_index('ix_verification_photos_verification_id', table_name='verification_photos')
    op.drop_table('verification_photos')
    for index in (
        'uq_verifications_active_owner',
        'ix_verifications_user_id_created_at',
        'ix_verifications_created_at',
        'ix_verifications_status',
        'ix_verifications_crop_id',
        'ix_verifications_user_id',
        'ix_verifications_request_id',
    ):
        op.drop_index(index, table_name='verifications')
    op.drop_table('verifications')

    bind = op.get_bind()
    for enum_type in (rejection_reason, location_type, photo_status, verification_status):
        enum_type.drop(bind, checkfirst=True)
