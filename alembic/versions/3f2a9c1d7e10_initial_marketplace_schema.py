"""initial_marketplace_schema

Revision ID: 3f2a9c1d7e10
Revises:
Create Date: 2026-10-17 09:00:00.000000

Creates the marketplace schema:
- accounts: users, user_credentials, email_verifications, sessions
- catalog: countries, developers, developer_reviews, properties and their
  payment schedules, details and required documents
- buyer activity: user_profiles, property_favorites, property_purchases,
  purchase_messages
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f2a9c1d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(), server_default=sa.func.current_timestamp(), nullable=False),
    ]


def upgrade() -> None:
    """Create all marketplace tables."""

    # ========== ACCOUNTS ==========
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('public_id', sa.String(50), nullable=False),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('first_name', sa.String(120)),
        sa.Column('last_name', sa.String(120)),
        sa.Column('role', sa.Enum('client', 'developer', 'agent', name='user_role'), nullable=False),
        sa.Column('is_email_verified', sa.Boolean(), nullable=False),
        sa.Column('status', sa.Enum('active', 'suspended', 'deleted', name='user_status'), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_users_public_id', 'users', ['public_id'], unique=True)
    op.create_index('ix_users_status', 'users', ['status'])

    op.create_table(
        'user_credentials',
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('password_algo', sa.Enum('bcrypt', name='password_algo'), nullable=False),
        sa.Column('last_password_change', sa.DateTime()),
    )

    op.create_table(
        'email_verifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.CHAR(6), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('used_at', sa.DateTime()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_email_verifications_user_id', 'email_verifications', ['user_id'])

    op.create_table(
        'sessions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('refresh_token', sa.CHAR(64), nullable=False, unique=True),
        sa.Column('user_agent', sa.String(255)),
        sa.Column('ip_addr', sa.String(45)),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('revoked_at', sa.DateTime()),
    )

    # ========== CATALOG ==========
    op.create_table(
        'countries',
        sa.Column('code', sa.String(2), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'developers',
        sa.Column('id', sa.String(50), primary_key=True),
        sa.Column('company_name', sa.String(255), nullable=False),
        sa.Column('logo_url', sa.String(1024)),
        sa.Column('description', sa.Text()),
        sa.Column('website', sa.String(1024)),
        sa.Column('phone', sa.String(64)),
        sa.Column('email', sa.String(255)),
        *_timestamps(),
    )

    op.create_table(
        'developer_reviews',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('developer_id', sa.String(50), sa.ForeignKey('developers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('rating', sa.SmallInteger(), nullable=False),
        sa.Column('comment', sa.Text()),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_developer_review_rating'),
    )
    op.create_index('ix_developer_reviews_developer_id', 'developer_reviews', ['developer_id'])

    op.create_table(
        'properties',
        sa.Column('id', sa.String(50), primary_key=True),
        sa.Column('title', sa.String(140), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('type', sa.Enum('land', 'house', name='property_type_enum'), nullable=False),
        sa.Column('price', sa.Float(), nullable=False),
        sa.Column('image_url', sa.String(1024)),
        sa.Column('location', sa.String(255), nullable=False),
        sa.Column('country_code', sa.String(2), sa.ForeignKey('countries.code', ondelete='RESTRICT'), nullable=False),
        sa.Column('coordinates', sa.String(64)),
        sa.Column('status', sa.Enum('available', 'sold', name='property_status_enum'),
                  nullable=False, server_default='available'),
        sa.Column('developer_id', sa.String(50), sa.ForeignKey('developers.id', ondelete='SET NULL')),
        *_timestamps(),
    )
    op.create_index('ix_properties_country_code', 'properties', ['country_code'])
    op.create_index('ix_properties_developer_id', 'properties', ['developer_id'])

    op.create_table(
        'property_payment_schedules',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('property_id', sa.String(50), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('initial_payment', sa.Float(), nullable=False),
        sa.Column('monthly_payment', sa.Float(), nullable=False),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.current_timestamp(), nullable=False),
    )
    op.create_index('ix_property_payment_schedules_property_id', 'property_payment_schedules', ['property_id'])

    op.create_table(
        'property_details',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('property_id', sa.String(50), sa.ForeignKey('properties.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        sa.Column('surface', sa.Float(), nullable=False),
        sa.Column('bedrooms', sa.Integer()),
        sa.Column('bathrooms', sa.Integer()),
        sa.Column('matterport_id', sa.String(64)),
        sa.Column('floor_plan_url', sa.String(1024)),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.current_timestamp(), nullable=False),
    )

    op.create_table(
        'required_documents',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('property_id', sa.String(50), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
    )
    op.create_index('ix_required_documents_property_id', 'required_documents', ['property_id'])

    # ========== BUYER ACTIVITY ==========
    op.create_table(
        'user_profiles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('first_name', sa.String(120)),
        sa.Column('last_name', sa.String(120)),
        sa.Column('country', sa.String(2)),
        sa.Column('phone', sa.String(32)),
        sa.Column('professional_activity', sa.String(120)),
        sa.Column('revenue_range', sa.String(120)),
        sa.Column('has_eu_residency', sa.Boolean()),
        sa.Column('kyc_verified', sa.Boolean()),
        sa.Column('kyc_verified_at', sa.DateTime()),
        *_timestamps(),
    )

    op.create_table(
        'property_favorites',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('property_id', sa.String(50), sa.ForeignKey('properties.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(), server_default=sa.func.current_timestamp(), nullable=False),
        sa.UniqueConstraint('user_id', 'property_id', name='uq_favorite_user_property'),
    )
    op.create_index('ix_property_favorites_user_id', 'property_favorites', ['user_id'])

    op.create_table(
        'property_purchases',
        sa.Column('id', sa.String(50), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('property_id', sa.String(50), sa.ForeignKey('properties.id', ondelete='RESTRICT'), nullable=False),
        sa.Column('status', sa.Enum('pending_kyc', 'pending_documents', 'pending_payment', 'processing',
                                    'completed', 'cancelled', name='purchase_status_enum'),
                  nullable=False, server_default='pending_kyc'),
        sa.Column('payment_method', sa.Enum('bank', 'instant', 'card', name='payment_method_enum')),
        sa.Column('loan_application', sa.JSON()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_purchases_user_property', 'property_purchases', ['user_id', 'property_id'])

    op.create_table(
        'purchase_messages',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('purchase_id', sa.String(50), sa.ForeignKey('property_purchases.id', ondelete='CASCADE'),
                  nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_purchase_messages_purchase_id', 'purchase_messages', ['purchase_id'])


def downgrade() -> None:
    """Drop all marketplace tables (children first)."""
    op.drop_table('purchase_messages')
    op.drop_table('property_purchases')
    op.drop_table('property_favorites')
    op.drop_table('user_profiles')
    op.drop_table('required_documents')
    op.drop_table('property_details')
    op.drop_table('property_payment_schedules')
    op.drop_table('properties')
    op.drop_table('developer_reviews')
    op.drop_table('developers')
    op.drop_table('countries')
    op.drop_table('sessions')
    op.drop_table('email_verifications')
    op.drop_table('user_credentials')
    op.drop_table('users')
