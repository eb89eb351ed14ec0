"""Create users, categories, shops, products and reviews tables.

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create catalog tables."""
    # Users (display data only)
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('avatar', sa.String(1000), nullable=True),
    )

    # Category tree
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(200), nullable=False, unique=True),
        sa.Column('parent_id', sa.Integer(),
                  sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True, index=True),
    )

    op.create_table(
        'shops',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('seller_id', sa.Integer(),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0'),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(500), nullable=False, index=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount', sa.Integer(), nullable=True),
        sa.Column('category_id', sa.Integer(),
                  sa.ForeignKey('categories.id'), nullable=False, index=True),
        sa.Column('shop_id', sa.Integer(),
                  sa.ForeignKey('shops.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('seller_id', sa.Integer(),
                  sa.ForeignKey('users.id'), nullable=False, index=True),
        sa.Column('images', sa.JSON(), nullable=False, server_default='[]'),
        sa.Column('rating', sa.Float(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true', index=True),
        sa.Column('sku', sa.String(100), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('stock >= 0', name='check_stock_non_negative'),
        sa.CheckConstraint('price > 0', name='check_price_positive'),
        sa.CheckConstraint(
            'discount IS NULL OR (discount >= 0 AND discount <= 100)',
            name='check_discount_range',
        ),
    )

    # SKU is unique per shop
    op.create_unique_constraint(
        'uq_products_shop_sku',
        'products',
        ['shop_id', 'sku'],
    )

    op.create_table(
        'reviews',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('product_id', sa.Integer(),
                  sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.CheckConstraint('rating >= 1 AND rating <= 5', name='check_review_rating'),
    )


def downgrade() -> None:
    """Drop catalog tables."""
    op.drop_table('reviews')
    op.drop_table('products')
    op.drop_table('shops')
    op.drop_table('categories')
    op.drop_table('users')
