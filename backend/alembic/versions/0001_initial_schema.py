"""Packages, hotel components, coupons and bookings.

Revision ID: 0001
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

JSONB_TYPE = postgresql.JSONB().with_variant(sa.JSON(), "sqlite")

_ENUMS = {
    "discounttype": ("PERCENTAGE", "FIXED"),
    "bookingstatus": ("PENDING", "CONFIRMED", "CANCELLED", "COMPLETED"),
    "paymentstatus": ("PENDING", "PAID", "FAILED", "REFUNDED"),
    "pricingmode": ("STATIC", "LIVE"),
}


def _enum(name: str) -> sa.types.TypeEngine:
    values = _ENUMS[name]
    return postgresql.ENUM(*values, name=name, create_type=False).with_variant(
        sa.Enum(*values, name=name), "sqlite"
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in _ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)
    discount_type_enum = _enum("discounttype")

    op.create_table(
        "packages",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False, unique=True),
        sa.Column("categories", JSONB_TYPE, nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=False),
        sa.Column("price_adult", sa.Numeric(12, 2), nullable=False),
        sa.Column("price_child", sa.Numeric(12, 2)),
        sa.Column("price_infant", sa.Numeric(12, 2)),
        sa.Column("sale_price", sa.Numeric(12, 2)),
        sa.Column("discount_type", discount_type_enum),
        sa.Column("discount_value", sa.Numeric(12, 2)),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("availability", sa.Boolean(), nullable=False),
        sa.Column("max_travelers", sa.Integer(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "package_hotels",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "package_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("packages.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("hotel_code", sa.String(length=64), nullable=False),
        sa.Column("hotel_name", sa.String(length=255), nullable=False),
        sa.Column("nights", sa.Integer(), nullable=False),
        sa.Column("check_in_day", sa.Integer(), nullable=False),
        sa.Column("price_per_night", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("live_pricing", sa.Boolean(), nullable=False),
    )
    op.create_index(
        "ix_package_hotels_package_id", "package_hotels", ["package_id"]
    )

    op.create_table(
        "coupons",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("code", sa.String(length=20), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("discount_type", discount_type_enum, nullable=False),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("minimum_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("maximum_discount", sa.Numeric(12, 2)),
        sa.Column("usage_limit", sa.Integer()),
        sa.Column("usage_count", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("applicable_package_ids", JSONB_TYPE, nullable=False),
        sa.Column("applicable_categories", JSONB_TYPE, nullable=False),
        sa.Column("excluded_package_ids", JSONB_TYPE, nullable=False),
        *_timestamps(),
    )

    booking_status_enum = _enum("bookingstatus")
    payment_status_enum = _enum("paymentstatus")
    pricing_mode_enum = _enum("pricingmode")

    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column(
            "booking_reference", sa.String(length=40), nullable=False, unique=True
        ),
        sa.Column(
            "package_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("packages.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        sa.Column("adults", sa.Integer(), nullable=False),
        sa.Column("children", sa.Integer(), nullable=False),
        sa.Column("infants", sa.Integer(), nullable=False),
        sa.Column("check_in", sa.Date(), nullable=False),
        sa.Column("check_out", sa.Date(), nullable=False),
        sa.Column("total_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("server_quote_total", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("pricing_mode", pricing_mode_enum, nullable=False),
        sa.Column(
            "coupon_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("coupons.id", ondelete="SET NULL"),
        ),
        sa.Column("coupon_code", sa.String(length=20)),
        sa.Column("coupon_discount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.Column("payment_status", payment_status_enum, nullable=False),
        sa.Column("contact_email", sa.String(length=255), nullable=False),
        sa.Column("contact_phone", sa.String(length=64), nullable=False),
        sa.Column("special_requests", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_bookings_package_id", "bookings", ["package_id"])


def downgrade() -> None:
    op.drop_index("ix_bookings_package_id", table_name="bookings")
    op.drop_table("bookings")
    op.drop_table("coupons")
    op.drop_index("ix_package_hotels_package_id", table_name="package_hotels")
    op.drop_table("package_hotels")
    op.drop_table("packages")
    bind = op.get_bind()
    for name in _ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
