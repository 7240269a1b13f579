"""initial schema (users, properties, amenities, images, favorites, contacts, interactions)

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("google_id", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("avatar", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("provider", sa.String(length=20), nullable=False, server_default="manual"),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="user"),
        sa.Column("phone", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("notifications", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("newsletter", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("google_id", name="uq_users_google_id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "properties",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("reference", sa.String(length=40), nullable=False),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("property_type", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("listing_type", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("address", sa.String(length=512), nullable=False, server_default=""),
        sa.Column("city", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("state", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("pincode", sa.String(length=12), nullable=False, server_default=""),
        sa.Column("locality", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("bedrooms", sa.Integer(), nullable=True),
        sa.Column("bathrooms", sa.Integer(), nullable=True),
        sa.Column("balconies", sa.Integer(), nullable=True),
        sa.Column("area", sa.Float(), nullable=True),
        sa.Column("area_unit", sa.String(length=20), nullable=False, server_default="sqft"),
        sa.Column("furnishing", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("facing", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("floor", sa.Integer(), nullable=True),
        sa.Column("total_floors", sa.Integer(), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("price_per_sqft", sa.Float(), nullable=True),
        sa.Column("maintenance_charges", sa.Float(), nullable=True),
        sa.Column("price_negotiable", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("year_built", sa.Integer(), nullable=True),
        sa.Column("possession", sa.String(length=60), nullable=False, server_default=""),
        sa.Column("parking_spaces", sa.Integer(), nullable=True),
        sa.Column("owner_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("owner_phone", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("owner_email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("agent_name", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("agent_phone", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("agent_email", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("agent_image", sa.String(length=1024), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("is_featured", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("views", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("extra", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_properties_reference", "properties", ["reference"], unique=True)
    op.create_index("ix_properties_owner_id", "properties", ["owner_id"])
    op.create_index("ix_properties_property_type", "properties", ["property_type"])
    op.create_index("ix_properties_city", "properties", ["city"])
    op.create_index("ix_properties_bedrooms", "properties", ["bedrooms"])
    op.create_index("ix_properties_area", "properties", ["area"])
    op.create_index("ix_properties_price", "properties", ["price"])
    op.create_index("ix_properties_status", "properties", ["status"])
    op.create_index("ix_properties_is_featured", "properties", ["is_featured"])
    op.create_index("ix_properties_created_at", "properties", ["created_at"])

    op.create_table(
        "property_amenities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.UniqueConstraint("property_id", "name", name="uq_property_amenity"),
    )
    op.create_index("ix_property_amenities_property_id", "property_amenities", ["property_id"])
    op.create_index("ix_property_amenities_name", "property_amenities", ["name"])

    op.create_table(
        "property_images",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("url", sa.String(length=1024), nullable=False),
        sa.Column("cloudinary_public_id", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_property_images_property_id", "property_images", ["property_id"])

    op.create_table(
        "favorites",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=False, server_default=""),
        sa.Column("added_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("user_id", "property_id", name="uq_favorite_user_property"),
    )
    op.create_index("ix_favorites_user_id", "favorites", ["user_id"])
    op.create_index("ix_favorites_property_id", "favorites", ["property_id"])
    op.create_index("ix_favorites_added_at", "favorites", ["added_at"])

    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=False, server_default=""),
        sa.Column("subject", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("property_interest", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("extra", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "user_interactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=60), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_user_interactions_user_id", "user_interactions", ["user_id"])
    op.create_index("ix_user_interactions_session_id", "user_interactions", ["session_id"])
    op.create_index("ix_user_interactions_action", "user_interactions", ["action"])


def downgrade() -> None:
    op.drop_table("user_interactions")
    op.drop_table("contacts")
    op.drop_table("favorites")
    op.drop_table("property_images")
    op.drop_table("property_amenities")
    op.drop_table("properties")
    op.drop_table("users")
