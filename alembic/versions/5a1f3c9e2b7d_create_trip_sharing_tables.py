"""feat: trips, places, trip_access and invites tables

Revision ID: 5a1f3c9e2b7d
Revises:
Create Date: 2026-10-19 10:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5a1f3c9e2b7d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Ids are application-generated hex strings; no foreign keys, the
    # service deletes children explicitly when a trip goes away.
    op.create_table(
        "trips",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("owner_id", sa.Text, nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Index("ix_trips_owner_id", "owner_id"),
    )

    op.create_table(
        "places",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("trip_id", sa.Text, nullable=False),
        sa.Column("location_name", sa.String(300), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("day_number", sa.Integer, nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("day_number >= 1", name="ck_places_day_number_positive"),
        sa.Index("ix_places_trip_id", "trip_id"),
    )

    op.create_table(
        "trip_access",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("trip_id", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=False),
        sa.Column("role", sa.Text, nullable=False, server_default="Collaborator"),
        sa.Column("status", sa.Text, nullable=False, server_default="pending"),
        sa.Column("invited_by", sa.Text, nullable=False),
        sa.Column("invited_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("accepted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("accepted_by", sa.Text, nullable=True),
        sa.CheckConstraint("status IN ('pending', 'accepted', 'declined')", name="ck_trip_access_status"),
        sa.Index("ix_trip_access_trip_id_email", "trip_id", "email"),
        sa.Index("ix_trip_access_email_status", "email", "status"),
    )

    op.create_table(
        "invites",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("trip_id", sa.Text, nullable=False),
        sa.Column("email", sa.Text, nullable=False),
        sa.Column("token", sa.String(64), nullable=False),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("created_at", sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Index("ix_invites_token", "token"),
        sa.Index("ix_invites_trip_id_email", "trip_id", "email"),
    )


def downgrade() -> None:
    op.drop_table("invites")
    op.drop_table("trip_access")
    op.drop_table("places")
    op.drop_table("trips")
