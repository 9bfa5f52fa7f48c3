"""Initial relational schema: change requests, attachments, applications, invitations.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-03-02 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "change_requests",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("sap_vendor_id", sa.String(50), nullable=True),
        sa.Column("requester_id", sa.String(36), nullable=False),
        sa.Column("vendor_application_id", sa.String(36), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_change_requests_status", "change_requests", ["status"])
    op.create_index("ix_change_requests_sap_vendor_id", "change_requests", ["sap_vendor_id"])
    op.create_index(
        "ix_change_requests_vendor_application_id", "change_requests", ["vendor_application_id"]
    )

    op.create_table(
        "attachments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("linked_entity_id", sa.String(36), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("blob_url", sa.String(1000), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_attachments_linked_entity_id", "attachments", ["linked_entity_id"])

    op.create_table(
        "vendor_applications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("company_name", sa.String(200), nullable=False),
        sa.Column("tax_id", sa.String(100), nullable=True),
        sa.Column("contact_name", sa.String(200), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("registration_type", sa.String(20), nullable=False),
        sa.Column("invitation_id", sa.String(36), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_vendor_applications_company_name", "vendor_applications", ["company_name"])
    op.create_index("ix_vendor_applications_contact_email", "vendor_applications", ["contact_email"])

    op.create_table(
        "vendor_invitations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("invitation_token", sa.String(100), nullable=False),
        sa.Column("vendor_legal_name", sa.String(200), nullable=False),
        sa.Column("primary_contact_email", sa.String(255), nullable=False),
        sa.Column("invited_by", sa.String(36), nullable=False),
        sa.Column("invited_by_name", sa.String(200), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("vendor_application_id", sa.String(36), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_vendor_invitations_invitation_token",
        "vendor_invitations",
        ["invitation_token"],
        unique=True,
    )
    op.create_index(
        "ix_vendor_invitations_primary_contact_email",
        "vendor_invitations",
        ["primary_contact_email"],
    )
    op.create_index("ix_vendor_invitations_status", "vendor_invitations", ["status"])


def downgrade() -> None:
    op.drop_table("vendor_invitations")
    op.drop_table("vendor_applications")
    op.drop_table("attachments")
    op.drop_table("change_requests")
