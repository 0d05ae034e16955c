"""initial

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 00:00:00.000000

Users, feature requests, votes and the activity log.
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("USER", "ADMIN", "SYSTEM", name="userrole")
request_status = sa.Enum(
    "PENDING",
    "IN_PROGRESS",
    "COMPLETED",
    "REJECTED",
    "ACCEPTED",
    name="featurerequeststatus",
)
activity_type = sa.Enum(
    "CREATED", "EDITED", "DELETED", "VOTED", "UNVOTED", name="activitytype"
)


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("hashed_password", sa.String(), nullable=True),
        sa.Column("email_verified_at", sa.DateTime(), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.Column("email_verification_token", sa.String(), nullable=True),
        sa.Column("email_verification_expires", sa.DateTime(), nullable=True),
        sa.Column("reset_password_token", sa.String(), nullable=True),
        sa.Column("reset_password_expires", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index(
        "ix_users_email_verification_token",
        "users",
        ["email_verification_token"],
        unique=False,
    )
    op.create_index(
        "ix_users_reset_password_token", "users", ["reset_password_token"], unique=False
    )

    op.create_table(
        "feature_requests",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", request_status, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_feature_requests_id", "feature_requests", ["id"], unique=False
    )
    op.create_index(
        "ix_feature_requests_status", "feature_requests", ["status"], unique=False
    )
    op.create_index(
        "ix_feature_requests_user", "feature_requests", ["user_id"], unique=False
    )

    op.create_table(
        "votes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("feature_request_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["feature_request_id"], ["feature_requests.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "feature_request_id", name="uq_vote_user_feature_request"
        ),
    )
    op.create_index("ix_votes_id", "votes", ["id"], unique=False)
    op.create_index(
        "ix_votes_feature_request", "votes", ["feature_request_id"], unique=False
    )

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", activity_type, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("feature_request_id", sa.Integer(), nullable=True),
        sa.Column("deleted_request_title", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["feature_request_id"], ["feature_requests.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activities_id", "activities", ["id"], unique=False)
    op.create_index(
        "ix_activities_user_created",
        "activities",
        ["user_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_activities_feature_request",
        "activities",
        ["feature_request_id"],
        unique=False,
    )


def downgrade():
    op.drop_index("ix_activities_feature_request", table_name="activities")
    op.drop_index("ix_activities_user_created", table_name="activities")
    op.drop_index("ix_activities_id", table_name="activities")
    op.drop_table("activities")

    op.drop_index("ix_votes_feature_request", table_name="votes")
    op.drop_index("ix_votes_id", table_name="votes")
    op.drop_table("votes")

    op.drop_index("ix_feature_requests_user", table_name="feature_requests")
    op.drop_index("ix_feature_requests_status", table_name="feature_requests")
    op.drop_index("ix_feature_requests_id", table_name="feature_requests")
    op.drop_table("feature_requests")

    op.drop_index("ix_users_reset_password_token", table_name="users")
    op.drop_index("ix_users_email_verification_token", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (activity_type, request_status, user_role):
        enum_type.drop(bind, checkfirst=True)
