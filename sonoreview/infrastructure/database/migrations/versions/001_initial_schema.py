# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial SonoReview schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-06-02
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column("id", sa.Integer, primary_key=True, autoincrement=True)


def _tree_node_table(table: str, parent_column: str, parent_table: str) -> None:
    """Create a diagnostic-tree level: (parent, key) unique, key distinct from name."""
    op.create_table(
        table,
        _id_column(),
        sa.Column(
            parent_column,
            sa.Integer,
            sa.ForeignKey(f"{parent_table}.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.UniqueConstraint(parent_column, "key", name=f"uq_{table}_{parent_column}_key"),
    )
    op.create_index(f"ix_{table}_{parent_column}", table, [parent_column])


def upgrade() -> None:
    """Create SonoReview tables."""
    # =========================================================================
    # USERS (reference table owned by the identity service)
    # =========================================================================

    op.create_table(
        "users",
        _id_column(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(15), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "role IN ('learner', 'reviewer', 'admin')", name="ck_users_role"
        ),
    )

    # =========================================================================
    # SCORING RUBRIC TREE
    # =========================================================================

    op.create_table(
        "protocol",
        _id_column(),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("key", name="uq_protocol_key"),
    )

    op.create_table(
        "protocol_section",
        _id_column(),
        sa.Column(
            "protocol_id",
            sa.Integer,
            sa.ForeignKey("protocol.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        sa.UniqueConstraint("protocol_id", "key", name="uq_protocol_section_protocol_id_key"),
    )
    op.create_index("ix_protocol_section_protocol_id", "protocol_section", ["protocol_id"])

    op.create_table(
        "protocol_item",
        _id_column(),
        sa.Column(
            "section_id",
            sa.Integer,
            sa.ForeignKey("protocol_section.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("score_scale", sa.String(20), nullable=False),
        sa.Column("max_score", sa.Integer, nullable=False),
        sa.UniqueConstraint("section_id", "key", name="uq_protocol_item_section_id_key"),
    )
    op.create_index("ix_protocol_item_section_id", "protocol_item", ["section_id"])
    op.create_index("ix_protocol_item_key", "protocol_item", ["key"])

    # =========================================================================
    # DIAGNOSTIC TREE
    # =========================================================================

    op.create_table(
        "protocol_window",
        _id_column(),
        sa.Column(
            "protocol_id",
            sa.Integer,
            sa.ForeignKey("protocol.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.UniqueConstraint("protocol_id", "key", name="uq_protocol_window_protocol_id_key"),
    )
    op.create_index("ix_protocol_window_protocol_id", "protocol_window", ["protocol_id"])

    op.create_table(
        "finding",
        _id_column(),
        sa.Column(
            "window_id",
            sa.Integer,
            sa.ForeignKey("protocol_window.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.UniqueConstraint("window_id", "key", name="uq_finding_window_id_key"),
    )
    op.create_index("ix_finding_window_id", "finding", ["window_id"])

    _tree_node_table("possible_diagnosis", "finding_id", "finding")
    op.create_index("ix_possible_diagnosis_key", "possible_diagnosis", ["key"])
    _tree_node_table("subdiagnosis", "possible_diagnosis_id", "possible_diagnosis")
    _tree_node_table("sub_subdiagnosis", "subdiagnosis_id", "subdiagnosis")
    _tree_node_table("third_order_diagnosis", "sub_subdiagnosis_id", "sub_subdiagnosis")

    # =========================================================================
    # REFERENCE VOCABULARIES
    # =========================================================================

    op.create_table(
        "image_quality",
        _id_column(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.UniqueConstraint("name", name="uq_image_quality_name"),
    )

    op.create_table(
        "final_diagnosis",
        _id_column(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.UniqueConstraint("name", name="uq_final_diagnosis_name"),
    )

    # =========================================================================
    # EVALUATION
    # =========================================================================

    op.create_table(
        "evaluation_attempt",
        _id_column(),
        sa.Column("clip_id", sa.Integer, nullable=False),
        sa.Column("reviewer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("comment", sa.Text, nullable=True),
    )
    op.create_index("ix_evaluation_attempt_clip_id", "evaluation_attempt", ["clip_id"])
    op.create_index("ix_evaluation_attempt_reviewer_id", "evaluation_attempt", ["reviewer_id"])

    op.create_table(
        "evaluation_response",
        _id_column(),
        sa.Column(
            "attempt_id",
            sa.Integer,
            sa.ForeignKey("evaluation_attempt.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "protocol_item_id",
            sa.Integer,
            sa.ForeignKey("protocol_item.id"),
            nullable=False,
        ),
        sa.Column("score", sa.Float, nullable=False),
        sa.UniqueConstraint(
            "attempt_id",
            "protocol_item_id",
            name="uq_evaluation_response_attempt_id_item_id",
        ),
    )
    op.create_index("ix_evaluation_response_attempt_id", "evaluation_response", ["attempt_id"])

    op.create_table(
        "evaluation_form",
        _id_column(),
        sa.Column("study_id", sa.Integer, nullable=False),
        sa.Column("reviewer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("score", sa.Float, nullable=False),
        sa.Column("feedback_summary", sa.Text, nullable=True),
        sa.Column(
            "submitted_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("study_id", name="uq_evaluation_form_study_id"),
    )

    # =========================================================================
    # CLIP INTERACTIONS
    # =========================================================================

    op.create_table(
        "clip_interaction",
        _id_column(),
        sa.Column("clip_id", sa.Integer, nullable=False),
        sa.Column("user_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("role", sa.String(15), nullable=False),
        sa.Column("protocol_key", sa.String(100), nullable=True),
        sa.Column("window_id", sa.Integer, sa.ForeignKey("protocol_window.id"), nullable=True),
        sa.Column("finding_id", sa.Integer, sa.ForeignKey("finding.id"), nullable=True),
        sa.Column(
            "possible_diagnosis_id",
            sa.Integer,
            sa.ForeignKey("possible_diagnosis.id"),
            nullable=True,
        ),
        sa.Column("subdiagnosis_id", sa.Integer, sa.ForeignKey("subdiagnosis.id"), nullable=True),
        sa.Column(
            "sub_subdiagnosis_id",
            sa.Integer,
            sa.ForeignKey("sub_subdiagnosis.id"),
            nullable=True,
        ),
        sa.Column(
            "third_order_diagnosis_id",
            sa.Integer,
            sa.ForeignKey("third_order_diagnosis.id"),
            nullable=True,
        ),
        sa.Column("learner_comment", sa.Text, nullable=True),
        sa.Column("learner_ready", sa.Boolean, nullable=True),
        sa.Column(
            "image_quality_id", sa.Integer, sa.ForeignKey("image_quality.id"), nullable=True
        ),
        sa.Column(
            "final_diagnosis_id", sa.Integer, sa.ForeignKey("final_diagnosis.id"), nullable=True
        ),
        sa.Column("reviewer_comment", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("clip_id", "role", name="uq_clip_interaction_clip_id_role"),
        sa.CheckConstraint(
            "role IN ('learner', 'reviewer')", name="ck_clip_interaction_role"
        ),
    )
    op.create_index("ix_clip_interaction_clip_id", "clip_interaction", ["clip_id"])


def downgrade() -> None:
    """Drop SonoReview tables."""
    op.drop_table("clip_interaction")
    op.drop_table("evaluation_form")
    op.drop_table("evaluation_response")
    op.drop_table("evaluation_attempt")
    op.drop_table("final_diagnosis")
    op.drop_table("image_quality")
    op.drop_table("third_order_diagnosis")
    op.drop_table("sub_subdiagnosis")
    op.drop_table("subdiagnosis")
    op.drop_table("possible_diagnosis")
    op.drop_table("finding")
    op.drop_table("protocol_window")
    op.drop_table("protocol_item")
    op.drop_table("protocol_section")
    op.drop_table("protocol")
    op.drop_table("users")
