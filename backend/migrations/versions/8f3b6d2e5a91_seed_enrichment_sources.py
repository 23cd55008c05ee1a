"""seed enrichment sources

Revision ID: 8f3b6d2e5a91
Revises: 4c1e9a7b2d10
Create Date: 2026-10-19 09:20:03.554712

"""
from datetime import datetime
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8f3b6d2e5a91'
down_revision: Union[str, Sequence[str], None] = '4c1e9a7b2d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SEED_SOURCES = [
    ("hunter", "Hunter.io", "FIRST", True),
    ("apollo", "Apollo.io", "SECOND", True),
    ("zoominfo", "ZoomInfo", "THIRD", True),
    ("clay", "Clay", "DO_NOT_USE", False),
]


def upgrade() -> None:
    """Insert the default vendor ranking."""
    enrichment_sources = sa.table(
        "enrichment_sources",
        sa.column("source_name", sa.String()),
        sa.column("display_name", sa.String()),
        sa.column("priority", sa.Enum("FIRST", "SECOND", "THIRD", "DO_NOT_USE", name="sourcepriority")),
        sa.column("is_enabled", sa.Boolean()),
        sa.column("updated_at", sa.DateTime()),
    )
    now = datetime.utcnow()
    op.bulk_insert(
        enrichment_sources,
        [
            {
                "source_name": name,
                "display_name": display,
                "priority": priority,
                "is_enabled": enabled,
                "updated_at": now,
            }
            for name, display, priority, enabled in SEED_SOURCES
        ],
    )


def downgrade() -> None:
    """Remove the seeded vendor rows."""
    op.execute(
        sa.text("DELETE FROM enrichment_sources WHERE source_name IN ('hunter', 'apollo', 'zoominfo', 'clay')")
    )
