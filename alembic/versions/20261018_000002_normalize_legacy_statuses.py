"""Normalize legacy numeric statuses.

Imported rows may carry the old 1 / 2 / 0 encodings. Rewrite them to the
string values the models validate against.

Revision ID: 20261018_000002
Revises: 20261018_000001
Create Date: 2026-10-18 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_000002'
down_revision: Union[str, None] = '20261018_000001'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# table -> {legacy code: status}
LEGACY_STATUSES = {
    'accounts': {'1': 'active', '0': 'suspended'},
    'investments': {'1': 'active', '2': 'completed', '0': 'cancelled'},
    'ledger_entries': {'1': 'credited', '0': 'cancelled'},
}


def upgrade() -> None:
    """Rewrite legacy status codes."""
    for table, mapping in LEGACY_STATUSES.items():
        for legacy, status in mapping.items():
            op.execute(
                sa.text(
                    f"UPDATE {table} SET status = :status WHERE status = :legacy"
                ).bindparams(status=status, legacy=legacy)
            )


def downgrade() -> None:
    """Legacy codes are not restored."""
    pass
