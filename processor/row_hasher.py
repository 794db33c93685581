"""Content hashing used to detect edits to a row."""
import hashlib

from processor.models import Row
from processor.rich_text import render_rich_text

FIELD_SEPARATOR = '|'


def hash_row(row: Row) -> str:
    """
    Compute a deterministic digest of a row's comparison fields.

    Args:
        row: Row to hash

    Returns:
        SHA256 hex digest of the canonical row representation
    """
    parts = [
        row.start_time.isoformat(),
        row.end_time.isoformat(),
        '' if row.num_attendees is None else str(row.num_attendees),
        row.who,
    ]
    parts.extend(
        render_rich_text(text) for text in (
            row.what,
            row.where,
            row.in_charge,
            row.helpers,
            row.food_lead,
            row.childcare,
            row.notes
        )
    )

    composite = FIELD_SEPARATOR.join(parts)
    return hashlib.sha256(composite.encode('utf-8')).hexdigest()
