from __future__ import annotations

from ..models.changes import BulkSaveResult, PendingCounts

"""Summary line rendering for pending changes and bulk commit results.

Formats:
    PENDING new={n} modified={m} deleted={d} total={t}
    Saved {n} row(s)[, {f} failed]
"""


def render_pending_line(counts: PendingCounts) -> str:
    """Render the PENDING line.

    Examples:
        >>> render_pending_line(PendingCounts(new=1, modified=2, deleted=0))
        'PENDING new=1 modified=2 deleted=0 total=3'
    """
    return (
        f"PENDING new={counts.new} "
        f"modified={counts.modified} "
        f"deleted={counts.deleted} "
        f"total={counts.total}"
    )


def render_bulk_result_line(result: BulkSaveResult) -> str:
    """Render the bulk commit outcome.

    Examples:
        >>> render_bulk_result_line(BulkSaveResult(success=[{"id": 1}]))
        'Saved 1 row(s)'
    """
    line = f"Saved {len(result.success)} row(s)"
    if result.failed:
        line += f", {len(result.failed)} failed"
    return line
