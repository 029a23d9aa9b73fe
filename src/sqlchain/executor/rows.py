"""Row shaping for the fetch styles."""

from typing import Any, Dict, List, Sequence

from sqlchain.constants.sql import FetchStyle


def shape_row(keys: Sequence[str], row: Sequence[Any], fetch_style: FetchStyle) -> Any:
    """Shape one row. GROUP is not a single-row style and is rejected."""
    if fetch_style == FetchStyle.ASSOC:
        return dict(zip(keys, row))
    if fetch_style == FetchStyle.NUM:
        return tuple(row)
    if fetch_style == FetchStyle.BOTH:
        both: Dict[Any, Any] = dict(zip(keys, row))
        both.update(enumerate(row))
        return both
    if fetch_style == FetchStyle.COLUMN:
        return row[0]
    raise ValueError(f"Fetch style {fetch_style} cannot shape a single row")


def shape_rows(keys: Sequence[str], rows: Sequence[Sequence[Any]], fetch_style: FetchStyle) -> Any:
    """Shape a result set.

    GROUP returns ``{first column value: [dict of remaining columns, ...]}``
    in first-seen order; every other style returns a list.
    """
    if fetch_style == FetchStyle.GROUP:
        grouped: Dict[Any, List[Dict[str, Any]]] = {}
        rest = keys[1:]
        for row in rows:
            grouped.setdefault(row[0], []).append(dict(zip(rest, row[1:])))
        return grouped

    return [shape_row(keys, row, fetch_style) for row in rows]
