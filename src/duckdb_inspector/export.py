"""CSV and JSON encoders for exported result sets.

Both functions are pure: they take the row dicts returned by the gateway and
return text.
"""

import json
from typing import Any, Iterable


def _csv_field(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (list, dict)):
        text = json.dumps(value, default=str)
    else:
        text = str(value)

    # Quote only when the field contains a comma or a quote
    if "," in text or '"' in text:
        text = '"' + text.replace('"', '""') + '"'
    return text


def to_csv(rows: Iterable[dict[str, Any]]) -> str:
    """
    Encode rows as CSV.

    The header is the key order of the first row; later rows are read by
    those keys (missing keys become empty fields). Every line ends in a
    newline, and an empty input encodes to an empty string.
    """
    rows = list(rows)
    if not rows:
        return ""

    headers = list(rows[0].keys())
    lines = [",".join(_csv_field(h) for h in headers)]
    for row in rows:
        lines.append(",".join(_csv_field(row.get(h)) for h in headers))
    return "\n".join(lines) + "\n"


def to_json(rows: Iterable[dict[str, Any]]) -> str:
    """Encode rows as a JSON array, preserving nulls."""
    return json.dumps(list(rows), default=str)
