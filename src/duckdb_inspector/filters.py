"""Parameterized WHERE-clause builder for the ``?where=`` query parameter.

A filter is one or more ``column OP value`` conditions joined by ``AND``::

    id=5
    status = 'active' AND age >= 18
    name="a=b" AND id<>3

Values never reach the SQL text: each condition becomes ``column OP ?`` and
its value is bound through a parameter slot. Column names must be plain
identifiers, so they can be emitted as-is. ``&`` is not a separator: it is
the query-string separator, so an unencoded one never reaches the parser,
and an unquoted value containing it is rejected.

Anything that does not parse yields an empty predicate with ``malformed``
set. Whether that means "reject the request" or "apply to the whole table"
is the caller's decision (see ``settings.strict_filters``).
"""

import re
from dataclasses import dataclass

OPERATORS = ("<=", ">=", "!=", "<>", "=", "<", ">")

_CONDITION_RE = re.compile(
    r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*(<=|>=|!=|<>|=|<|>)\s*(.*?)\s*$",
    re.DOTALL,
)
_AND_RE = re.compile(r"\s+AND\s+", re.IGNORECASE)
_AMBIGUOUS_CHARS = set("=<>&")

NO_FILTER_WARNING = "No filter supplied: the operation applies to every row in the table"
MALFORMED_FILTER_WARNING = (
    "Filter {where!r} could not be parsed; expected 'column=value' conditions "
    "joined by 'AND'"
)


@dataclass(frozen=True)
class Condition:
    """One ``column OP value`` comparison."""

    column: str
    operator: str
    value: str


@dataclass(frozen=True)
class Predicate:
    """Parameterized WHERE fragment plus its bound values."""

    conditions: tuple[Condition, ...] = ()
    warning: str | None = None
    malformed: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.conditions

    @property
    def clause(self) -> str:
        return " AND ".join(f"{c.column} {c.operator} ?" for c in self.conditions)

    @property
    def params(self) -> list[str]:
        return [c.value for c in self.conditions]


def _split_conditions(where: str) -> list[str]:
    """Split on ``AND`` outside of quoted values."""
    parts: list[str] = []
    current: list[str] = []
    quote: str | None = None
    i = 0

    while i < len(where):
        char = where[i]
        if quote:
            if char == quote:
                quote = None
            current.append(char)
            i += 1
            continue

        if char in ("'", '"'):
            quote = char
            current.append(char)
            i += 1
            continue

        match = _AND_RE.match(where, i)
        if match:
            parts.append("".join(current))
            current = []
            i = match.end()
            continue

        current.append(char)
        i += 1

    parts.append("".join(current))
    return parts


def _strip_quotes(value: str) -> str | None:
    """Strip one layer of matching quotes; None if an unquoted value is ambiguous."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    if _AMBIGUOUS_CHARS & set(value):
        return None
    return value


def _parse_condition(text: str) -> Condition | None:
    match = _CONDITION_RE.match(text)
    if not match:
        return None

    column, operator, raw_value = match.groups()
    value = _strip_quotes(raw_value)
    if value is None:
        return None
    return Condition(column=column, operator=operator, value=value)


def parse_filter(where: str | None) -> Predicate:
    """
    Turn a free-form filter string into a parameterized predicate.

    - ``None``: empty predicate with a warning (mutation hits every row).
    - parseable: one condition per ``AND`` separated part.
    - anything else: empty predicate, ``malformed=True`` and a warning.
    """
    if where is None:
        return Predicate(warning=NO_FILTER_WARNING)

    conditions = []
    for part in _split_conditions(where):
        condition = _parse_condition(part)
        if condition is None:
            return Predicate(
                warning=MALFORMED_FILTER_WARNING.format(where=where),
                malformed=True,
            )
        conditions.append(condition)

    return Predicate(conditions=tuple(conditions))
