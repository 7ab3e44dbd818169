"""Display formatters for raw cell values.

The set of formatters is closed: a column declares one of the
:class:`FormatterKind` tags and :func:`format_value` dispatches on it.
Tags are validated when the schema is loaded, so an unknown tag never
reaches the renderer.
"""

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

_KIB: int = 1024
_UNITS: tuple[str, ...] = ("KB", "MB", "GB")


class FormatterKind(str, Enum):
    """Registered formatter tags, valued by their JSON wire name."""

    SIZE = "sizeFormat"
    DATE = "dateFormat"

    @classmethod
    def parse(cls, tag: str) -> "FormatterKind":
        """Return the kind for a wire *tag*.

        Raises:
            ValueError: If *tag* is not a registered formatter.
        """
        try:
            return cls(tag)
        except ValueError:
            known = ", ".join(k.value for k in cls)
            raise ValueError(f"Unknown formatter {tag!r}. Registered: {known}") from None


def _coerce_number(value: Any) -> int | float:
    """Interpret *value* (number or numeric string) as a finite number."""
    if value is None:
        raise TypeError("Cannot format a missing value")
    if isinstance(value, bool):
        raise TypeError(f"Cannot format boolean {value!r} as a number")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        try:
            number = int(text)
        except ValueError:
            number = float(text)
    else:
        raise TypeError(f"Cannot format {type(value).__name__} value {value!r} as a number")
    if isinstance(number, float) and not math.isfinite(number):
        raise ValueError(f"Cannot format non-finite value {value!r}")
    return number


def _to_fixed_2(number: float) -> str:
    # Round half away from zero on the exact binary value, like JS toFixed.
    return str(Decimal(number).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def size_format(value: Any) -> str:
    """Render a byte count with a base-1024 unit suffix.

    >>> size_format(512)
    '512 B'
    >>> size_format(2048)
    '2.00 KB'
    """
    size = _coerce_number(value)
    if size < _KIB:
        return f"{int(size)} B"
    scaled = float(size)
    for unit in _UNITS:
        scaled /= _KIB
        if scaled < _KIB or unit == _UNITS[-1]:
            return f"{_to_fixed_2(scaled)} {unit}"
    raise AssertionError("unreachable")


def date_format(value: Any) -> str:
    """Render a millisecond timestamp as ``YYYY-MM-DD`` in local time."""
    millis = _coerce_number(value)
    date = datetime.fromtimestamp(millis / 1000)
    return f"{date.year}-{date.month:02d}-{date.day:02d}"


def format_value(kind: FormatterKind, value: Any) -> str:
    """Format *value* with the formatter registered for *kind*.

    Raises:
        ValueError: If *kind* is not a :class:`FormatterKind`.
        TypeError: If *value* is missing or not numeric.
    """
    if kind is FormatterKind.SIZE:
        return size_format(value)
    if kind is FormatterKind.DATE:
        return date_format(value)
    raise ValueError(f"Unregistered formatter: {kind!r}")
