"""Document number formatting.

Format: PREFIX[-YEAR]-NNNN, e.g. CON-2025-0001.
The counter is zero-padded to the type's digit width and never truncated;
a counter that outgrows the width simply gets longer.
"""

from datetime import datetime
from typing import Any

MIN_DIGITS = 1
MAX_DIGITS = 10

# Sequence scope year for types that do not include the year
NO_YEAR_SCOPE = 0


def validate_digits(digits: int) -> bool:
    return MIN_DIGITS <= digits <= MAX_DIGITS


def format_document_number(
    prefix: str,
    counter: int,
    digits: int,
    include_year: bool,
    year: int,
) -> str:
    """Build a document number.

    Example:
        >>> format_document_number("CON", 1, 4, True, 2025)
        'CON-2025-0001'
        >>> format_document_number("SOP", 12, 3, False, 2025)
        'SOP-012'
    """
    parts = [prefix]
    if include_year:
        parts.append(str(year))
    parts.append(str(counter).zfill(digits))
    return "-".join(parts)


def sequence_scope_year(doc_type: Any, now: datetime) -> int:
    """Year component of the counter scope for doc_type at time now."""
    return now.year if doc_type.auto_number_includes_year else NO_YEAR_SCOPE


def number_for(doc_type: Any, counter: int, now: datetime) -> str:
    """Format counter with doc_type's numbering rule."""
    prefix = doc_type.auto_number_prefix or doc_type.code
    return format_document_number(
        prefix=prefix,
        counter=counter,
        digits=doc_type.auto_number_digits,
        include_year=doc_type.auto_number_includes_year,
        year=now.year,
    )
