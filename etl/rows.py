"""
Untyped tabular rows → typed catalog entities.

Rows arrive from spreadsheets (workbook import, the sheet-backed server)
as loose mappings: numbers may be floats, blanks may be NaN or "", ids may
be numeric, and extra helper columns may be present. Everything is coerced
here so the core only ever sees College / Course / User models.

Rules:
  - blank (None, NaN, whitespace) → missing
  - integral floats → integer text for ids and phones (850000.0 → "850000")
  - fees: numeric coercion, blank → 0, thousands separators stripped
  - duration / description default to "4 Years" / ""
  - emails are trimmed and lower-cased; a blank role is kept blank (and so
    cannot log in)
  - unknown columns are ignored

Invalid rows are collected and raised together as BulkImportError, or,
with skip_invalid=True, logged and dropped so the remaining rows still load.
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

import pandas as pd
from pydantic import ValidationError

from catalog.errors import BulkImportError
from catalog.models import DEFAULT_DURATION, College, Course, User

log = logging.getLogger(__name__)

Row = Mapping[str, Any]


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return bool(pd.api.types.is_scalar(value) and pd.isna(value))


def _get(row: Row, *keys: str) -> Any:
    """First non-blank value among the given column names (camelCase first)."""
    for key in keys:
        value = row.get(key)
        if not _is_blank(value):
            return value
    return None


def _text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _required(row: Row, *keys: str) -> str:
    value = _text(_get(row, *keys))
    if not value:
        raise ValueError(f"missing {keys[0]}")
    return value


def _fees(value: Any) -> int:
    if _is_blank(value):
        return 0
    cleaned = value
    if isinstance(value, str):
        cleaned = value.replace(",", "").replace("₹", "").strip()
    number = pd.to_numeric(cleaned, errors="coerce")
    if pd.isna(number) or float(number) != int(number):
        raise ValueError(f"fees {value!r} is not a whole number")
    return int(number)


def _number(value: Any) -> float:
    if _is_blank(value):
        return 0
    number = pd.to_numeric(value, errors="coerce")
    return 0 if pd.isna(number) else float(number)


# ---------------------------------------------------------------------------
# Per-entity coercion
# ---------------------------------------------------------------------------

def coerce_course(row: Row) -> Course:
    return Course(
        id=_required(row, "id"),
        college_id=_required(row, "collegeId", "college_id"),
        course_name=_required(row, "courseName", "course_name"),
        fees=_fees(_get(row, "fees")),
        duration=_text(_get(row, "duration")) or DEFAULT_DURATION,
        description=_text(_get(row, "description")),
        rating=_number(_get(row, "rating")),
        rating_count=int(_number(_get(row, "ratingCount", "rating_count"))),
    )


def coerce_college(row: Row) -> College:
    return College(
        id=_required(row, "id"),
        name=_required(row, "name"),
        location=_text(_get(row, "location")),
        state=_text(_get(row, "state")),
        logo_url=_text(_get(row, "logoUrl", "logo_url")) or None,
        description=_text(_get(row, "description")),
        phone=_text(_get(row, "phone")) or None,
        rating=_number(_get(row, "rating")),
        rating_count=int(_number(_get(row, "ratingCount", "rating_count"))),
    )


def coerce_user(row: Row) -> User:
    email = _required(row, "email").lower()
    return User(
        email=email,
        name=_text(_get(row, "name")) or email.split("@")[0],
        role=_text(_get(row, "role")),
        avatar=_text(_get(row, "avatar")) or None,
    )


COERCERS: dict[str, tuple[str, Callable[[Row], Any]]] = {
    "colleges": ("Colleges", coerce_college),
    "courses":  ("Courses", coerce_course),
    "users":    ("Users", coerce_user),
}


def _describe(exc: ValueError) -> str:
    if isinstance(exc, ValidationError):
        return "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'row'}: {err['msg']}"
            for err in exc.errors()
        )
    return str(exc)


def coerce_rows(rows: Iterable[Row], kind: str, skip_invalid: bool = False) -> list:
    """
    Coerce every row of one sheet.

    By default any bad row fails the whole sheet with a BulkImportError
    listing all of them. With ``skip_invalid`` each bad row is logged at
    WARNING and left out.

    Row numbers in messages are spreadsheet rows (the header is row 1).
    """
    sheet, coerce = COERCERS[kind]
    entities = []
    problems = []
    for i, row in enumerate(rows, start=2):
        try:
            entities.append(coerce(row))
        except ValueError as exc:
            problems.append(f"row {i}: {_describe(exc)}")

    if problems and not skip_invalid:
        raise BulkImportError(sheet, problems)
    for problem in problems:
        log.warning("%s: skipped %s", sheet, problem)
    return entities
