"""
Bulk import/export of the whole catalog as an Excel workbook.

Sheets:
    Colleges  one row per college
    Courses   one row per course, plus a college_name_reference helper
              column (the owning college's name, or the raw collegeId when
              it points nowhere); ignored on import
    Users     one row per user

Import is all-or-nothing per sheet: every sheet present in the workbook
fully replaces its collection, sheets that are absent leave theirs alone.

Usage:
    python -m etl.workbook export data/catalog.xlsx
    python -m etl.workbook import data/catalog.xlsx
"""

import argparse
import logging
from pathlib import Path

import pandas as pd
from pydantic import BaseModel

from catalog.join import index_colleges
from catalog.models import CatalogData, College, Course, User
from etl.rows import COERCERS, coerce_rows

log = logging.getLogger(__name__)

COLLEGE_COLUMNS = ["id", "name", "location", "state", "logoUrl", "description",
                   "phone", "rating", "ratingCount"]
COURSE_COLUMNS  = ["id", "collegeId", "courseName", "fees", "duration", "description",
                   "rating", "ratingCount", "college_name_reference"]
USER_COLUMNS    = ["email", "name", "role", "avatar"]


class WorkbookImport(BaseModel):
    """Collections found in an imported workbook; None where the sheet was absent."""

    courses: list[Course] | None = None
    colleges: list[College] | None = None
    users: list[User] | None = None

    @property
    def sheets(self) -> list[str]:
        return [name for name in ("colleges", "courses", "users") if getattr(self, name) is not None]


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def _rows(items: list) -> list[dict]:
    return [item.model_dump(by_alias=True) for item in items]


def course_rows(courses: list[Course], colleges: list[College]) -> list[dict]:
    index = index_colleges(colleges)
    rows = []
    for course in courses:
        college = index.get(str(course.college_id))
        row = course.model_dump(by_alias=True)
        row["college_name_reference"] = college.name if college else course.college_id
        rows.append(row)
    return rows


def export_workbook(data: CatalogData, path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    colleges = pd.DataFrame(_rows(data.colleges), columns=COLLEGE_COLUMNS)
    courses  = pd.DataFrame(course_rows(data.courses, data.colleges), columns=COURSE_COLUMNS)
    users    = pd.DataFrame(_rows(data.users), columns=USER_COLUMNS)

    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        colleges.to_excel(writer, sheet_name="Colleges", index=False)
        courses.to_excel(writer, sheet_name="Courses", index=False)
        users.to_excel(writer, sheet_name="Users", index=False)

    log.info(
        "Exported %d colleges, %d courses, %d users → %s",
        len(colleges), len(courses), len(users), path,
    )
    return path


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

def import_workbook(path: Path) -> WorkbookImport:
    """Read every known sheet and coerce its rows; unknown sheets are skipped."""
    frames: dict[str, pd.DataFrame] = pd.read_excel(
        path, sheet_name=None, dtype=object, engine="openpyxl"
    )

    found = {}
    for kind, (sheet, _) in COERCERS.items():
        if sheet not in frames:
            continue
        records = frames[sheet].to_dict(orient="records")
        found[kind] = coerce_rows(records, kind)
        log.info("  %s: %d rows", sheet, len(found[kind]))

    return WorkbookImport(**found)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    from catalog.service import CatalogService
    from catalog.store import EntityStore, JsonFileStore

    parser = argparse.ArgumentParser(description="Catalog workbook import/export")
    parser.add_argument("action", choices=["export", "import"])
    parser.add_argument("path", type=Path)
    args = parser.parse_args(argv)

    files = JsonFileStore()
    if args.action == "export":
        export_workbook(files.read_all(), args.path)
        return

    imported = import_workbook(args.path)
    service = CatalogService(EntityStore(files.read_all()), sink=files)
    outcome = service.bulk_replace(
        courses=imported.courses, colleges=imported.colleges, users=imported.users
    )
    if outcome.warning:
        log.warning("%s", outcome.warning)
    log.info("Imported sheets: %s", ", ".join(imported.sheets) or "none")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s  %(message)s")
    main()
