"""
Entity store and the file-backed data source.

EntityStore holds the session's three collections. Collections are only
ever swapped whole (never patched in place), under a lock, so a reader
always gets a consistent snapshot. There is no versioning: whoever swaps
last wins.

JsonFileStore keeps one JSON array per collection:
    data/courses.json
    data/colleges.json
    data/users.json

Public API:
    EntityStore.snapshot() / .replace(...)
    JsonFileStore(data_dir).read_all() → CatalogData
    JsonFileStore.write_courses / write_colleges / write_users
"""

import json
import logging
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from catalog import config
from catalog.errors import PersistenceFailure
from catalog.models import CatalogData, College, Course, User

log = logging.getLogger(__name__)

COURSES_FILE  = "courses.json"
COLLEGES_FILE = "colleges.json"
USERS_FILE    = "users.json"


class DataSource(Protocol):
    def read_all(self) -> CatalogData: ...


class PersistenceSink(Protocol):
    def write_courses(self, courses: list[Course]) -> None: ...
    def write_colleges(self, colleges: list[College]) -> None: ...
    def write_users(self, users: list[User]) -> None: ...


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class EntityStore:
    def __init__(self, data: CatalogData | None = None):
        if data is None:
            data = CatalogData()
        self._lock     = threading.Lock()
        self._courses  = list(data.courses)
        self._colleges = list(data.colleges)
        self._users    = list(data.users)

    @property
    def courses(self) -> list[Course]:
        return self._courses

    @property
    def colleges(self) -> list[College]:
        return self._colleges

    @property
    def users(self) -> list[User]:
        return self._users

    def snapshot(self) -> CatalogData:
        with self._lock:
            return CatalogData(
                courses=list(self._courses),
                colleges=list(self._colleges),
                users=list(self._users),
            )

    def replace(
        self,
        courses: list[Course] | None = None,
        colleges: list[College] | None = None,
        users: list[User] | None = None,
    ) -> None:
        """Swap in whole collections. ``None`` leaves a collection alone."""
        with self._lock:
            if courses is not None:
                self._courses = list(courses)
            if colleges is not None:
                self._colleges = list(colleges)
            if users is not None:
                self._users = list(users)


# ---------------------------------------------------------------------------
# JSON files
# ---------------------------------------------------------------------------

def _dump(items: list) -> str:
    rows = [item.model_dump(by_alias=True, exclude_none=True) for item in items]
    return json.dumps(rows, ensure_ascii=False, indent=2)


class JsonFileStore:
    def __init__(self, data_dir: Path = config.DATA_DIR):
        self.data_dir = Path(data_dir)

    def _read(self, name: str) -> list[dict[str, Any]]:
        """Load a JSON array from disk; return [] if the file doesn't exist."""
        path = self.data_dir / name
        if not path.exists():
            return []
        return json.loads(path.read_text(encoding="utf-8")) or []

    def _write(self, name: str, collection: str, items: list) -> None:
        path = self.data_dir / name
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            # readers never see a half-written file; each writer gets its own temp file
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.data_dir, prefix=f".{name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp.write(_dump(items))
            Path(tmp.name).replace(path)
        except OSError as exc:
            raise PersistenceFailure(collection, str(exc)) from exc
        log.info("Saved %d %s → %s", len(items), collection, path)

    def read_all(self) -> CatalogData:
        return CatalogData(
            courses=[Course.model_validate(r) for r in self._read(COURSES_FILE)],
            colleges=[College.model_validate(r) for r in self._read(COLLEGES_FILE)],
            users=[User.model_validate(r) for r in self._read(USERS_FILE)],
        )

    def write_courses(self, courses: list[Course]) -> None:
        self._write(COURSES_FILE, "courses", courses)

    def write_colleges(self, colleges: list[College]) -> None:
        self._write(COLLEGES_FILE, "colleges", colleges)

    def write_users(self, users: list[User]) -> None:
        self._write(USERS_FILE, "users", users)
