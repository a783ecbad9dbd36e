"""
Remote store: the spreadsheet-backed catalog server, spoken to over HTTP.

The server keeps an in-memory cache of three Google Sheets (Colleges,
Courses, Users) and exposes:

    GET  /api/data           → {"courses": [...], "colleges": [...], "users": [...]}
    POST /api/refresh        re-read the sheets into the server cache
    POST /api/save-courses   {"courses": [...]}   (replaces the whole sheet)
    POST /api/save-colleges  {"colleges": [...]}
    POST /api/save-users     {"users": [...]}

Sheet cells come back untyped (fees as text, blanks as ""), so every row
goes through etl.rows before it reaches the core; a bad row is logged and
skipped rather than failing the whole load. Reads retry with exponential
backoff; a failed write raises PersistenceFailure.
"""

import logging
import time

import requests

from catalog.errors import PersistenceFailure
from catalog.models import CatalogData, College, Course, User
from etl.rows import coerce_rows

log = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30  # seconds


class RemoteStore:
    def __init__(self, base_url: str, session: requests.Session | None = None, retries: int = 3):
        self.base_url = base_url.rstrip("/")
        self.retries  = retries
        self.session  = session or requests.Session()
        self.session.headers["User-Agent"] = "college-catalog/1.0"

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _get(self, path: str) -> dict:
        """GET a JSON endpoint with exponential-backoff retries."""
        url = self.base_url + path
        for attempt in range(self.retries):
            try:
                resp = self.session.get(url, timeout=REQUEST_TIMEOUT)
                resp.raise_for_status()
                return resp.json()
            except requests.RequestException as exc:
                log.warning("Request failed (attempt %d/%d) %s: %s", attempt + 1, self.retries, url, exc)
                if attempt == self.retries - 1:
                    raise
                time.sleep(2 ** attempt)
        return {}

    def _post(self, path: str, payload: dict | None = None) -> dict:
        resp = self.session.post(self.base_url + path, json=payload or {}, timeout=REQUEST_TIMEOUT)
        resp.raise_for_status()
        return resp.json()

    def _save(self, collection: str, items: list) -> None:
        rows = [item.model_dump(by_alias=True, exclude_none=True) for item in items]
        try:
            self._post(f"/api/save-{collection}", {collection: rows})
        except requests.RequestException as exc:
            raise PersistenceFailure(collection, str(exc)) from exc
        log.info("Synced %d %s to remote store.", len(rows), collection)

    # ------------------------------------------------------------------
    # Data source
    # ------------------------------------------------------------------

    def read_all(self) -> CatalogData:
        """Load all three sheets; rows that cannot be coerced are skipped and logged."""
        data = self._get("/api/data")
        return CatalogData(
            courses=coerce_rows(data.get("courses") or [], "courses", skip_invalid=True),
            colleges=coerce_rows(data.get("colleges") or [], "colleges", skip_invalid=True),
            users=coerce_rows(data.get("users") or [], "users", skip_invalid=True),
        )

    def refresh(self) -> None:
        """Ask the server to re-read its sheets before the next read_all()."""
        result = self._post("/api/refresh")
        log.info("Remote cache refreshed (timestamp=%s).", result.get("timestamp"))

    # ------------------------------------------------------------------
    # Persistence sink
    # ------------------------------------------------------------------

    def write_courses(self, courses: list[Course]) -> None:
        self._save("courses", courses)

    def write_colleges(self, colleges: list[College]) -> None:
        self._save("colleges", colleges)

    def write_users(self, users: list[User]) -> None:
        self._save("users", users)
