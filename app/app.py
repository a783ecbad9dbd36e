"""
FastAPI application: thin HTTP shell around the catalog engine.

Run as a script:
    python app/app.py

Or as a module:
    uvicorn app.app:app --reload

On startup the catalog is loaded from the configured store (local JSON files,
or the spreadsheet-backed server when CATALOG_REMOTE_URL is set) and a
background task reloads it every CATALOG_REFRESH_SECONDS. A reload replaces
the in-memory collections wholesale; an edit whose write is still in flight
at that moment can be lost (last writer wins).

Endpoints:
    GET    /api/data                     all three collections
    POST   /api/refresh                  reload from the store now
    POST   /api/search                   search + rank courses and colleges
    POST   /api/login                    role check (+ avatar refresh)
    POST   /api/courses                  add        (Admin / Editor)
    PUT    /api/courses/{id}             partial update (Admin / Editor)
    DELETE /api/courses/{id}             remove     (Admin / Editor)
    POST   /api/colleges                 add        (Admin / Editor)
    PUT    /api/colleges/{id}            partial update (Admin / Editor)
    DELETE /api/colleges/{id}            remove     (Admin / Editor)
    POST   /api/users                    add        (Admin)
    DELETE /api/users/{email}            remove     (Admin)
    GET    /api/courses/{id}/insights    AI summary of a course
    GET    /api/colleges/{id}/insights   AI summary of a college

The acting user is identified by the X-User-Email header.

Logs each search and wall-clock response time to stdout and logs/app.log
(rotating, 5 MB max, 3 backups).
"""

import asyncio
import logging
import logging.handlers
import sys
import time
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import Any

import requests
import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

# Ensure project root is on sys.path when running as a script (python app/app.py)
sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog import config, mutations
from catalog.errors import (
    BulkImportError,
    CatalogError,
    DuplicateIdError,
    DuplicateUserError,
    InvalidRoleError,
    PersistenceFailure,
    ReferentialIntegrityError,
    SelfDeletionError,
    SourceUnavailableError,
    UnknownUserError,
)
from catalog.insights import InsightGenerator
from catalog.models import (
    CatalogData,
    CollegeDraft,
    CollegeUpdate,
    CourseDraft,
    CourseUpdate,
    QueryHints,
    ResultItem,
    SearchQuery,
    User,
    UserRole,
)
from catalog.service import CatalogService, MutationOutcome
from catalog.store import EntityStore, JsonFileStore

LOG_FILE = config.LOG_DIR / "app.log"


def _setup_logging() -> None:
    config.LOG_DIR.mkdir(parents=True, exist_ok=True)
    fmt = logging.Formatter("%(asctime)s  %(levelname)s  %(name)s  %(message)s")

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(fmt)

    # Rotate at 5 MB, keep 3 backups
    rotating = logging.handlers.RotatingFileHandler(
        LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    rotating.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(stream)
    root.addHandler(rotating)


_setup_logging()
log = logging.getLogger("api")


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------

_service: CatalogService | None = None
_insights: InsightGenerator | None = None


def _build_service() -> CatalogService:
    if config.REMOTE_URL:
        from etl.remote import RemoteStore

        log.info("Using remote store at %s", config.REMOTE_URL)
        remote = RemoteStore(config.REMOTE_URL)
        return CatalogService(EntityStore(), sink=remote, source=remote)

    log.info("Using local JSON store in %s", config.DATA_DIR)
    files = JsonFileStore(config.DATA_DIR)
    return CatalogService(EntityStore(), sink=files, source=files)


def _get_service() -> CatalogService:
    assert _service is not None, "Catalog service not initialised"
    return _service


def _get_insights() -> InsightGenerator:
    global _insights
    if _insights is None:
        _insights = InsightGenerator()
    return _insights


def _reload_or_keep(service: CatalogService) -> None:
    """Reload from the store; on any failure keep serving the current data."""
    try:
        service.reload()
    except Exception:
        log.exception("Failed to reload catalog; keeping previous data.")


async def _refresh_loop(service: CatalogService, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        log.info("Triggering scheduled catalog reload…")
        await asyncio.to_thread(_reload_or_keep, service)


@asynccontextmanager
async def lifespan(_: FastAPI):
    global _service

    if _service is None:
        _service = _build_service()

    log.info("Loading catalog…")
    await asyncio.to_thread(_reload_or_keep, _service)

    refresher = asyncio.create_task(_refresh_loop(_service, config.REFRESH_SECONDS))
    log.info("  Reload scheduled every %ds.", config.REFRESH_SECONDS)

    yield  # server runs here

    refresher.cancel()
    with suppress(asyncio.CancelledError):
        await refresher


app = FastAPI(title="College & Course Catalog", lifespan=lifespan)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

ERROR_STATUS: dict[type[CatalogError], int] = {
    ReferentialIntegrityError: 409,
    DuplicateUserError:        409,
    DuplicateIdError:          409,
    SelfDeletionError:         400,
    UnknownUserError:          401,
    InvalidRoleError:          403,
    BulkImportError:           422,
    PersistenceFailure:        502,
    SourceUnavailableError:    502,
}


@app.exception_handler(CatalogError)
async def catalog_error_handler(_: Request, exc: CatalogError) -> JSONResponse:
    status = ERROR_STATUS.get(type(exc), 400)
    log.info("Rejected (%s): %s", exc.code, exc)
    return JSONResponse(
        status_code=status,
        content={"error": exc.code, "message": str(exc), "details": exc.details()},
    )


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class SearchRequest(SearchQuery):
    hints: QueryHints | None = None


class SearchResponse(BaseModel):
    total: int
    results: list[ResultItem]


class LoginRequest(BaseModel):
    email: str
    avatar: str | None = None


class UserCreate(BaseModel):
    email: str
    role: UserRole = UserRole.VIEWER
    name: str | None = None


class MutationResponse(MutationOutcome):
    item: Any | None = None


def _respond(outcome: MutationOutcome, item: BaseModel | None = None) -> MutationResponse:
    return MutationResponse(
        persisted=outcome.persisted,
        warning=outcome.warning,
        item=item.model_dump(by_alias=True) if item is not None else None,
    )


# ---------------------------------------------------------------------------
# Acting user
# ---------------------------------------------------------------------------

def current_user(x_user_email: str | None = Header(default=None)) -> User:
    if not x_user_email:
        raise HTTPException(status_code=401, detail="X-User-Email header is required.")
    user = _get_service().get_user(x_user_email)
    if user is None:
        raise UnknownUserError(x_user_email.strip().lower())
    if not user.has_valid_role:
        raise InvalidRoleError(user.email, user.role)
    return user


def require_editor(user: User = Depends(current_user)) -> User:
    if user.role not in (UserRole.ADMIN.value, UserRole.EDITOR.value):
        raise HTTPException(status_code=403, detail="Admin or Editor role required.")
    return user


def require_admin(user: User = Depends(current_user)) -> User:
    if user.role != UserRole.ADMIN.value:
        raise HTTPException(status_code=403, detail="Admin role required.")
    return user


# ---------------------------------------------------------------------------
# Data endpoints
# ---------------------------------------------------------------------------

@app.get("/api/data", response_model=CatalogData)
def get_data() -> CatalogData:
    return _get_service().store.snapshot()


@app.post("/api/refresh")
def refresh() -> dict:
    service = _get_service()
    try:
        if hasattr(service.source, "refresh"):
            service.source.refresh()
        data = service.reload()
    except requests.RequestException as exc:
        raise SourceUnavailableError(str(exc)) from exc
    return {
        "success": True,
        "timestamp": int(time.time() * 1000),
        "colleges": len(data.colleges),
        "courses": len(data.courses),
        "users": len(data.users),
    }


@app.post("/api/search", response_model=SearchResponse)
def search(req: SearchRequest) -> SearchResponse:
    t0 = time.perf_counter()

    results = _get_service().search(req, req.hints)

    elapsed = time.perf_counter() - t0
    log.info(
        "search q=%r  loc=%r  type=%s  sort=%s  hits=%d  %.3fs",
        req.text, req.location_filter, req.result_type, req.sort_mode, len(results), elapsed,
    )
    return SearchResponse(total=len(results), results=results)


@app.post("/api/login")
def login(req: LoginRequest) -> dict:
    user, outcome = _get_service().login(req.email, req.avatar)
    log.info("Login %s (%s)", user.email, user.role)
    return {
        "user": user.model_dump(by_alias=True),
        "admin_access": user.role in (UserRole.ADMIN.value, UserRole.EDITOR.value),
        "persisted": outcome.persisted,
        "warning": outcome.warning,
    }


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------

@app.post("/api/courses", response_model=MutationResponse, status_code=201)
def create_course(draft: CourseDraft, _: User = Depends(require_editor)) -> MutationResponse:
    course, outcome = _get_service().add_course(draft)
    return _respond(outcome, course)


@app.put("/api/courses/{course_id}", response_model=MutationResponse)
def update_course(course_id: str, changes: CourseUpdate, _: User = Depends(require_editor)) -> MutationResponse:
    service = _get_service()
    stored = service.get_course(course_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="Course not found")
    course = mutations.merge_course(stored, changes)
    return _respond(service.update_course(course), course)


@app.delete("/api/courses/{course_id}", response_model=MutationResponse)
def delete_course(course_id: str, _: User = Depends(require_editor)) -> MutationResponse:
    service = _get_service()
    if service.get_course(course_id) is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return _respond(service.remove_course(course_id))


# ---------------------------------------------------------------------------
# Colleges
# ---------------------------------------------------------------------------

@app.post("/api/colleges", response_model=MutationResponse, status_code=201)
def create_college(draft: CollegeDraft, _: User = Depends(require_editor)) -> MutationResponse:
    college, outcome = _get_service().add_college(draft)
    return _respond(outcome, college)


@app.put("/api/colleges/{college_id}", response_model=MutationResponse)
def update_college(college_id: str, changes: CollegeUpdate, _: User = Depends(require_editor)) -> MutationResponse:
    service = _get_service()
    stored = service.get_college(college_id)
    if stored is None:
        raise HTTPException(status_code=404, detail="College not found")
    college = mutations.merge_college(stored, changes)
    return _respond(service.update_college(college), college)


@app.delete("/api/colleges/{college_id}", response_model=MutationResponse)
def delete_college(college_id: str, _: User = Depends(require_editor)) -> MutationResponse:
    service = _get_service()
    if service.get_college(college_id) is None:
        raise HTTPException(status_code=404, detail="College not found")
    return _respond(service.remove_college(college_id))


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@app.post("/api/users", response_model=MutationResponse, status_code=201)
def create_user(req: UserCreate, _: User = Depends(require_admin)) -> MutationResponse:
    email = req.email.strip().lower()
    user = User(
        email=email,
        name=req.name or email.split("@")[0],
        role=req.role,
        avatar=f"https://ui-avatars.com/api/?name={email}",
    )
    return _respond(_get_service().add_user(user), user)


@app.delete("/api/users/{email}", response_model=MutationResponse)
def delete_user(email: str, actor: User = Depends(require_admin)) -> MutationResponse:
    return _respond(_get_service().remove_user(email, actor.email))


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

@app.get("/api/courses/{course_id}/insights")
def course_insights(course_id: str) -> dict:
    course = _get_service().get_course(course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return {"text": _get_insights().course_insights(course)}


@app.get("/api/colleges/{college_id}/insights")
def college_insights(college_id: str) -> dict:
    college = _get_service().get_college(college_id)
    if college is None:
        raise HTTPException(status_code=404, detail="College not found")
    return {"text": _get_insights().college_insights(college)}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    log.info("=== College & Course Catalog starting up ===")
    uvicorn.run(app, host="0.0.0.0", port=8000, reload=False)
