"""
Catalog session service: the one writer of the entity store.

Every mutation follows the same sequence:

    1. run the gateway function against the current collection
       (typed errors propagate, nothing changes)
    2. swap the new collection into the store; readers see it immediately
    3. hand the collection to the persistence sink

All three steps run under one write lock, so the sink receives
collections in the same order they were swapped in and an older snapshot
never overwrites a newer one. Readers do not take this lock.

A sink failure does not undo step 2. It is logged as a warning and reported
back in the MutationOutcome, leaving memory ahead of the durable store until
the next successful write.

Known hazard: reload() replaces every collection with whatever the source
returns. A scheduled reload that lands while a write is still in flight can
overwrite the optimistic change (last writer wins; there is no versioning).
"""

import logging
import threading

from pydantic import BaseModel

from catalog import config, mutations
from catalog.errors import PersistenceFailure
from catalog.join import enrich
from catalog.models import (
    CatalogData,
    College,
    CollegeDraft,
    Course,
    CourseDraft,
    EnrichedCourse,
    QueryHints,
    SearchQuery,
    User,
    UserRole,
)
from catalog.search import Item, search
from catalog.store import DataSource, EntityStore, PersistenceSink

log = logging.getLogger(__name__)


class MutationOutcome(BaseModel):
    persisted: bool = True
    warning: str | None = None


def bootstrap_admin(email: str = config.ADMIN_EMAIL) -> User:
    return User(
        email=email,
        name=config.ADMIN_NAME,
        role=UserRole.ADMIN,
        avatar="https://ui-avatars.com/api/?name=Admin&background=0f172a&color=fff",
    )


class CatalogService:
    def __init__(
        self,
        store: EntityStore,
        sink: PersistenceSink,
        source: DataSource | None = None,
        admin_email: str = config.ADMIN_EMAIL,
    ):
        self.store       = store
        self.sink        = sink
        self.source      = source
        self.admin_email = admin_email
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def reload(self) -> CatalogData:
        """Replace every collection with a fresh read from the data source."""
        if self.source is None:
            return self.store.snapshot()

        data = self.source.read_all()
        users = data.users
        if not users:
            log.info("No users in store; seeding bootstrap admin %s.", self.admin_email)
            users = [bootstrap_admin(self.admin_email)]

        self.store.replace(courses=data.courses, colleges=data.colleges, users=users)
        log.info(
            "Catalog reloaded. Colleges: %d, Courses: %d, Users: %d",
            len(data.colleges), len(data.courses), len(users),
        )
        return self.store.snapshot()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def enriched_courses(self) -> list[EnrichedCourse]:
        snap = self.store.snapshot()
        return enrich(snap.courses, snap.colleges)

    def search(self, query: SearchQuery, hints: QueryHints | None = None) -> list[Item]:
        snap = self.store.snapshot()
        return search(enrich(snap.courses, snap.colleges), snap.colleges, query, hints)

    def get_course(self, course_id: str) -> EnrichedCourse | None:
        return next((c for c in self.enriched_courses() if c.id == course_id), None)

    def get_college(self, college_id: str) -> College | None:
        return next((c for c in self.store.colleges if c.id == college_id), None)

    def get_user(self, email: str) -> User | None:
        return mutations.find_user(self.store.users, email)

    # ------------------------------------------------------------------
    # Persistence hand-off
    # ------------------------------------------------------------------

    def _persist(self, collection: str, items: list) -> MutationOutcome:
        writer = {
            "courses":  self.sink.write_courses,
            "colleges": self.sink.write_colleges,
            "users":    self.sink.write_users,
        }[collection]
        try:
            writer(items)
        except PersistenceFailure as exc:
            log.warning("%s", exc)
            return MutationOutcome(persisted=False, warning=str(exc))
        return MutationOutcome()

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def add_course(self, draft: CourseDraft) -> tuple[Course, MutationOutcome]:
        with self._write_lock:
            courses = mutations.add_course(self.store.courses, draft)
            self.store.replace(courses=courses)
            log.info("Added course %s (%s).", courses[0].id, courses[0].course_name)
            return courses[0], self._persist("courses", courses)

    def update_course(self, course: Course) -> MutationOutcome:
        with self._write_lock:
            courses = mutations.update_course(self.store.courses, course)
            self.store.replace(courses=courses)
            return self._persist("courses", courses)

    def remove_course(self, course_id: str) -> MutationOutcome:
        with self._write_lock:
            courses = mutations.remove_course(self.store.courses, course_id)
            self.store.replace(courses=courses)
            log.info("Removed course %s.", course_id)
            return self._persist("courses", courses)

    # ------------------------------------------------------------------
    # Colleges
    # ------------------------------------------------------------------

    def add_college(self, draft: CollegeDraft) -> tuple[College, MutationOutcome]:
        with self._write_lock:
            colleges = mutations.add_college(self.store.colleges, draft)
            self.store.replace(colleges=colleges)
            log.info("Added college %s (%s).", colleges[0].id, colleges[0].name)
            return colleges[0], self._persist("colleges", colleges)

    def update_college(self, college: College) -> MutationOutcome:
        with self._write_lock:
            colleges = mutations.update_college(self.store.colleges, college)
            self.store.replace(colleges=colleges)
            return self._persist("colleges", colleges)

    def remove_college(self, college_id: str) -> MutationOutcome:
        with self._write_lock:
            colleges = mutations.remove_college(self.store.colleges, self.store.courses, college_id)
            self.store.replace(colleges=colleges)
            log.info("Removed college %s.", college_id)
            return self._persist("colleges", colleges)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def add_user(self, user: User) -> MutationOutcome:
        with self._write_lock:
            users = mutations.add_user(self.store.users, user)
            self.store.replace(users=users)
            log.info("Added user %s (%s).", user.email, user.role)
            return self._persist("users", users)

    def remove_user(self, email: str, actor_email: str) -> MutationOutcome:
        with self._write_lock:
            users = mutations.remove_user(self.store.users, email, actor_email)
            self.store.replace(users=users)
            log.info("Removed user %s.", email)
            return self._persist("users", users)

    def login(self, email: str, avatar_url: str | None = None) -> tuple[User, MutationOutcome]:
        with self._write_lock:
            current = self.store.users
            user, users = mutations.authenticate(current, email, avatar_url)
            if users is current:
                return user, MutationOutcome()
            self.store.replace(users=users)
            log.info("Updated avatar for %s.", user.email)
            return user, self._persist("users", users)

    # ------------------------------------------------------------------
    # Bulk import
    # ------------------------------------------------------------------

    def bulk_replace(
        self,
        courses: list[Course] | None = None,
        colleges: list[College] | None = None,
        users: list[User] | None = None,
    ) -> MutationOutcome:
        """Overwrite each supplied collection wholesale (no merge)."""
        replaced = {
            name: items
            for name, items in (("colleges", colleges), ("courses", courses), ("users", users))
            if items is not None
        }
        warnings = []
        with self._write_lock:
            self.store.replace(courses=courses, colleges=colleges, users=users)
            for name, items in replaced.items():
                log.info("Bulk import replaced %d %s.", len(items), name)
                outcome = self._persist(name, items)
                if outcome.warning:
                    warnings.append(outcome.warning)

        if warnings:
            return MutationOutcome(persisted=False, warning=" ".join(warnings))
        return MutationOutcome()
