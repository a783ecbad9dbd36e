"""
Mutation gateway.

Every operation takes the current collection and returns the *new* full
collection; inputs are never modified. Nothing here touches storage:
callers (see catalog/service.py) swap the result into the entity store and
hand it to the persistence sink.

Guards:
    remove_college  ReferentialIntegrityError while courses reference it
    add_user        DuplicateUserError on a case-insensitive email clash
    remove_user     SelfDeletionError when the actor targets themself
    authenticate    UnknownUserError / InvalidRoleError
"""

import uuid

from catalog.errors import (
    DuplicateIdError,
    DuplicateUserError,
    InvalidRoleError,
    ReferentialIntegrityError,
    SelfDeletionError,
    UnknownUserError,
)
from catalog.models import (
    DEFAULT_DURATION,
    College,
    CollegeDraft,
    CollegeUpdate,
    Course,
    CourseDraft,
    CourseUpdate,
    User,
    normalize_email,
)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _claim_id(supplied: str | None, prefix: str, taken: set[str], kind: str) -> str:
    if supplied:
        if supplied in taken:
            raise DuplicateIdError(kind, supplied)
        return supplied
    new_id = _new_id(prefix)
    while new_id in taken:
        new_id = _new_id(prefix)
    return new_id


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------

def add_course(courses: list[Course], draft: CourseDraft) -> list[Course]:
    """Prepend a new course, filling in id, duration and description defaults."""
    course = Course(
        id=_claim_id(draft.id, "crs", {c.id for c in courses}, "course"),
        college_id=draft.college_id,
        course_name=draft.course_name,
        fees=draft.fees,
        duration=draft.duration or DEFAULT_DURATION,
        description=draft.description or "",
        rating=0,
        rating_count=0,
    )
    return [course, *courses]


def merge_course(stored: Course, changes: CourseUpdate) -> Course:
    """Apply a partial edit; the id and any omitted fields are carried over."""
    fields = stored.model_dump(include=set(Course.model_fields))
    return Course.model_validate({**fields, **changes.model_dump(exclude_none=True)})


def update_course(courses: list[Course], updated: Course) -> list[Course]:
    """Replace the course with the same id; unknown ids leave the list as is."""
    return [updated if c.id == updated.id else c for c in courses]


def remove_course(courses: list[Course], course_id: str) -> list[Course]:
    return [c for c in courses if c.id != course_id]


# ---------------------------------------------------------------------------
# Colleges
# ---------------------------------------------------------------------------

def add_college(colleges: list[College], draft: CollegeDraft) -> list[College]:
    college = College(
        id=_claim_id(draft.id, "col", {c.id for c in colleges}, "college"),
        name=draft.name,
        location=draft.location,
        state=draft.state,
        logo_url=draft.logo_url,
        description=draft.description or "",
        phone=draft.phone,
        rating=0,
        rating_count=0,
    )
    return [college, *colleges]


def merge_college(stored: College, changes: CollegeUpdate) -> College:
    fields = stored.model_dump()
    return College.model_validate({**fields, **changes.model_dump(exclude_none=True)})


def update_college(colleges: list[College], updated: College) -> list[College]:
    return [updated if c.id == updated.id else c for c in colleges]


def blocking_courses(courses: list[Course], college_id: str) -> list[Course]:
    """Courses that still point at ``college_id``."""
    return [c for c in courses if str(c.college_id) == str(college_id)]


def remove_college(colleges: list[College], courses: list[Course], college_id: str) -> list[College]:
    blocking = blocking_courses(courses, college_id)
    if blocking:
        raise ReferentialIntegrityError(college_id, len(blocking))
    return [c for c in colleges if c.id != college_id]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

def find_user(users: list[User], email: str) -> User | None:
    target = normalize_email(email)
    return next((u for u in users if normalize_email(u.email) == target), None)


def add_user(users: list[User], new_user: User) -> list[User]:
    email = normalize_email(new_user.email)
    if not new_user.has_valid_role:
        raise InvalidRoleError(email, new_user.role)
    if find_user(users, email) is not None:
        raise DuplicateUserError(email)
    return [*users, new_user.model_copy(update={"email": email})]


def remove_user(users: list[User], email: str, actor_email: str) -> list[User]:
    target = normalize_email(email)
    if target == normalize_email(actor_email):
        raise SelfDeletionError(target)
    return [u for u in users if normalize_email(u.email) != target]


def authenticate(
    users: list[User],
    email: str,
    avatar_url: str | None = None,
) -> tuple[User, list[User]]:
    """
    Look up the user behind ``email`` and check their role.

    If a new avatar URL is supplied and differs from the stored one, the
    user is updated; the returned collection then differs from ``users`` and
    should be persisted by the caller.

    Returns (user, users).
    """
    user = find_user(users, email)
    if user is None:
        raise UnknownUserError(normalize_email(email))
    if not user.has_valid_role:
        raise InvalidRoleError(user.email, user.role)

    if avatar_url and user.avatar != avatar_url:
        user = user.model_copy(update={"avatar": avatar_url})
        users = [user if normalize_email(u.email) == user.email else u for u in users]

    return user, users
