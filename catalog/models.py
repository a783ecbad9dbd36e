"""
Catalog data model.

Python attributes are snake_case. The persisted / wire form keeps the
original camelCase keys (collegeId, courseName, logoUrl, ...) through the
alias generator; both spellings are accepted on input and
``model_dump(by_alias=True)`` produces the camelCase form.

    College, Course        persisted entities
    EnrichedCourse         Course + owning college display fields (derived)
    User, UserRole         admin-managed accounts
    CourseItem/CollegeItem tagged search results (ResultItem)
    SearchQuery            text + location + result type + sort mode
    QueryHints             optional keyword/location extracted from free text
    CatalogData            the three collections, as read from / written to a store
"""

import re
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

MAX_DESCRIPTION_LENGTH = 50_000
MAX_LOGO_LENGTH        = 200_000   # base64 data URL of a 120px JPEG fits easily
MAX_FEES               = 9_999_999

DEFAULT_DURATION = "4 Years"
UNKNOWN_COLLEGE  = "Unknown College"
UNKNOWN          = "Unknown"

_PHONE_RE = re.compile(r"[1-9]\d{9}")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_phone(phone: str | None) -> str | None:
    # Either blank or exactly 10 digits, no leading zero
    if phone and not _PHONE_RE.fullmatch(phone):
        raise ValueError("phone must be empty or exactly 10 digits without a leading zero")
    return phone


Phone = Annotated[str | None, AfterValidator(_check_phone)]
Description = Annotated[str, Field(max_length=MAX_DESCRIPTION_LENGTH)]
Fees = Annotated[int, Field(ge=0, le=MAX_FEES)]


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class UserRole(str, Enum):
    ADMIN  = "Admin"
    EDITOR = "Editor"
    VIEWER = "Viewer"


class ResultType(str, Enum):
    ALL      = "all"
    COURSES  = "courses"
    COLLEGES = "colleges"


class SortMode(str, Enum):
    FEES_LOW   = "fees_low"
    FEES_HIGH  = "fees_high"
    ALPHA_ASC  = "alpha_asc"
    ALPHA_DESC = "alpha_desc"


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class College(_Model):
    id: str
    name: str
    location: str
    state: str
    logo_url: str | None = Field(default=None, max_length=MAX_LOGO_LENGTH)
    description: Description | None = None
    phone: Phone = None
    rating: float = 0
    rating_count: int = 0


class Course(_Model):
    id: str
    college_id: str
    course_name: str
    fees: Fees
    duration: str = DEFAULT_DURATION
    description: Description = ""
    rating: float = 0
    rating_count: int = 0


class EnrichedCourse(Course):
    """A course with its owning college's display fields. Never persisted."""

    college_name: str
    location: str
    state: str
    logo_url: str | None = None
    college_phone: str | None = None


class User(_Model):
    email: str
    name: str = ""
    # Kept as the raw string: a stored record with an unknown role must still
    # load, it just cannot authenticate.
    role: str = UserRole.VIEWER.value
    avatar: str | None = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("role", mode="before")
    @classmethod
    def _role_value(cls, value):
        return value.value if isinstance(value, Enum) else value

    @property
    def has_valid_role(self) -> bool:
        return self.role in {r.value for r in UserRole}


# ---------------------------------------------------------------------------
# Drafts (add operations; id and defaults are filled in by the gateway)
# ---------------------------------------------------------------------------

class CourseDraft(_Model):
    id: str | None = None
    college_id: str
    course_name: str
    fees: Fees
    duration: str | None = None
    description: Description | None = None


class CollegeDraft(_Model):
    id: str | None = None
    name: str
    location: str
    state: str
    logo_url: str | None = Field(default=None, max_length=MAX_LOGO_LENGTH)
    description: Description | None = None
    phone: Phone = None


class CourseUpdate(_Model):
    """Partial course edit: fields left out (or null) keep their stored value."""

    college_id: str | None = None
    course_name: str | None = None
    fees: Fees | None = None
    duration: str | None = None
    description: Description | None = None
    rating: float | None = None
    rating_count: int | None = None


class CollegeUpdate(_Model):
    name: str | None = None
    location: str | None = None
    state: str | None = None
    logo_url: str | None = Field(default=None, max_length=MAX_LOGO_LENGTH)
    description: Description | None = None
    phone: Phone = None
    rating: float | None = None
    rating_count: int | None = None


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

class CourseItem(BaseModel):
    type: Literal["course"] = "course"
    data: EnrichedCourse


class CollegeItem(BaseModel):
    type: Literal["college"] = "college"
    data: College


ResultItem = Annotated[Union[CourseItem, CollegeItem], Field(discriminator="type")]


class SearchQuery(_Model):
    """
    Everything the assembler and ranker need, in one value.

    result_type and sort_mode are plain strings on purpose: an unrecognised
    sort mode leaves the order untouched, and any result type other than
    "courses" / "colleges" behaves like "all".
    """

    text: str = ""
    location_filter: str = ""
    result_type: str = ResultType.ALL.value
    sort_mode: str = SortMode.ALPHA_ASC.value


class QueryHints(_Model):
    location: str | None = None
    keyword: str | None = None


class CatalogData(_Model):
    courses: list[Course] = Field(default_factory=list)
    colleges: list[College] = Field(default_factory=list)
    users: list[User] = Field(default_factory=list)
