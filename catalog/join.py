"""
Join engine: courses + colleges → enriched courses.

Each course picks up its owning college's display fields (name, location,
state, logo, phone). Courses whose collegeId matches no college are kept
and shown against "Unknown College" / "Unknown" instead.

Output is a pure function of the inputs: same length and order as the
course list, recomputed from scratch on every call.
"""

from catalog.models import (
    UNKNOWN,
    UNKNOWN_COLLEGE,
    College,
    Course,
    EnrichedCourse,
)


def index_colleges(colleges: list[College]) -> dict[str, College]:
    """Map college id → college. The first college wins if ids repeat."""
    index: dict[str, College] = {}
    for college in colleges:
        index.setdefault(str(college.id), college)
    return index


def enrich_course(course: Course, college: College | None) -> EnrichedCourse:
    return EnrichedCourse(
        **course.model_dump(include=set(Course.model_fields)),
        college_name=(college.name if college else "") or UNKNOWN_COLLEGE,
        location=(college.location if college else "") or UNKNOWN,
        state=(college.state if college else "") or UNKNOWN,
        logo_url=college.logo_url if college else None,
        college_phone=college.phone if college else None,
    )


def enrich(courses: list[Course], colleges: list[College]) -> list[EnrichedCourse]:
    index = index_colleges(colleges)
    return [enrich_course(c, index.get(str(c.college_id))) for c in courses]
