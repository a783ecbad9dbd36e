"""
Short AI-written insights for a course or a college.

Descriptions are stored as rich-text HTML; tags are stripped with
BeautifulSoup before the text goes into the prompt. Any OpenAI failure
degrades to a fixed fallback message instead of an error.
"""

import logging

from bs4 import BeautifulSoup
from openai import OpenAI, OpenAIError

from catalog import config
from catalog.models import College, EnrichedCourse

log = logging.getLogger(__name__)

UNAVAILABLE = "AI insights unavailable."
NO_INSIGHTS = "No insights available."

DESCRIPTION_CHARS = 1500

SYSTEM_PROMPT = (
    "You are a helpful admissions advisor for Indian colleges. "
    "Using ONLY the details provided, write 2-3 sentences explaining who the "
    "programme or institute suits and what stands out about it. "
    "Do not invent rankings, placement figures or facts that are not given."
)


def html_to_text(html: str | None) -> str:
    if not html:
        return ""
    return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)


def _course_prompt(course: EnrichedCourse) -> str:
    return (
        f"Course: {course.course_name}\n"
        f"College: {course.college_name} ({course.location}, {course.state})\n"
        f"Duration: {course.duration}\n"
        f"Total fees (INR): {course.fees}\n"
        f"Description: {html_to_text(course.description)[:DESCRIPTION_CHARS]}"
    )


def _college_prompt(college: College) -> str:
    return (
        f"College: {college.name}\n"
        f"Location: {college.location}, {college.state}\n"
        f"Description: {html_to_text(college.description)[:DESCRIPTION_CHARS]}"
    )


class InsightGenerator:
    def __init__(self, client: OpenAI | None = None, model: str = config.OPENAI_MODEL):
        self._client = client
        self.model   = model

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI()  # reads OPENAI_API_KEY from env
        return self._client

    def _complete(self, prompt: str) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user",   "content": prompt},
                ],
                max_tokens=200,
                temperature=0.3,
            )
        except OpenAIError as exc:
            log.warning("Insight generation failed: %s", exc)
            return UNAVAILABLE
        return (completion.choices[0].message.content or "").strip() or NO_INSIGHTS

    def course_insights(self, course: EnrichedCourse) -> str:
        return self._complete(_course_prompt(course))

    def college_insights(self, college: College) -> str:
        return self._complete(_college_prompt(college))
