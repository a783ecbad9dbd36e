import pytest
from catalog.join import enrich, index_colleges
from catalog.models import (
    College,
    CollegeItem,
    Course,
    CourseItem,
    QueryHints,
    SearchQuery,
)
from catalog.search import assemble, matches_search, rank, resolve_query, search


@pytest.fixture
def colleges():
    """Two colleges in different states."""
    return [
        College(id="c1", name="IIT", location="Kharagpur", state="West Bengal",
                description="<p>Premier <b>engineering</b> institute</p>"),
        College(id="c2", name="Anna University", location="Chennai", state="Tamil Nadu"),
    ]


@pytest.fixture
def courses():
    """Three courses; the last one points at a college that does not exist."""
    return [
        Course(id="1", college_id="c1", course_name="B.Tech CSE", fees=850000),
        Course(id="2", college_id="c2", course_name="MBA", fees=300000,
               description="Two year management programme"),
        Course(id="3", college_id="gone", course_name="Diploma in Design", fees=120000),
    ]


def _course(id, name, fees=0):
    return CourseItem(data=enrich([Course(id=id, college_id="x", course_name=name, fees=fees)], [])[0])


def _college(id, name):
    return CollegeItem(data=College(id=id, name=name, location="L", state="S"))


class TestJoin:
    """Test enrichment of courses with college fields."""

    def test_join_preserves_length_and_order(self, courses, colleges):
        """Test that every course comes back, in input order."""
        enriched = enrich(courses, colleges)
        assert [c.id for c in enriched] == ["1", "2", "3"]

    def test_join_copies_college_fields(self, courses, colleges):
        """Test that matched courses carry the college display fields."""
        first = enrich(courses, colleges)[0]
        assert first.college_name == "IIT"
        assert first.location == "Kharagpur"
        assert first.state == "West Bengal"
        assert first.fees == 850000

    def test_dangling_college_falls_back(self, courses, colleges):
        """Test that an unknown collegeId yields the Unknown placeholders."""
        orphan = enrich(courses, colleges)[2]
        assert orphan.college_name == "Unknown College"
        assert orphan.location == "Unknown"
        assert orphan.state == "Unknown"
        assert orphan.logo_url is None
        assert orphan.college_phone is None

    def test_join_with_no_colleges(self, courses):
        """Test that an empty college list still enriches every course."""
        enriched = enrich(courses, [])
        assert len(enriched) == 3
        assert all(c.college_name == "Unknown College" for c in enriched)

    def test_first_college_wins_on_duplicate_id(self):
        """Test that repeated college ids resolve to the first one."""
        dupes = [
            College(id="c1", name="First", location="A", state="B"),
            College(id="c1", name="Second", location="C", state="D"),
        ]
        assert index_colleges(dupes)["c1"].name == "First"

    def test_join_is_idempotent(self, courses, colleges):
        """Test that enriching twice gives equal results."""
        assert enrich(courses, colleges) == enrich(courses, colleges)


class TestSearchPredicate:
    """Test case-insensitive substring matching."""

    def test_empty_search_matches(self, colleges):
        """Test that empty text and location match everything."""
        assert matches_search(colleges[0], "", "")

    def test_case_insensitive(self, courses, colleges):
        """Test that matching ignores case on both sides."""
        course = enrich(courses, colleges)[0]
        assert matches_search(course, "cse", "")
        assert matches_search(course, "CSE", "")
        assert matches_search(course, "b.TECH", "")

    def test_course_matches_college_name(self, courses, colleges):
        """Test that a course matches on its college's name."""
        course = enrich(courses, colleges)[0]
        assert matches_search(course, "iit", "")

    def test_course_matches_description(self, courses, colleges):
        """Test that a course matches on its description."""
        course = enrich(courses, colleges)[1]
        assert matches_search(course, "management", "")

    def test_college_matches_state(self, colleges):
        """Test that colleges match on state in the text search."""
        assert matches_search(colleges[1], "tamil", "")

    def test_description_html_is_searched_raw(self, colleges):
        """Test that markup inside descriptions is part of the haystack."""
        assert matches_search(colleges[0], "<b>engineering", "")

    def test_location_filter(self, colleges):
        """Test that location filter checks location and state."""
        assert matches_search(colleges[0], "", "kharagpur")
        assert matches_search(colleges[0], "", "bengal")
        assert not matches_search(colleges[0], "", "chennai")

    def test_both_conditions_required(self, colleges):
        """Test that text and location must both hold."""
        assert not matches_search(colleges[0], "iit", "chennai")

    def test_no_trimming(self, colleges):
        """Test that surrounding whitespace is part of the needle."""
        assert not matches_search(colleges[0], " iit ", "")


class TestResolveQuery:
    """Test extracted hints overriding typed input."""

    def test_no_hints(self):
        query = SearchQuery(text="mba", location_filter="Delhi")
        assert resolve_query(query) == ("mba", "Delhi")

    def test_keyword_overrides_text(self):
        query = SearchQuery(text="best mba colleges in pune")
        hints = QueryHints(keyword="mba", location="Pune")
        assert resolve_query(query, hints) == ("mba", "Pune")

    def test_empty_hints_are_ignored(self):
        query = SearchQuery(text="mba", location_filter="Delhi")
        assert resolve_query(query, QueryHints(keyword="", location=None)) == ("mba", "Delhi")


class TestAssembler:
    """Test merging filtered courses and colleges."""

    def test_empty_search_returns_everything_courses_first(self, courses, colleges):
        """Test that empty search yields all courses then all colleges."""
        items = assemble(enrich(courses, colleges), colleges, "", "", "all")
        assert [it.type for it in items] == ["course"] * 3 + ["college"] * 2
        assert [it.data.id for it in items] == ["1", "2", "3", "c1", "c2"]

    def test_courses_only(self, courses, colleges):
        items = assemble(enrich(courses, colleges), colleges, "", "", "courses")
        assert {it.type for it in items} == {"course"}

    def test_colleges_only(self, courses, colleges):
        items = assemble(enrich(courses, colleges), colleges, "", "", "colleges")
        assert [it.data.id for it in items] == ["c1", "c2"]

    def test_unknown_result_type_behaves_like_all(self, courses, colleges):
        """Test that an unrecognised result type includes both kinds."""
        items = assemble(enrich(courses, colleges), colleges, "", "", "everything")
        assert len(items) == 5

    def test_filters_apply_to_both_kinds(self, courses, colleges):
        """Test that the location filter narrows courses and colleges."""
        items = assemble(enrich(courses, colleges), colleges, "", "chennai", "all")
        assert [(it.type, it.data.id) for it in items] == [("course", "2"), ("college", "c2")]


class TestRanking:
    """Test sort modes and their tie-breaking."""

    def test_fees_low_puts_colleges_last(self):
        """Test ascending fees with colleges after every course."""
        items = [_college("c1", "A"), _course("1", "x", 500), _course("2", "y", 100)]
        ranked = rank(items, "fees_low")
        assert [it.data.id for it in ranked] == ["2", "1", "c1"]

    def test_fees_high_puts_colleges_last(self):
        """Test descending fees with colleges still after every course."""
        items = [_college("c1", "A"), _course("1", "x", 100), _course("2", "y", 500)]
        ranked = rank(items, "fees_high")
        assert [it.data.id for it in ranked] == ["2", "1", "c1"]

    def test_zero_fee_course_still_before_colleges(self):
        items = [_college("c1", "A"), _course("1", "x", 0)]
        assert [it.data.id for it in rank(items, "fees_high")] == ["1", "c1"]

    def test_alpha_ascending_mixes_kinds(self):
        """Test that alpha sort uses course name or college name."""
        items = [_course("1", "MBA"), _college("c1", "Anna University"), _course("2", "B.Tech")]
        ranked = rank(items, "alpha_asc")
        assert [it.data.id for it in ranked] == ["c1", "2", "1"]

    def test_alpha_is_case_and_accent_insensitive(self):
        items = [_course("1", "zoology"), _course("2", "Éducation"), _course("3", "biology")]
        ranked = rank(items, "alpha_asc")
        assert [it.data.id for it in ranked] == ["3", "2", "1"]

    def test_alpha_descending(self):
        items = [_course("1", "a"), _course("2", "c"), _course("3", "b")]
        ranked = rank(items, "alpha_desc")
        assert [it.data.id for it in ranked] == ["2", "3", "1"]

    def test_equal_fees_keep_input_order(self):
        """Test that sorting is stable for equal keys."""
        items = [_course("1", "x", 100), _course("2", "y", 100), _course("3", "z", 100)]
        assert [it.data.id for it in rank(items, "fees_low")] == ["1", "2", "3"]
        assert [it.data.id for it in rank(items, "fees_high")] == ["1", "2", "3"]

    def test_equal_names_keep_input_order(self):
        items = [_course("1", "Same"), _course("2", "Same")]
        assert [it.data.id for it in rank(items, "alpha_asc")] == ["1", "2"]
        assert [it.data.id for it in rank(items, "alpha_desc")] == ["1", "2"]

    def test_colleges_keep_relative_order_under_fee_sort(self):
        items = [_college("c2", "B"), _course("1", "x", 5), _college("c1", "A")]
        assert [it.data.id for it in rank(items, "fees_low")] == ["1", "c2", "c1"]

    def test_unknown_sort_mode_is_noop(self):
        items = [_course("1", "b"), _course("2", "a")]
        assert [it.data.id for it in rank(items, "popularity")] == ["1", "2"]

    def test_rank_returns_new_list(self):
        """Test that the input list is not reordered in place."""
        items = [_course("1", "b"), _course("2", "a")]
        ranked = rank(items, "alpha_asc")
        assert ranked is not items
        assert [it.data.id for it in items] == ["1", "2"]


class TestEndToEnd:
    """Test the full join → assemble → rank pipeline."""

    def test_iit_cse_scenario(self):
        """Test searching CSE finds the single IIT course."""
        colleges = [College(id="c1", name="IIT", location="Kharagpur", state="West Bengal")]
        courses = [Course(id="1", college_id="c1", course_name="B.Tech CSE", fees=850000)]

        items = assemble(enrich(courses, colleges), colleges, "CSE", "", "all")
        ranked = rank(items, "alpha_asc")

        assert len(ranked) == 1
        assert ranked[0].type == "course"
        assert ranked[0].data.college_name == "IIT"

    def test_search_applies_hints(self, courses, colleges):
        """Test that hints replace the typed text and location."""
        query = SearchQuery(text="show me something", result_type="all", sort_mode="fees_low")
        results = search(enrich(courses, colleges), colleges, query, QueryHints(keyword="anna"))
        assert [(it.type, it.data.id) for it in results] == [("course", "2"), ("college", "c2")]

    def test_search_defaults(self, courses, colleges):
        """Test that a bare query returns everything alphabetically."""
        results = search(enrich(courses, colleges), colleges, SearchQuery())
        names = [it.data.course_name if it.type == "course" else it.data.name for it in results]
        assert names == ["Anna University", "B.Tech CSE", "Diploma in Design", "IIT", "MBA"]


class TestCatalogProperties:
    """Test catalog-wide search and ranking properties on fixed data."""

    @pytest.fixture
    def kolkata(self):
        colleges = [
            College(id="k1", name="Jadavpur University", location="Kolkata", state="West Bengal"),
            College(id="m1", name="IIT Bombay", location="Mumbai", state="Maharashtra"),
        ]
        courses = [
            Course(id="1", college_id="k1", course_name="B.E. Mechanical", fees=500000),
            Course(id="2", college_id="m1", course_name="B.Tech EE", fees=12000),
            Course(id="3", college_id="k1", course_name="M.Tech Kolkata Urban Planning", fees=650000),
        ]
        return enrich(courses, colleges), colleges

    def test_search_case_does_not_change_results(self, kolkata):
        """Test that "kolkata" and "KOLKATA" assemble identical results."""
        enriched, colleges = kolkata
        lower = assemble(enriched, colleges, "kolkata", "", "all")
        upper = assemble(enriched, colleges, "KOLKATA", "", "all")
        assert lower == upper
        assert [it.data.id for it in lower] == ["3", "k1"]

    def test_location_case_does_not_change_results(self, kolkata):
        enriched, colleges = kolkata
        assert assemble(enriched, colleges, "", "kolkata", "all") == assemble(enriched, colleges, "", "KOLKATA", "all")

    def test_fee_order_with_one_college(self):
        """Test fees 500000, 12000, 650000 plus a college in both directions."""
        items = [_course("1", "a", 500000), _course("2", "b", 12000), _course("3", "c", 650000), _college("c1", "X")]

        low = rank(items, "fees_low")
        high = rank(items, "fees_high")

        assert [it.data.fees for it in low[:3]] == [12000, 500000, 650000]
        assert low[-1].type == "college"
        assert [it.data.fees for it in high[:3]] == [650000, 500000, 12000]
        assert high[-1].type == "college"
