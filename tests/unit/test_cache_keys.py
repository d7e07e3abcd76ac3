"""Tests for cache key building and filename sanitization."""

from datetime import UTC, datetime

from lmsclient.infrastructure.cache import keys


class TestBuildCacheKey:
    def test_prefix_only_without_params(self) -> None:
        assert keys.build_cache_key("courses") == "courses"
        assert keys.build_cache_key("courses", {}) == "courses"
        assert keys.build_cache_key("courses", {"page": None}) == "courses"

    def test_params_in_given_order_skipping_none(self) -> None:
        key = keys.build_cache_key(
            "courses",
            {"enrollment_state": "active", "state": None, "per_page": 50},
        )
        assert key == "courses_enrollment_state=active&per_page=50"

    def test_lists_bools_and_datetimes(self) -> None:
        key = keys.build_cache_key(
            "calendar_events",
            {
                "include": ["term", "teachers"],
                "all_events": True,
                "start_date": datetime(2025, 1, 1, tzinfo=UTC),
            },
        )
        assert key == (
            "calendar_events_include=term,teachers&all_events=true"
            "&start_date=2025-01-01T00:00:00+00:00"
        )


class TestResourceKeys:
    def test_fixed_keys(self) -> None:
        assert keys.user_key() == "user_self"
        assert keys.course_key(42) == "course_42"
        assert keys.assignment_key(42, 7) == "assignment_42_7"
        assert keys.course_modules_key(42) == "modules_42"
        assert keys.upcoming_assignments_key(7) == "upcoming_assignments_7"

    def test_parameterized_keys(self) -> None:
        assert keys.course_assignments_key(42) == "assignments_42"
        assert keys.course_assignments_key(42, {"order_by": "due_at"}) == (
            "assignments_42_order_by=due_at"
        )
        assert keys.all_assignments_key({"due_before": None}) == "all_assignments"

    def test_search_key_is_case_insensitive(self) -> None:
        assert keys.search_courses_key("Math") == keys.search_courses_key("math")


class TestSanitize:
    def test_unsafe_characters_replaced(self) -> None:
        assert keys.sanitize_key("courses_a=1&b=2") == "courses_a_1_b_2"
        assert keys.sanitize_key("a/b:c d") == "a_b_c_d"

    def test_safe_characters_kept(self) -> None:
        assert keys.sanitize_key("user_self.v1-2") == "user_self.v1-2"

    def test_key_filename(self) -> None:
        assert keys.key_filename("course_42") == "course_42.json"

    def test_distinct_keys_may_collide(self) -> None:
        assert keys.sanitize_key("a=b") == keys.sanitize_key("a&b")

    def test_long_key_filename_capped_and_unique(self) -> None:
        codes = [f"course_{n}" for n in range(40)]
        first = keys.calendar_events_key({"context_codes": codes})
        second = keys.calendar_events_key({"context_codes": codes[::-1]})
        assert len(keys.key_filename(first)) <= 255
        assert keys.key_filename(first) != keys.key_filename(second)
        assert keys.key_filename(first).startswith("calendar_events_context_codes_course_0_")
