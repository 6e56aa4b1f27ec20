"""Tests for SERP URL matching."""

import pytest

from rankwatch.rank_tracker.matcher import match_position, normalize_url


class TestNormalizeUrl:

    @pytest.mark.parametrize("raw,expected", [
        ("example.com", "example.com"),
        ("https://example.com", "example.com"),
        ("HTTP://www.Example.com/", "example.com"),
        ("www.example.com/blog/", "example.com/blog"),
        ("  https://shop.example.com/a  ", "shop.example.com/a"),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_url(raw) == expected

    def test_only_leading_www_is_stripped(self):
        assert normalize_url("https://wwwexample.com") == "wwwexample.com"
        assert normalize_url("blog.www.example.com") == "blog.www.example.com"


class TestMatchPosition:

    def test_single_match_is_position_one(self):
        assert match_position([{"link": "https://www.example.com/"}], "example.com") == 1

    def test_empty_list_not_found(self):
        assert match_position([], "example.com") is None

    @pytest.mark.parametrize("bad", [None, "example.com", 42, {"link": "example.com"}])
    def test_malformed_results_not_found(self, bad):
        assert match_position(bad, "example.com") is None

    def test_first_qualifying_entry_wins(self):
        results = [{"link": "other.com"}, {"link": "example.com/page"}, {"link": "example.com"}]
        assert match_position(results, "example.com") == 2

    def test_no_match(self):
        results = [{"link": "https://other.com"}, {"link": "https://another.org"}]
        assert match_position(results, "example.com") is None

    def test_entries_without_url_keep_their_slot(self):
        results = [{"title": "ad"}, "junk", {"link": ""}, {"link": "https://example.com/x"}]
        assert match_position(results, "example.com") == 4

    def test_url_field_fallback(self):
        assert match_position([{"url": "https://example.com/"}], "example.com") == 1

    def test_target_normalized_too(self):
        results = [{"link": "https://example.com/page"}]
        assert match_position(results, "https://WWW.Example.com/") == 1

    def test_path_in_target_requires_that_path(self):
        results = [{"link": "https://example.com/shop/item"}, {"link": "https://example.com/blog/post"}]
        assert match_position(results, "example.com/blog") == 2

    def test_prefix_match_is_permissive_by_default(self):
        results = [{"link": "https://example.com.evil.com/"}]
        assert match_position(results, "example.com") == 1

    def test_strict_mode_requires_host_boundary(self):
        results = [
            {"link": "https://example.com.evil.com/"},
            {"link": "https://example.company.io"},
            {"link": "https://example.com:8443/login"},
        ]
        assert match_position(results, "example.com", strict=True) == 3

    def test_strict_mode_accepts_exact_host(self):
        assert match_position([{"link": "https://www.example.com"}], "example.com", strict=True) == 1

    def test_idempotent(self):
        results = [{"link": "a.com"}, {"link": "https://example.com/x"}]
        first = match_position(results, "example.com")
        assert match_position(results, "example.com") == first == 2
        assert results == [{"link": "a.com"}, {"link": "https://example.com/x"}]

    @pytest.mark.parametrize("candidate,target,expected", [
        ("example.com", "example.com", 1),
        ("example.com/page", "example.com", 1),
        ("example.org", "example.com", None),
        ("sub.example.com", "example.com", None),
        ("example.com", "example.com/page", None),
    ])
    def test_single_entry_prefix_property(self, candidate, target, expected):
        assert match_position([{"link": candidate}], target) == expected
        assert normalize_url(candidate).startswith(normalize_url(target)) == (expected == 1)
