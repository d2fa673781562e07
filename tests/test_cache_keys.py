from __future__ import annotations

import pytest

from app.models.research import ResearchRequest
from app.services.cache_keys import exact_key, fuzzy_prefix, norm


def test_exact_key_replaces_each_punctuation_char_without_collapsing():
    """Each character outside [a-z0-9] becomes one dash, so "!!!" yields exactly three."""
    request = ResearchRequest(
        topic="Best Coffee Shops!!!",
        content_type="article",
        platform="general",
        language="en",
    )

    assert exact_key(request) == "research:best-coffee-shops---:article:general:en"


def test_fuzzy_prefix_uses_shorter_topic_only():
    request = ResearchRequest(topic="x" * 120, content_type="Blog Post", platform="LinkedIn", language="es")

    assert fuzzy_prefix(request) == "research:" + "x" * 50
    assert exact_key(request).startswith("research:" + "x" * 100 + ":blog-post:linkedin:es")


@pytest.mark.parametrize(
    "value",
    ["", "   ", "!!!", "Hello, World", "ÜBER café", "tabs\tand\nnewlines", "a" * 300, "--already--normal--"],
)
def test_norm_is_total_and_idempotent(value):
    once = norm(value, 100)
    assert norm(once, 100) == once
    assert set(once) <= set("abcdefghijklmnopqrstuvwxyz0123456789-")
    assert len(once) <= 100


def test_norm_handles_none_and_symbol_only_input():
    assert norm(None) == ""
    assert norm("?!", 10) == "--"
    assert norm("  Trim Me  ") == "trim-me"


def test_requests_that_normalize_identically_share_exact_key():
    first = ResearchRequest(topic="  Coffee Shops ", content_type="Article", platform="General")
    second = ResearchRequest(topic="coffee shops", content_type="article", platform="general")

    assert exact_key(first) == exact_key(second)


def test_requests_differing_beyond_fuzzy_length_share_prefix_only():
    base = "a" * 50
    first = ResearchRequest(topic=base + " first angle")
    second = ResearchRequest(topic=base + " second angle")

    assert fuzzy_prefix(first) == fuzzy_prefix(second)
    assert exact_key(first) != exact_key(second)


def test_language_is_part_of_exact_key_but_not_fuzzy_prefix():
    english = ResearchRequest(topic="remote work", language="en")
    spanish = ResearchRequest(topic="remote work", language="es")

    assert exact_key(english) != exact_key(spanish)
    assert fuzzy_prefix(english) == fuzzy_prefix(spanish)
