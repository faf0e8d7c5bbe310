"""
Tests for result classification and filter parsing.
"""

import pytest

from pathhawk.scanner.core.classifier import (
    UNKNOWN_REDIRECT,
    FilterConfig,
    FilterError,
    ResultClassifier,
    body_metrics,
    parse_status_codes,
    redirect_target,
)
from pathhawk.scanner.core.models import Verdict


def verdict(filters, status, body=b"", headers=None):
    return ResultClassifier(filters).classify(status, body, headers or {}).verdict


def test_default_suppresses_only_404():
    filters = FilterConfig()

    assert verdict(filters, 404) is Verdict.SUPPRESSED
    for status in (200, 204, 301, 403, 500):
        assert verdict(filters, status) is Verdict.INTERESTING


def test_include_wins_over_exclude():
    filters = FilterConfig(include_status={500}, exclude_status={500, 404})

    assert verdict(filters, 500) is Verdict.INTERESTING
    assert verdict(filters, 404) is Verdict.SUPPRESSED
    assert verdict(filters, 200) is Verdict.SUPPRESSED


def test_include_only_suppresses_everything_else():
    filters = FilterConfig(include_status={200, 301})

    assert verdict(filters, 200) is Verdict.INTERESTING
    assert verdict(filters, 301, headers={"Location": "/x/"}) is Verdict.INTERESTING
    assert verdict(filters, 403) is Verdict.SUPPRESSED


def test_exclude_only_replaces_default():
    filters = FilterConfig(exclude_status={403})

    assert verdict(filters, 403) is Verdict.SUPPRESSED
    assert verdict(filters, 404) is Verdict.INTERESTING


def test_size_filters_only_suppress():
    body = b"not found here\n"
    metrics = body_metrics(body)
    filters = FilterConfig(exclude_words={metrics["words"]})

    assert verdict(filters, 200, body) is Verdict.SUPPRESSED
    # a match rule never turns a 404 into a result
    assert verdict(FilterConfig(match_words={3}), 404, body) is Verdict.SUPPRESSED


def test_match_rule_keeps_only_matching_sizes():
    filters = FilterConfig(match_lines={2})

    assert verdict(filters, 200, b"one\ntwo\n") is Verdict.INTERESTING
    assert verdict(filters, 200, b"one\n") is Verdict.SUPPRESSED


def test_body_metrics():
    metrics = body_metrics("héllo big world\nbye".encode("utf-8"))

    assert metrics == {"bytes": 20, "words": 4, "chars": 19, "lines": 2}
    assert body_metrics(b"") == {"bytes": 0, "words": 0, "chars": 0, "lines": 0}


def test_redirect_target():
    assert redirect_target(301, {"location": "/new"}) == "/new"
    assert redirect_target(302, {}) == UNKNOWN_REDIRECT
    assert redirect_target(200, {"Location": "/ignored"}) is None


def test_classification_carries_metadata():
    result = ResultClassifier().classify(301, b"moved", {"Location": "/admin/"})

    assert result.verdict is Verdict.INTERESTING
    assert result.redirect == "/admin/"
    assert result.metrics["bytes"] == 5


def test_parse_status_codes():
    assert parse_status_codes("200, 301,,403") == frozenset({200, 301, 403})

    with pytest.raises(FilterError):
        parse_status_codes("200,abc")
    with pytest.raises(FilterError):
        parse_status_codes("99")
    with pytest.raises(FilterError):
        parse_status_codes("600")


def test_filter_config_rejects_bad_values():
    with pytest.raises(FilterError):
        FilterConfig(include_status={1000})
    with pytest.raises(FilterError):
        FilterConfig(exclude_bytes={-1})


def test_filter_config_normalizes_to_frozensets():
    filters = FilterConfig(include_status=[200, 200], match_chars=[5])

    assert filters.include_status == frozenset({200})
    assert filters.match_chars == frozenset({5})
