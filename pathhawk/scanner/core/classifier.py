"""
Response classification for PathHawk.

Decides whether a completed response is worth reporting under the active
status and size filters, and extracts the metadata shown for each result.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional

from pathhawk.scanner.core.models import Verdict

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE = frozenset({404})
UNKNOWN_REDIRECT = 'unknown'

SIZE_METRICS = ('bytes', 'words', 'chars', 'lines')


class FilterError(ValueError):
    """Raised for an invalid filter specification."""


def _status_set(codes: Optional[Iterable[int]]) -> Optional[FrozenSet[int]]:
    if codes is None:
        return None
    result = frozenset(int(c) for c in codes)
    for code in result:
        if not 100 <= code <= 599:
            raise FilterError(f"Invalid status code: {code}")
    return result


def _size_set(values: Optional[Iterable[int]], name: str) -> Optional[FrozenSet[int]]:
    if values is None:
        return None
    result = frozenset(int(v) for v in values)
    if any(v < 0 for v in result):
        raise FilterError(f"Negative value in {name} filter")
    return result


def parse_status_codes(value: str) -> FrozenSet[int]:
    """Parse a comma-separated status list such as ``"200,301,403"``."""
    codes = set()
    for part in value.split(','):
        part = part.strip()
        if not part:
            continue
        try:
            codes.add(int(part))
        except ValueError:
            raise FilterError(f"Invalid status code: {part}") from None
    return _status_set(codes)


@dataclass(frozen=True)
class FilterConfig:
    """
    Active result filters for one run.

    ``match_*`` sets keep only responses whose metric equals one of the
    values; ``exclude_*`` sets drop responses whose metric equals one of
    them. Both only ever suppress.
    """
    include_status: Optional[FrozenSet[int]] = None
    exclude_status: Optional[FrozenSet[int]] = None
    match_bytes: Optional[FrozenSet[int]] = None
    match_words: Optional[FrozenSet[int]] = None
    match_chars: Optional[FrozenSet[int]] = None
    match_lines: Optional[FrozenSet[int]] = None
    exclude_bytes: Optional[FrozenSet[int]] = None
    exclude_words: Optional[FrozenSet[int]] = None
    exclude_chars: Optional[FrozenSet[int]] = None
    exclude_lines: Optional[FrozenSet[int]] = None

    def __post_init__(self):
        object.__setattr__(self, 'include_status', _status_set(self.include_status))
        object.__setattr__(self, 'exclude_status', _status_set(self.exclude_status))
        for metric in SIZE_METRICS:
            for prefix in ('match_', 'exclude_'):
                name = prefix + metric
                object.__setattr__(self, name, _size_set(getattr(self, name), name))

    def status_verdict(self, status: int) -> Verdict:
        """Verdict from the status code alone; include always wins."""
        if self.include_status is not None and status in self.include_status:
            return Verdict.INTERESTING
        if self.exclude_status is not None and status in self.exclude_status:
            return Verdict.SUPPRESSED
        if self.include_status is not None:
            return Verdict.SUPPRESSED
        if self.exclude_status is not None:
            return Verdict.INTERESTING
        if status in DEFAULT_EXCLUDE:
            return Verdict.SUPPRESSED
        return Verdict.INTERESTING

    def size_allows(self, metrics: Dict[str, int]) -> bool:
        for metric in SIZE_METRICS:
            value = metrics[metric]
            match = getattr(self, 'match_' + metric)
            if match is not None and value not in match:
                return False
            exclude = getattr(self, 'exclude_' + metric)
            if exclude is not None and value in exclude:
                return False
        return True


@dataclass(frozen=True)
class Classification:
    """Verdict plus the display metadata of one response."""
    verdict: Verdict
    redirect: Optional[str] = None
    metrics: Dict[str, int] = field(default_factory=dict)


def body_metrics(body: bytes) -> Dict[str, int]:
    """Byte, word, character and line counts of a response body."""
    text = body.decode('utf-8', errors='replace')
    return {
        'bytes': len(body),
        'words': len(text.split()),
        'chars': len(text),
        'lines': len(text.splitlines()),
    }


def redirect_target(status: int, headers: Dict[str, str]) -> Optional[str]:
    """``Location`` of a 3xx response, ``unknown`` when the header is missing."""
    if not 300 <= status < 400:
        return None
    for key, value in headers.items():
        if key.lower() == 'location':
            return value
    return UNKNOWN_REDIRECT


class ResultClassifier:
    """Scores responses against a FilterConfig."""

    def __init__(self, filters: Optional[FilterConfig] = None):
        self.filters = filters or FilterConfig()

    def classify(self, status: int, body: bytes, headers: Dict[str, str]) -> Classification:
        metrics = body_metrics(body)
        verdict = self.filters.status_verdict(status)
        if verdict is Verdict.INTERESTING and not self.filters.size_allows(metrics):
            verdict = Verdict.SUPPRESSED

        return Classification(
            verdict=verdict,
            redirect=redirect_target(status, headers),
            metrics=metrics,
        )
