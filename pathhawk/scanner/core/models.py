"""
Shared data types for the PathHawk scan engine.

Targets, work items and outcomes are immutable once built so they can be
handed between coroutines without copying.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class Verdict(Enum):
    """Classification of a single outcome under the active filters."""
    INTERESTING = 'interesting'
    SUPPRESSED = 'suppressed'


@dataclass(frozen=True)
class ScanTarget:
    """
    A concrete request produced by filling a template with one word.
    """
    method: str
    url: str
    headers: Tuple[Tuple[str, str], ...] = ()
    body: Optional[str] = None
    depth: int = 0

    @property
    def dedup_key(self) -> Tuple:
        """Identity of the request, independent of where it was found."""
        return (self.method, self.url, self.headers, self.body)


@dataclass(frozen=True)
class WorkItem:
    """
    A target waiting in the queue plus its remaining recursion budget.

    ``template`` is the template the target was filled from, kept so that
    a directory-like result can be expanded with the same method, headers
    and body.
    """
    target: ScanTarget
    remaining: int = 0
    template: Any = field(default=None, compare=False, repr=False)

    @property
    def dedup_key(self) -> Tuple:
        return self.target.dedup_key


@dataclass(frozen=True)
class ScanOutcome:
    """
    Result of one dispatched target, forwarded to the sink as a unit.

    ``status`` is None when the exchange failed at the transport level; in
    that case ``error`` and ``error_kind`` describe the failure.
    """
    url: str
    method: str
    depth: int
    verdict: Verdict
    status: Optional[int] = None
    redirect: Optional[str] = None
    bytes: int = 0
    words: int = 0
    chars: int = 0
    lines: int = 0
    elapsed: float = 0.0
    directory: bool = False
    error: Optional[str] = None
    error_kind: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_error(self) -> bool:
        return self.status is None

    @property
    def is_interesting(self) -> bool:
        return self.verdict is Verdict.INTERESTING

    @property
    def is_redirect(self) -> bool:
        return self.status is not None and 300 <= self.status < 400

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'url': self.url,
            'method': self.method,
            'status': self.status,
            'redirect': self.redirect,
            'bytes': self.bytes,
            'words': self.words,
            'chars': self.chars,
            'lines': self.lines,
            'depth': self.depth,
            'verdict': self.verdict.value,
            'directory': self.directory,
            'elapsed': round(self.elapsed, 3),
            'error': self.error,
            'error_kind': self.error_kind,
        }
