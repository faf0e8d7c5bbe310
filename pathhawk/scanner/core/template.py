"""
Request templates for PathHawk.

A template is a URL, header set and optional body containing a substitution
marker. Filling it with a word yields a concrete ScanTarget.
"""

import logging
from enum import Enum
from typing import Iterable, List, Optional, Tuple, Union
from urllib.parse import urlsplit

from pathhawk.scanner.core.models import ScanTarget
from pathhawk.scanner.core.requester import RequestMethod

logger = logging.getLogger(__name__)

DEFAULT_MARKER = 'FUZZ'

HeaderSpec = Union[str, Tuple[str, str]]


class TemplateError(ValueError):
    """Raised when a template cannot be built from the given input."""


class InvalidURLError(TemplateError):
    """Raised when the base URL itself is unusable."""


class FuzzMode(Enum):
    """Where the marker sits in the request."""
    PATH = 'path'
    SUBDOMAIN = 'subdomain'
    PARAMETER = 'parameter'
    HEADER = 'header'
    BODY = 'body'


def parse_header(line: str) -> Tuple[str, str]:
    """Split a ``Name: value`` header line."""
    name, sep, value = line.partition(':')
    if not sep or not name.strip():
        raise TemplateError(f"Invalid header format: {line!r}")
    return name.strip(), value.strip()


class TargetTemplate:
    """
    Substitution template for one base target.

    When ``mode`` is None the fuzz mode is detected from where the marker
    appears. A URL with no marker anywhere gets the marker appended as its
    last path segment, so ``http://host/`` scans ``http://host/<word>``.
    """

    def __init__(
            self,
            url: str,
            method: Union[str, RequestMethod] = RequestMethod.GET,
            headers: Optional[Iterable[HeaderSpec]] = None,
            body: Optional[str] = None,
            marker: str = DEFAULT_MARKER,
            mode: Optional[FuzzMode] = None
    ):
        if not marker:
            raise TemplateError("Substitution marker must not be empty")

        self.marker = marker
        self.method = self._parse_method(method)
        self.headers: List[Tuple[str, str]] = [
            parse_header(h) if isinstance(h, str) else (h[0], h[1])
            for h in (headers or [])
        ]
        self.body = body

        self._check_url(url)
        self.mode = self._resolve_mode(url, mode)
        if self.mode is FuzzMode.PATH and marker not in url:
            url = url if url.endswith('/') else url + '/'
            url += marker
        self.url = url

        logger.debug(f"Template {self.method} {self.url} ({self.mode.value})")

    @staticmethod
    def _parse_method(method: Union[str, RequestMethod]) -> str:
        if isinstance(method, RequestMethod):
            return method.value
        try:
            return RequestMethod(str(method).upper()).value
        except ValueError:
            raise TemplateError(f"Unsupported HTTP method: {method}") from None

    @staticmethod
    def _check_url(url: str):
        parts = urlsplit(url)
        if parts.scheme not in ('http', 'https'):
            raise InvalidURLError(
                f"Unsupported URL scheme: {parts.scheme or '(none)'}. "
                f"Only http and https are supported."
            )
        if not parts.netloc:
            raise InvalidURLError(f"URL has no host: {url}")

    def _sites(self, url: str) -> dict:
        parts = urlsplit(url)
        return {
            FuzzMode.SUBDOMAIN: self.marker in parts.netloc,
            FuzzMode.PARAMETER: self.marker in parts.query,
            FuzzMode.PATH: self.marker in parts.path,
            FuzzMode.HEADER: any(self.marker in n or self.marker in v for n, v in self.headers),
            FuzzMode.BODY: self.body is not None and self.marker in self.body,
        }

    def _resolve_mode(self, url: str, mode: Optional[FuzzMode]) -> FuzzMode:
        sites = self._sites(url)

        if mode is not None:
            if not sites[mode]:
                raise TemplateError(
                    f"{self.marker} keyword not found for {mode.value} fuzzing"
                )
            return mode

        for candidate in (FuzzMode.SUBDOMAIN, FuzzMode.PARAMETER, FuzzMode.PATH,
                          FuzzMode.HEADER, FuzzMode.BODY):
            if sites[candidate]:
                return candidate
        return FuzzMode.PATH

    @property
    def recursive(self) -> bool:
        """True when filled targets can be extended with further path segments."""
        parts = urlsplit(self.url)
        return (
            self.mode is FuzzMode.PATH
            and parts.path.endswith('/' + self.marker)
            and self.marker not in parts.netloc
            and not parts.query
            and not parts.fragment
        )

    def fill(self, word: str, depth: int = 0) -> ScanTarget:
        """Substitute every marker occurrence with ``word``."""
        m = self.marker
        return ScanTarget(
            method=self.method,
            url=self.url.replace(m, word),
            headers=tuple((n.replace(m, word), v.replace(m, word)) for n, v in self.headers),
            body=self.body.replace(m, word) if self.body is not None else None,
            depth=depth,
        )

    def descend(self, base_url: str) -> 'TargetTemplate':
        """Build a path template one level below ``base_url``."""
        if not base_url.endswith('/'):
            base_url += '/'
        return TargetTemplate(
            base_url + self.marker,
            method=self.method,
            headers=self.headers,
            body=self.body,
            marker=self.marker,
            mode=FuzzMode.PATH,
        )

    def __repr__(self) -> str:
        return f"TargetTemplate({self.method} {self.url!r}, mode={self.mode.value})"
