"""Input loading: wordlists and target URL lists."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from pathhawk.scanner.core.template import InvalidURLError, TargetTemplate, TemplateError

logger = logging.getLogger(__name__)

RESULT_URL_PATTERN = re.compile(r"https?://[^\s]+")


def read_wordlist(path: Path) -> List[str]:
    """Trimmed, non-empty lines of ``path`` in file order."""
    if not path.exists():
        raise FileNotFoundError(f"Wordlist file not found: {path}")

    with open(path, "r", encoding="utf-8", errors="ignore") as fh:
        return [line.strip() for line in fh if line.strip()]


def _content_lines(path: Path) -> Iterable[str]:
    with open(path, "r", encoding="utf-8", errors="ignore") as fh:
        for line in fh:
            line = line.strip()
            if line and not line.startswith("#"):
                yield line


def read_urls_file(path: Path) -> List[str]:
    """One URL per line; blank lines and ``#`` comments are skipped."""
    return list(_content_lines(path))


def extract_result_urls(path: Path) -> List[str]:
    """Every http(s) URL found in a previous results file."""
    urls: List[str] = []
    for line in _content_lines(path):
        urls.extend(RESULT_URL_PATTERN.findall(line))
    return urls


def collect_urls(
    urls: Sequence[str] = (),
    urls_file: Optional[Path] = None,
    results_file: Optional[Path] = None,
) -> List[str]:
    """URLs from direct arguments, a URL file and a results file, in that order."""
    collected = list(urls)
    if urls_file:
        logger.info(f"Reading URLs from file: {urls_file}")
        collected.extend(read_urls_file(urls_file))
    if results_file:
        logger.info(f"Extracting URLs from results file: {results_file}")
        collected.extend(extract_result_urls(results_file))
    return collected


def build_templates(
    urls: Iterable[str],
    method: str = "GET",
    headers: Sequence[str] = (),
    body: Optional[str] = None,
    marker: str = "FUZZ",
) -> List[TargetTemplate]:
    """
    One template per URL. Unparseable URLs are skipped with a warning;
    header and method errors are raised since they apply to every URL.
    """
    templates: List[TargetTemplate] = []
    for url in urls:
        try:
            templates.append(
                TargetTemplate(url, method=method, headers=headers, body=body, marker=marker)
            )
        except InvalidURLError as exc:
            logger.warning(f"Could not parse URL '{url}': {exc}. Skipping.")

    if not templates:
        raise TemplateError(
            "No URLs provided for scanning. Use --url, --urls-file, or --results-file."
        )
    return templates
