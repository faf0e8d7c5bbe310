"""
Scan worker: one HTTP exchange per work item.
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urljoin

from pathhawk.scanner.core.classifier import ResultClassifier
from pathhawk.scanner.core.models import ScanOutcome, Verdict, WorkItem
from pathhawk.scanner.core.requester import AsyncRequester, Response, TransportError

logger = logging.getLogger(__name__)


def is_directory_like(response: Response, redirect: Optional[str]) -> bool:
    """
    Whether a response denotes an expandable path segment.

    Any 2xx counts. A 3xx counts only when its ``Location`` resolves to the
    requested URL with a trailing slash, the usual way servers answer a
    directory requested without one.
    """
    if response.is_success:
        return True
    if response.is_redirect and redirect:
        url = response.url
        if url.endswith('/'):
            return False
        return urljoin(url, redirect) == url + '/'
    return False


class Worker:
    """
    Executes work items and proposes follow-up scans.

    The optional ``delay`` is slept right before each request. It paces
    this worker only and does not coordinate with other in-flight workers.
    """

    def __init__(
            self,
            requester: AsyncRequester,
            classifier: Optional[ResultClassifier] = None,
            delay: float = 0.0
    ):
        self.requester = requester
        self.classifier = classifier or ResultClassifier()
        self.delay = delay

    async def run(self, item: WorkItem) -> ScanOutcome:
        """Run one exchange; transport failures come back as error outcomes."""
        target = item.target

        if self.delay > 0:
            await asyncio.sleep(self.delay)

        try:
            response = await self.requester.send(target)
        except TransportError as e:
            return ScanOutcome(
                url=target.url,
                method=target.method,
                depth=target.depth,
                verdict=Verdict.SUPPRESSED,
                error=e.message,
                error_kind=e.kind,
            )

        result = self.classifier.classify(response.status, response.body, response.headers)
        directory = (
            result.verdict is Verdict.INTERESTING
            and is_directory_like(response, result.redirect)
        )

        return ScanOutcome(
            url=target.url,
            method=target.method,
            depth=target.depth,
            verdict=result.verdict,
            status=response.status,
            redirect=result.redirect,
            directory=directory,
            elapsed=response.elapsed,
            headers=response.headers,
            **result.metrics
        )

    @staticmethod
    def follow_up(item: WorkItem, outcome: ScanOutcome) -> Optional[str]:
        """Base URL for the next level of scanning, if any."""
        if item.remaining <= 0 or not outcome.directory:
            return None
        url = outcome.url
        # a query or fragment cannot take another path segment
        if '?' in url or '#' in url:
            return None
        return url if url.endswith('/') else url + '/'
