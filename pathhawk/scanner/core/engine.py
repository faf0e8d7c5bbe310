"""
PathHawk Scan Engine

The coordinator owns the scan queue, the concurrency gate and the set of
in-flight workers. It seeds every template with the wordlist, dispatches
work under the gate, expands directory-like results and stops once the
queue is empty and nothing is in flight.
"""

import asyncio
import contextlib
import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Set, Union

from pathhawk.scanner.core.classifier import FilterConfig, ResultClassifier
from pathhawk.scanner.core.models import ScanOutcome, WorkItem
from pathhawk.scanner.core.progress import ScanProgress, ScanState
from pathhawk.scanner.core.requester import AsyncRequester
from pathhawk.scanner.core.scan_queue import ScanQueue
from pathhawk.scanner.core.template import TargetTemplate, TemplateError
from pathhawk.scanner.core.worker import Worker

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[ScanOutcome], Optional[Awaitable[None]]]


class ConfigurationError(ValueError):
    """Raised for run options that cannot start a scan."""


class ScanStateError(RuntimeError):
    """Raised when a coordinator is run more than once."""


@dataclass
class ScanConfig:
    """Scanner configuration."""
    concurrency: int = 10
    timeout: float = 10
    delay: float = 0.0
    max_depth: int = 0
    filters: FilterConfig = field(default_factory=FilterConfig)
    verify_ssl: bool = True
    user_agent: Optional[str] = None
    proxy: Optional[str] = None
    poll_interval: float = 0.1

    def __post_init__(self):
        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int) \
                or self.concurrency < 1:
            raise ConfigurationError("Concurrency must be at least 1.")
        if self.timeout <= 0:
            raise ConfigurationError("Timeout must be positive.")
        if self.delay < 0:
            raise ConfigurationError("Delay must not be negative.")
        if self.max_depth < 0:
            raise ConfigurationError("Recursion depth must not be negative.")
        if self.poll_interval <= 0:
            raise ConfigurationError("Poll interval must be positive.")

    @classmethod
    def from_object(cls, obj: Any, **overrides) -> 'ScanConfig':
        """Build from a config class such as ``pathhawk.config.BaseConfig``."""
        values = {
            'concurrency': obj.SCANNER_CONCURRENCY,
            'timeout': obj.SCANNER_TIMEOUT,
            'delay': obj.SCANNER_DELAY,
            'max_depth': obj.SCANNER_MAX_DEPTH,
            'verify_ssl': obj.SCANNER_VERIFY_SSL,
            'user_agent': obj.SCANNER_USER_AGENT,
            'proxy': obj.SCANNER_PROXY,
            'poll_interval': obj.SCANNER_POLL_INTERVAL,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class ScanSummary:
    """Totals for a finished run."""
    processed: int = 0
    interesting: int = 0
    errors: int = 0
    dispatched: int = 0
    duplicates: int = 0
    peak_in_flight: int = 0
    duration: float = 0.0
    requests: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'processed': self.processed,
            'interesting': self.interesting,
            'errors': self.errors,
            'dispatched': self.dispatched,
            'duplicates': self.duplicates,
            'peak_in_flight': self.peak_in_flight,
            'duration': round(self.duration, 3),
            'requests': dict(self.requests),
        }


class ScanCoordinator:
    """
    Runs one content discovery scan.

    Outcomes are pushed by workers into a single channel and handed to
    ``outcome_callback`` (plain function or coroutine function) by one
    consumer, in arrival order. A coordinator runs exactly once.
    """

    def __init__(
            self,
            templates: Union[TargetTemplate, str, Iterable[Union[TargetTemplate, str]]],
            words: Iterable[str],
            config: Optional[ScanConfig] = None,
            requester: Optional[AsyncRequester] = None,
            outcome_callback: Optional[OutcomeCallback] = None,
            progress_callback: Optional[Callable[[Dict], None]] = None
    ):
        """
        Initialize the coordinator.

        Args:
            templates: One or more request templates (URL strings are parsed)
            words: Wordlist, order preserved
            config: Run configuration
            requester: Shared requester; one is created per run when omitted
            outcome_callback: Called with every ScanOutcome
            progress_callback: Called with progress snapshots
        """
        if isinstance(templates, (TargetTemplate, str)):
            templates = [templates]
        self.templates: List[TargetTemplate] = [
            t if isinstance(t, TargetTemplate) else TargetTemplate(t) for t in templates
        ]
        if not self.templates:
            raise ConfigurationError("No URLs provided for scanning.")

        self.words: List[str] = list(words)
        for word in self.words:
            if not isinstance(word, str) or not word:
                raise ConfigurationError(f"Invalid wordlist entry: {word!r}")

        self.config = config or ScanConfig()
        self.requester = requester
        self.outcome_callback = outcome_callback

        self.queue = ScanQueue()
        self.progress = ScanProgress()
        if progress_callback:
            self.progress.set_callback(progress_callback)

        self.worker: Optional[Worker] = None
        self.summary = ScanSummary()

        self._state = ScanState.IDLE
        self._gate: Optional[asyncio.Semaphore] = None
        self._active = 0

    @property
    def state(self) -> ScanState:
        return self._state

    def _set_state(self, state: ScanState):
        if state is not self._state:
            logger.debug(f"Coordinator {self._state.state_id} -> {state.state_id}")
            self._state = state
            self.progress.set_state(state)

    async def run(self) -> ScanSummary:
        """
        Execute the scan until the queue is exhausted.

        Returns:
            ScanSummary with the processed outcome count and other totals
        """
        if self._state is not ScanState.IDLE:
            raise ScanStateError("A coordinator can only run once; create a new one.")

        start_time = time.monotonic()
        owns_requester = self.requester is None
        if owns_requester:
            self.requester = AsyncRequester(
                timeout=self.config.timeout,
                max_concurrent=self.config.concurrency,
                verify_ssl=self.config.verify_ssl,
                user_agent=self.config.user_agent,
                proxy=self.config.proxy
            )

        self.worker = Worker(
            self.requester,
            ResultClassifier(self.config.filters),
            delay=self.config.delay
        )
        self._gate = asyncio.Semaphore(self.config.concurrency)

        channel: asyncio.Queue = asyncio.Queue()
        consumer = asyncio.create_task(self._consume(channel))
        tasks: Set[asyncio.Task] = set()

        try:
            await self.requester.start()
            await self._seed()
            self.progress.start(len(self.templates) * len(self.words))
            self._set_state(ScanState.RUNNING)

            while True:
                while len(tasks) < self.config.concurrency and not self.queue.empty():
                    item = await self.queue.dequeue()
                    if item is None:
                        break
                    await self._gate.acquire()
                    task = asyncio.create_task(self._dispatch(item, channel))
                    task.add_done_callback(self._release)
                    tasks.add(task)
                    self.summary.dispatched += 1

                if not tasks:
                    if self.queue.empty():
                        break
                    continue

                self._set_state(ScanState.DRAINING if self.queue.empty() else ScanState.RUNNING)

                done, _ = await asyncio.wait(
                    tasks,
                    timeout=self.config.poll_interval,
                    return_when=asyncio.FIRST_COMPLETED
                )
                for task in done:
                    tasks.discard(task)
                    task.result()

        finally:
            for task in tasks:
                task.cancel()
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)

            try:
                await channel.put(None)
                await consumer
            finally:
                if owns_requester:
                    await self.requester.close()

        self._set_state(ScanState.DONE)

        self.summary.duplicates = self.queue.duplicates
        self.summary.duration = time.monotonic() - start_time
        self.summary.requests = self.requester.get_stats()

        logger.info(
            f"Scan finished: {self.summary.processed} processed, "
            f"{self.summary.interesting} found, {self.summary.errors} errors "
            f"in {self.summary.duration:.2f}s"
        )
        return self.summary

    async def stream(self) -> AsyncIterator[ScanOutcome]:
        """
        Run the scan and yield outcomes as they are delivered.

        The summary is available on ``self.summary`` once iteration ends.
        """
        results: asyncio.Queue = asyncio.Queue()
        user_callback = self.outcome_callback

        async def forward(outcome: ScanOutcome):
            results.put_nowait(outcome)
            if user_callback:
                await self._call(user_callback, outcome)

        self.outcome_callback = forward
        runner = asyncio.create_task(self.run())
        runner.add_done_callback(lambda _: results.put_nowait(None))

        try:
            while True:
                outcome = await results.get()
                if outcome is None:
                    break
                yield outcome
            await runner
        finally:
            if not runner.done():
                runner.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await runner

    async def _seed(self):
        items = [
            WorkItem(template.fill(word), self.config.max_depth, template)
            for template in self.templates
            for word in self.words
        ]
        accepted = await self.queue.enqueue_many(items)
        self.progress.add_total(accepted)
        logger.info(
            f"Seeded {accepted} targets from {len(self.templates)} template(s) "
            f"x {len(self.words)} words"
        )

    def _release(self, _task: asyncio.Task):
        self._gate.release()

    async def _dispatch(self, item: WorkItem, channel: asyncio.Queue):
        """Run one worker, publish its outcome and queue any follow-ups."""
        self._active += 1
        self.summary.peak_in_flight = max(self.summary.peak_in_flight, self._active)
        self.progress.set_in_flight(self._active)
        try:
            outcome = await self.worker.run(item)
        finally:
            self._active -= 1
            self.progress.set_in_flight(self._active)

        self.summary.processed += 1
        if outcome.is_error:
            self.summary.errors += 1
        elif outcome.is_interesting:
            self.summary.interesting += 1
        self.progress.record(interesting=outcome.is_interesting, error=outcome.is_error)

        await channel.put(outcome)

        base = self.worker.follow_up(item, outcome)
        if base and item.template is not None and item.template.recursive:
            await self._expand(item, base)

    async def _expand(self, item: WorkItem, base: str):
        try:
            child = item.template.descend(base)
        except TemplateError as e:
            logger.warning(f"Not recursing into {base}: {e}")
            return
        depth = item.target.depth + 1
        items = [
            WorkItem(child.fill(word, depth), item.remaining - 1, child)
            for word in self.words
        ]
        accepted = await self.queue.enqueue_many(items)
        self.progress.add_total(accepted)
        if accepted:
            logger.info(f"Recursing into {base} (depth {depth}, {accepted} targets)")

    async def _consume(self, channel: asyncio.Queue):
        while True:
            outcome = await channel.get()
            if outcome is None:
                break
            if self.outcome_callback is None:
                continue
            try:
                await self._call(self.outcome_callback, outcome)
            except Exception:
                logger.exception(f"Outcome callback failed for {outcome.url}")

    @staticmethod
    async def _call(callback: Callable, outcome: ScanOutcome):
        result = callback(outcome)
        if inspect.isawaitable(result):
            await result
