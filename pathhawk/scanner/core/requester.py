"""
HTTP transport for PathHawk workers.

Every target gets exactly one exchange: redirects are reported rather than
followed, and a request that yields no HTTP response at all surfaces as a
TransportError tagged with the kind of failure.
"""

import asyncio
import logging
import socket
import ssl
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import aiohttp

from pathhawk.scanner.core.models import ScanTarget

logger = logging.getLogger(__name__)

# Bodies beyond this are cut before size metrics are computed
MAX_BODY_SIZE = 10 * 1024 * 1024


class RequestMethod(Enum):
    """Methods a template may use."""
    GET = 'GET'
    HEAD = 'HEAD'
    POST = 'POST'
    PUT = 'PUT'
    DELETE = 'DELETE'
    OPTIONS = 'OPTIONS'
    PATCH = 'PATCH'


class TransportError(Exception):
    """
    A request that produced no HTTP response.

    ``kind`` is one of ``timeout``, ``dns``, ``connection``, ``tls`` or
    ``client``.
    """

    def __init__(self, url: str, kind: str, message: str):
        super().__init__(f"{kind} error on {url}: {message}")
        self.url = url
        self.kind = kind
        self.message = message


@dataclass
class Response:
    """Status, headers and body of one exchange."""
    url: str
    status: int
    headers: Dict[str, str]
    body: bytes
    elapsed: float

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_redirect(self) -> bool:
        return 300 <= self.status < 400


def _classify_error(exc: BaseException) -> str:
    if isinstance(exc, asyncio.TimeoutError):
        return 'timeout'
    if isinstance(exc, (aiohttp.ClientSSLError, aiohttp.ServerFingerprintMismatch)):
        return 'tls'
    if isinstance(exc, aiohttp.ClientConnectorError):
        if isinstance(exc.os_error, socket.gaierror):
            return 'dns'
        return 'connection'
    if isinstance(exc, (aiohttp.ServerDisconnectedError, aiohttp.ClientOSError)):
        return 'connection'
    return 'client'


def _ssl_context(verify: bool) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if not verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


class AsyncRequester:
    """
    Pooled aiohttp client shared by all workers of a scan.

    The connection pool is sized from ``max_concurrent`` so that the scan
    gate, not the connector, is what limits parallel requests.
    """

    DEFAULT_USER_AGENT = 'PathHawk/1.0'

    BASE_HEADERS = {
        'Accept': '*/*',
        'Accept-Encoding': 'gzip, deflate',
        'Connection': 'keep-alive',
    }

    def __init__(
            self,
            timeout: float = 10,
            max_concurrent: int = 10,
            verify_ssl: bool = True,
            user_agent: Optional[str] = None,
            custom_headers: Optional[Dict[str, str]] = None,
            proxy: Optional[str] = None
    ):
        """
        Args:
            timeout: Total seconds allowed per exchange
            max_concurrent: Scan concurrency, used to size the pool
            verify_ssl: Reject invalid TLS certificates when True
            user_agent: User-Agent sent with every request
            custom_headers: Headers sent with every request
            proxy: Proxy URL
        """
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.max_concurrent = max_concurrent
        self.verify_ssl = verify_ssl
        self.proxy = proxy

        self.headers = dict(self.BASE_HEADERS)
        self.headers['User-Agent'] = user_agent or self.DEFAULT_USER_AGENT
        self.headers.update(custom_headers or {})

        self._session: Optional[aiohttp.ClientSession] = None
        self.stats = {'sent': 0, 'responses': 0, 'failures': 0, 'bytes_received': 0}

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self):
        """Open the session; no-op while one is open."""
        if self._session is not None and not self._session.closed:
            return
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(
                limit=self.max_concurrent * 2,
                limit_per_host=self.max_concurrent,
                ssl=_ssl_context(self.verify_ssl),
            ),
            timeout=self.timeout,
            headers=self.headers,
        )

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def send(self, target: ScanTarget) -> Response:
        """
        Perform exactly one exchange for ``target``.

        Raises:
            TransportError: if no HTTP response could be obtained
        """
        if self._session is None:
            await self.start()

        body = target.body.encode('utf-8') if target.body is not None else None
        self.stats['sent'] += 1
        started = time.monotonic()

        try:
            async with self._session.request(
                    target.method,
                    target.url,
                    data=body,
                    headers=dict(target.headers) or None,
                    allow_redirects=False,
                    proxy=self.proxy
            ) as resp:
                payload = await resp.read()
                elapsed = time.monotonic() - started
                status = resp.status
                headers = dict(resp.headers)
        except (asyncio.TimeoutError, aiohttp.ClientError, ValueError) as e:
            self.stats['failures'] += 1
            kind = _classify_error(e)
            message = str(e) or e.__class__.__name__
            logger.warning(f"{kind.capitalize()} on {target.method} {target.url}: {message}")
            raise TransportError(target.url, kind, message) from e

        if len(payload) > MAX_BODY_SIZE:
            logger.debug(f"Truncating {len(payload)} byte body from {target.url}")
            payload = payload[:MAX_BODY_SIZE]

        self.stats['responses'] += 1
        self.stats['bytes_received'] += len(payload)
        return Response(target.url, status, headers, payload, elapsed)

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)
