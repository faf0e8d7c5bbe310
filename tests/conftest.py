"""
Shared fixtures for the PathHawk test suite.

Scans run against throwaway aiohttp servers on localhost, the same way the
scanner is pointed at a local demo application during development.
"""

import asyncio
import contextlib
import inspect
import socket
from typing import Callable, Dict, List, Optional, Union

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from pathhawk.config import TestingConfig
from pathhawk.scanner.core.engine import ScanConfig

# path -> status | (status, body) | (status, body, headers) | async handler
RouteSpec = Union[int, tuple, Callable]


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run coroutine tests on a fresh event loop."""
    if not inspect.iscoroutinefunction(pyfuncitem.obj):
        return None
    funcargs = pyfuncitem.funcargs
    kwargs = {name: funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
    asyncio.run(pyfuncitem.obj(**kwargs))
    return True


class RecordingApp:
    """Catch-all aiohttp app that answers from a route table and logs requests."""

    def __init__(self, routes: Dict[str, RouteSpec], default: int = 404):
        self.routes = routes
        self.default = default
        self.requests: List[dict] = []

    async def handle(self, request: web.Request) -> web.StreamResponse:
        self.requests.append({
            'method': request.method,
            'path': request.path,
            'path_qs': request.path_qs,
            'host': request.host,
            'headers': dict(request.headers),
            'body': await request.text(),
        })

        route = self.routes.get(request.path, self.default)
        if callable(route):
            return await route(request)
        if isinstance(route, int):
            route = (route,)
        status = route[0]
        body = route[1] if len(route) > 1 else ''
        headers = route[2] if len(route) > 2 else None
        return web.Response(status=status, text=body, headers=headers)

    def paths(self, method: Optional[str] = None) -> List[str]:
        return [r['path'] for r in self.requests if method is None or r['method'] == method]

    def build(self) -> web.Application:
        app = web.Application()
        app.router.add_route('*', '/{tail:.*}', self.handle)
        return app


@contextlib.asynccontextmanager
async def _serve(routes: Dict[str, RouteSpec], default: int = 404):
    recorder = RecordingApp(routes, default)
    server = TestServer(recorder.build())
    await server.start_server()
    try:
        recorder.base_url = str(server.make_url('/'))
        yield recorder
    finally:
        await server.close()


@pytest.fixture
def serve():
    """Factory: ``async with serve({'/admin': 200}) as app: ...``"""
    return _serve


@pytest.fixture
def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('127.0.0.1', 0))
        return sock.getsockname()[1]


@pytest.fixture
def scan_config() -> Callable[..., ScanConfig]:
    """ScanConfig factory seeded from TestingConfig."""
    def factory(**overrides) -> ScanConfig:
        return ScanConfig.from_object(TestingConfig, **overrides)
    return factory
