from __future__ import annotations

import io
import socket
from typing import Callable, Dict, Iterator, List, Optional

import pytest

from lambda_runtime.core.runtime import LambdaRuntime
from lambda_runtime.transport.httpx_client import HttpxTransport
from lambda_runtime.transport.per_call import PerCallTransport
from lambda_runtime.transport.reuse import ReuseTransport
from mock_runtime_api import MockRuntimeApi


@pytest.fixture
def runtime_api() -> Iterator[MockRuntimeApi]:
    api = MockRuntimeApi()
    api.start()
    try:
        yield api
    finally:
        api.stop()


@pytest.fixture
def closed_port_endpoint() -> str:
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return f"127.0.0.1:{port}"


TRANSPORT_FACTORIES: Dict[str, Optional[Callable[[], object]]] = {
    "default": None,
    "per_call": PerCallTransport,
    "reuse": ReuseTransport,
    "httpx": HttpxTransport,
}


class RuntimeFactory:
    """按 transport 名称构造 runtime，并在测试结束时统一关闭。"""

    def __init__(self, name: str) -> None:
        self.name = name
        self.diagnostics = io.StringIO()
        self._runtimes: List[LambdaRuntime] = []

    def __call__(self, endpoint: str) -> LambdaRuntime:
        factory = TRANSPORT_FACTORIES[self.name]
        transport = factory() if factory is not None else None
        runtime = LambdaRuntime(endpoint, transport, diagnostic_stream=self.diagnostics)  # type: ignore[arg-type]
        self._runtimes.append(runtime)
        return runtime

    def close(self) -> None:
        for r in self._runtimes:
            r.close()


@pytest.fixture(params=sorted(TRANSPORT_FACTORIES))
def make_runtime(request) -> Iterator[RuntimeFactory]:  # type: ignore[no-untyped-def]
    factory = RuntimeFactory(request.param)
    try:
        yield factory
    finally:
        factory.close()
