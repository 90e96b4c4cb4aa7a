"""
基于 `httpcore.ConnectionPool` 的 transport 公共实现。

说明：
- 直接驱动 httpcore 连接（不经过 httpx.Client），保持冷启动路径最短；
- 子类只决定“连接资源的作用域”：每次新建（PerCallTransport）或跨调用复用（ReuseTransport）；
- httpcore 异常与 URL 解析错误在这里统一映射为 InvocationFetchError / ResponsePostError。
"""

from __future__ import annotations

import contextlib
import logging
from typing import Any, Dict, Iterator, Optional

import httpcore
import httpx

from lambda_runtime.core.errors import InvocationFetchError, ResponsePostError
from lambda_runtime.core.invocation import InvocationRequest
from lambda_runtime.transport import wire

logger = logging.getLogger(__name__)

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

# httpcore 没有统一基类；这里列出连接/协议层可能抛出的全部异常
HTTPCORE_ERRORS = (
    httpcore.TimeoutException,
    httpcore.NetworkError,
    httpcore.ProtocolError,
    httpcore.UnsupportedProtocol,
    httpcore.ProxyError,
    httpcore.ConnectionNotAvailable,
)

# URL 无法解析（如端口非数字）：httpcore 抛 ValueError，重定向拼接抛 httpx.InvalidURL
URL_ERRORS = (ValueError, httpx.InvalidURL)


class _TooManyRedirects(Exception):
    """重定向次数超过上限（仅在本模块内部使用）。"""


class PoolTransport:
    """
    httpcore transport 基类。

    子类需实现：
    - `_fetch_pool()`：返回一个 context manager，产出用于 GET 的 ConnectionPool
    - `_post_pool()`：同上，用于 POST
    """

    def __init__(self, *, max_redirects: int = 20, timeout_sec: Optional[float] = None) -> None:
        """
        参数：
        - max_redirects：GET 跟随重定向的上限
        - timeout_sec：可选；传给 httpcore 的 connect/read/write/pool 超时（默认不设超时）
        """

        self._max_redirects = int(max_redirects)
        self._timeout_sec = timeout_sec

    def _new_pool(self) -> httpcore.ConnectionPool:
        """创建一个新的连接资源（单连接池）。"""

        return httpcore.ConnectionPool(max_connections=1)

    def _fetch_pool(self) -> "contextlib.AbstractContextManager[httpcore.ConnectionPool]":
        """由子类决定 fetch 连接的作用域。"""

        raise NotImplementedError

    def _post_pool(self) -> "contextlib.AbstractContextManager[httpcore.ConnectionPool]":
        """由子类决定 post 连接的作用域。"""

        raise NotImplementedError

    def _extensions(self) -> Dict[str, Any]:
        """httpcore request extensions（仅在配置了超时时携带 timeout）。"""

        if self._timeout_sec is None:
            return {}
        t = float(self._timeout_sec)
        return {"timeout": {"connect": t, "read": t, "write": t, "pool": t}}

    def _get_following_redirects(self, pool: httpcore.ConnectionPool, url: str) -> httpcore.Response:
        """发起 GET，并在 3xx + Location 时继续跟随（最多 max_redirects 次）。"""

        current = url
        for _ in range(self._max_redirects + 1):
            response = pool.request("GET", current, extensions=self._extensions())
            location = _header(response, "location")
            if response.status not in REDIRECT_STATUSES or location is None:
                return response
            current = str(httpx.URL(current).join(location))
            logger.debug("Following redirect to %s", current)
        raise _TooManyRedirects(f"Exceeded maximum allowed redirects ({self._max_redirects})")

    def wait_next_invocation(self, url: str) -> InvocationRequest:
        """阻塞拉取下一次 invocation（语义见 RuntimeTransport）。"""

        logger.debug("Waiting for next invocation: %s", url)
        try:
            with self._fetch_pool() as pool:
                response = self._get_following_redirects(pool, url)
                if not wire.is_success(response.status):
                    raise InvocationFetchError(
                        wire.FETCH_ERROR_PREFIX
                        + f"The requested URL returned error: {wire.status_detail(response.status)}",
                        details={"status_code": response.status, "url": url},
                    )
        except (_TooManyRedirects, *URL_ERRORS, *HTTPCORE_ERRORS) as exc:
            raise InvocationFetchError(
                wire.FETCH_ERROR_PREFIX + wire.describe_transport_error(exc), details={"url": url}
            ) from exc
        return wire.parse_next_invocation(response.headers, response.content)

    def post_json(self, url: str, value: Any) -> None:
        """编码并上报 JSON（语义见 RuntimeTransport）。"""

        body = wire.encode_json(value)
        logger.debug("Posting %d bytes to %s", len(body), url)
        try:
            with self._post_pool() as pool:
                response = pool.request(
                    "POST", url, headers=wire.json_headers(body), content=body, extensions=self._extensions()
                )
                if not wire.is_success(response.status):
                    raise ResponsePostError(
                        wire.POST_ERROR_PREFIX
                        + f"The requested URL returned error: {wire.status_detail(response.status)}",
                        details={"status_code": response.status, "url": url},
                    )
        except (*URL_ERRORS, *HTTPCORE_ERRORS) as exc:
            raise ResponsePostError(
                wire.POST_ERROR_PREFIX + wire.describe_transport_error(exc), details={"url": url}
            ) from exc

    def close(self) -> None:
        """默认无持久资源。"""

    def __enter__(self) -> "PoolTransport":
        """支持 `with` 语句。"""

        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        """退出时释放资源。"""

        self.close()


def _header(response: httpcore.Response, name: str) -> Optional[str]:
    """读取 httpcore 响应头（大小写不敏感）；不存在时返回 None。"""

    target = name.lower().encode("ascii")
    for key, value in response.headers:
        if key.lower() == target:
            return value.decode("latin-1")
    return None


@contextlib.contextmanager
def closing_pool(pool: httpcore.ConnectionPool) -> Iterator[httpcore.ConnectionPool]:
    """产出 pool，并在所有退出路径上关闭它。"""

    try:
        yield pool
    finally:
        with contextlib.suppress(*HTTPCORE_ERRORS):
            pool.close()
