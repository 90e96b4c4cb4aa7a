"""
HttpxTransport：委托给通用 HTTP 客户端 `httpx.Client`。

说明：
- 连接复用、重定向由 httpx 负责；
- httpx 的异常在此处映射为 InvocationFetchError / ResponsePostError，
  并保留 httpx 原始消息文本作为 detail。
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from lambda_runtime.core.errors import InvocationFetchError, ResponsePostError
from lambda_runtime.core.invocation import InvocationRequest
from lambda_runtime.transport import wire

logger = logging.getLogger(__name__)

HTTPX_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class HttpxTransport:
    """基于 httpx.Client 的 transport。"""

    def __init__(
        self,
        *,
        max_redirects: int = 20,
        timeout_sec: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """
        创建 transport。

        参数：
        - max_redirects：GET 跟随重定向的上限
        - timeout_sec：可选；None 表示不设超时（覆盖 httpx 默认的 5s）
        - client：可选；外部注入的 httpx.Client（例如挂了 MockTransport 的测试 client）
        """

        self._owns_client = client is None
        self._client = client or httpx.Client(
            follow_redirects=True,
            max_redirects=int(max_redirects),
            timeout=httpx.Timeout(timeout_sec),
        )

    def wait_next_invocation(self, url: str) -> InvocationRequest:
        """阻塞拉取下一次 invocation（语义见 RuntimeTransport）。"""

        logger.debug("Waiting for next invocation: %s", url)
        try:
            response = self._client.get(url, follow_redirects=True)
            response.raise_for_status()
        except HTTPX_ERRORS as exc:
            details: Dict[str, Any] = {"url": url}
            if isinstance(exc, httpx.HTTPStatusError):
                details["status_code"] = exc.response.status_code
            raise InvocationFetchError(
                wire.FETCH_ERROR_PREFIX + wire.describe_transport_error(exc), details=details
            ) from exc
        return wire.parse_next_invocation(response.headers.items(), response.content)

    def post_json(self, url: str, value: Any) -> None:
        """编码并上报 JSON（语义见 RuntimeTransport）。"""

        body = wire.encode_json(value)
        logger.debug("Posting %d bytes to %s", len(body), url)
        try:
            response = self._client.post(url, content=body, headers=dict(wire.json_headers(body)))
            response.raise_for_status()
        except HTTPX_ERRORS as exc:
            details: Dict[str, Any] = {"url": url}
            if isinstance(exc, httpx.HTTPStatusError):
                details["status_code"] = exc.response.status_code
            raise ResponsePostError(
                wire.POST_ERROR_PREFIX + wire.describe_transport_error(exc), details=details
            ) from exc

    def close(self) -> None:
        """关闭自己创建的 client；外部注入的 client 由调用方负责。"""

        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpxTransport":
        """支持 `with` 语句。"""

        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        """退出时释放资源。"""

        self.close()
