"""
LambdaRuntime：Runtime API 的 poll / execute / report 循环单元。

职责：
- 每次 `process_next_event(handler)` 恰好处理一个 invocation：
  拉取 → 调用 handler → 上报 response；handler 或上报失败时改为上报 error；
- 只依赖 RuntimeTransport 协议，不感知具体 HTTP 客户端；
- 严格串行：在当前 invocation 上报结束前不会拉取下一个。

它刻意保持很薄：冷启动时这段代码在用户代码之前执行。
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Mapping, Optional, TextIO

from lambda_runtime.config.loader import RuntimeConfig, load_runtime_config
from lambda_runtime.core.errors import InvalidPayloadError, RuntimeConfigError
from lambda_runtime.core.invocation import InvocationFailure, InvocationSuccess
from lambda_runtime.transport import wire
from lambda_runtime.transport.factory import build_transport
from lambda_runtime.transport.per_call import PerCallTransport
from lambda_runtime.transport.protocol import RuntimeTransport, _validate_transport_protocol

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]


class LambdaRuntime:
    """
    Runtime API client。

    用法：

        runtime = LambdaRuntime.from_environment()
        while True:
            runtime.process_next_event(lambda event: {"hello": event["name"]})
    """

    def __init__(
        self,
        api_endpoint: str,
        transport: Optional[RuntimeTransport] = None,
        *,
        diagnostic_stream: Optional[TextIO] = None,
    ) -> None:
        """
        创建 runtime。

        参数：
        - api_endpoint：Runtime API 的 `host:port`
        - transport：可选；缺省为 PerCallTransport
        - diagnostic_stream：可选；`Fatal error:` 诊断文本的输出流（缺省 `sys.stderr`）

        异常：
        - RuntimeConfigError：endpoint 为空
        - ValueError：transport 不满足 RuntimeTransport 协议
        """

        if not api_endpoint or not str(api_endpoint).strip():
            raise RuntimeConfigError("At the moment lambdas can only be executed in an Lambda environment")
        self._api_endpoint = str(api_endpoint).strip()
        if transport is None:
            transport = PerCallTransport()
        _validate_transport_protocol(transport)
        self._transport = transport
        self._diagnostic_stream = diagnostic_stream

    @classmethod
    def from_config(cls, config: RuntimeConfig, *, diagnostic_stream: Optional[TextIO] = None) -> "LambdaRuntime":
        """按 RuntimeConfig 构造 runtime（transport 由配置选择）。"""

        transport = build_transport(
            config.transport, max_redirects=config.max_redirects, timeout_sec=config.timeout_sec
        )
        return cls(config.api_endpoint, transport, diagnostic_stream=diagnostic_stream)

    @classmethod
    def from_environment(cls, env: Optional[Mapping[str, str]] = None) -> "LambdaRuntime":
        """
        从环境变量构造 runtime（`AWS_LAMBDA_RUNTIME_API` 必填）。

        异常：
        - MissingRequiredEnvVarError：未设置 endpoint
        """

        return cls.from_config(load_runtime_config(env=env))

    @property
    def api_endpoint(self) -> str:
        """Runtime API 的 `host:port`。"""

        return self._api_endpoint

    @property
    def transport(self) -> RuntimeTransport:
        """当前使用的 transport。"""

        return self._transport

    def process_next_event(self, handler: Handler) -> None:
        """
        处理下一个 invocation。

        语义：
        - 拉取失败直接向上抛（此时没有 invocation id，无处上报）；
        - handler 抛错，或 response 上报失败（含编码失败），都会转换为一次 `/error` 上报；
        - `/error` 上报本身失败时向上抛，不再兜底。

        参数：
        - handler：接收 JSON 解码后的事件，返回可 JSON 编码的结果
        """

        try:
            invocation = self._transport.wait_next_invocation(wire.next_invocation_url(self._api_endpoint))
        except InvalidPayloadError as exc:
            # 已拿到 invocation id：不能静默丢弃，必须上报
            self._signal_failure(exc.invocation_id, exc)
            return

        logger.debug("Processing invocation %s", invocation.invocation_id)
        try:
            outcome = InvocationSuccess(handler(invocation.payload))
            self._send_response(invocation.invocation_id, outcome.payload)
        except Exception as exc:
            self._signal_failure(invocation.invocation_id, exc)

    def _send_response(self, invocation_id: str, response_data: Any) -> None:
        """上报 handler 的返回值。"""

        self._transport.post_json(wire.response_url(self._api_endpoint, invocation_id), response_data)

    def _signal_failure(self, invocation_id: str, error: BaseException) -> None:
        """
        记录诊断输出并上报 `/error`。

        说明：
        - 诊断文本写往 diagnostic_stream（托管环境据此采集日志），与 logging 配置无关；
        - 这里的异常不捕获。
        """

        failure = InvocationFailure.from_exception(error)
        stream = self._diagnostic_stream if self._diagnostic_stream is not None else sys.stderr
        stream.write(failure.format_fatal_error() + "\n")
        stream.flush()

        logger.debug("Reporting failure for invocation %s: %s", invocation_id, failure.kind)
        self._transport.post_json(wire.error_url(self._api_endpoint, invocation_id), failure.to_payload())

    def close(self) -> None:
        """释放 transport 持有的资源。"""

        close = getattr(self._transport, "close", None)
        if callable(close):
            close()

    def __enter__(self) -> "LambdaRuntime":
        """支持 `with` 语句。"""

        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        """退出时关闭 transport。"""

        self.close()
