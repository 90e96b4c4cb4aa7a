"""
Transport 协议：RuntimeTransport。

设计目标：
- runtime 只依赖这两个操作（拉取 / 上报），连接生命周期差异全部留在实现内部；
- 所有实现只允许抛出 `lambda_runtime.core.errors` 中的 RuntimeApiError 子类，
  不得把 `httpcore` / `httpx` 的异常类型泄漏给上层。
"""

from __future__ import annotations

import inspect
from typing import Any, Protocol

from lambda_runtime.core.invocation import InvocationRequest


class RuntimeTransport(Protocol):
    """
    Runtime API transport 抽象（同步、阻塞）。
    """

    def wait_next_invocation(self, url: str) -> InvocationRequest:
        """
        阻塞 GET `url`，直到 Runtime API 下发下一次 invocation。

        约束：
        - 跟随重定向；非 2xx 视为 InvocationFetchError；
        - 缺少 invocation id → MissingInvocationIdError；body 为空 → EmptyResponseBodyError。
        """

        ...

    def post_json(self, url: str, value: Any) -> None:
        """
        把 `value` 编码为 JSON 后 POST 到 `url`。

        约束：
        - 编码失败 → SerializationError（不发出请求）；
        - 网络错误或非 2xx → ResponsePostError。
        """

        ...

    def close(self) -> None:
        """释放持有的连接资源（幂等，不抛异常）。"""

        ...


def _validate_transport_protocol(transport: Any) -> None:
    """
    校验 RuntimeTransport 协议（fail-fast）。

    约束：
    - 必须提供可调用的 `wait_next_invocation(url)` 与 `post_json(url, value)`；
    - `close` 可缺省（无状态实现），但若存在必须可调用。

    异常：
    - ValueError：协议不匹配
    """

    for name, arity in (("wait_next_invocation", 1), ("post_json", 2)):
        fn = getattr(transport, name, None)
        if not callable(fn):
            raise ValueError(f"RuntimeTransport protocol mismatch: missing {name}()")
        try:
            sig = inspect.signature(fn)
        except (TypeError, ValueError):
            # 无法 introspect（例如 C 实现）时只要求可调用
            continue
        positional = [
            p
            for p in sig.parameters.values()
            if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
        ]
        has_varargs = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in sig.parameters.values())
        if len(positional) < arity and not has_varargs:
            raise ValueError(f"RuntimeTransport.{name} must accept {arity} positional argument(s)")

    close = getattr(transport, "close", None)
    if close is not None and not callable(close):
        raise ValueError("RuntimeTransport.close must be callable")
