"""按名称构造 transport（配置层与 runtime 之间的唯一接缝）。"""

from __future__ import annotations

from typing import Callable, Dict, Optional

from lambda_runtime.core.errors import RuntimeConfigError
from lambda_runtime.transport.httpx_client import HttpxTransport
from lambda_runtime.transport.per_call import PerCallTransport
from lambda_runtime.transport.protocol import RuntimeTransport
from lambda_runtime.transport.reuse import ReuseTransport

_TRANSPORTS: Dict[str, Callable[..., RuntimeTransport]] = {
    "per_call": PerCallTransport,
    "reuse": ReuseTransport,
    "httpx": HttpxTransport,
}


def transport_names() -> list[str]:
    """返回可用的 transport 名称（稳定排序）。"""

    return sorted(_TRANSPORTS)


def build_transport(name: str, *, max_redirects: int = 20, timeout_sec: Optional[float] = None) -> RuntimeTransport:
    """
    构造指定名称的 transport。

    异常：
    - RuntimeConfigError：未知名称
    """

    factory = _TRANSPORTS.get(str(name))
    if factory is None:
        raise RuntimeConfigError(
            f"unknown transport: {name!r} (expected one of {', '.join(transport_names())})",
            details={"transport": name},
        )
    return factory(max_redirects=max_redirects, timeout_sec=timeout_sec)
