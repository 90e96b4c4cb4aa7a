"""
Runtime API transports。

三种实现语义一致，只在连接资源的生命周期上不同：
- PerCallTransport：每次调用新建连接（默认）
- ReuseTransport：fetch / post 各自复用一个连接，失败时重建
- HttpxTransport：委托给 httpx.Client
"""

from __future__ import annotations

from lambda_runtime.transport.factory import build_transport, transport_names
from lambda_runtime.transport.fake import FakeCall, FakeTransport
from lambda_runtime.transport.httpx_client import HttpxTransport
from lambda_runtime.transport.per_call import PerCallTransport
from lambda_runtime.transport.protocol import RuntimeTransport
from lambda_runtime.transport.reuse import ReuseTransport

__all__ = [
    "FakeCall",
    "FakeTransport",
    "HttpxTransport",
    "PerCallTransport",
    "ReuseTransport",
    "RuntimeTransport",
    "build_transport",
    "transport_names",
]
