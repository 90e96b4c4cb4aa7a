"""
Lambda Runtime API client（Python）。

说明：
- LambdaRuntime：poll / execute / report 循环单元（一次处理一个 invocation）
- transports：PerCallTransport / ReuseTransport / HttpxTransport（同一协议，不同连接生命周期）
- 错误分类见 `lambda_runtime.core.errors`
"""

from __future__ import annotations

from lambda_runtime.core.errors import (
    EmptyResponseBodyError,
    InvalidPayloadError,
    InvocationFetchError,
    LambdaRuntimeError,
    MissingInvocationIdError,
    ResponsePostError,
    RuntimeApiError,
    SerializationError,
)
from lambda_runtime.core.invocation import InvocationFailure, InvocationRequest, InvocationSuccess
from lambda_runtime.core.runtime import LambdaRuntime
from lambda_runtime.transport import HttpxTransport, PerCallTransport, ReuseTransport, RuntimeTransport

__all__ = [
    "EmptyResponseBodyError",
    "HttpxTransport",
    "InvalidPayloadError",
    "InvocationFailure",
    "InvocationFetchError",
    "InvocationRequest",
    "InvocationSuccess",
    "LambdaRuntime",
    "LambdaRuntimeError",
    "MissingInvocationIdError",
    "PerCallTransport",
    "ResponsePostError",
    "ReuseTransport",
    "RuntimeApiError",
    "RuntimeTransport",
    "SerializationError",
    "__version__",
]

__version__ = "0.1.0"
