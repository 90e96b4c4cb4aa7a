"""
Runtime API wire 细节（与具体 HTTP 客户端无关的部分）。

包含：
- URL 拼接（next / response / error）
- `/invocation/next` 响应 → InvocationRequest 的解析
- JSON 编码（失败时抛 SerializationError，不做任何网络 I/O）
"""

from __future__ import annotations

import json
from typing import Any, Iterable, List, Optional, Tuple, Union

import httpx

from lambda_runtime.core.errors import (
    EmptyResponseBodyError,
    InvalidPayloadError,
    MissingInvocationIdError,
    SerializationError,
)
from lambda_runtime.core.invocation import InvocationRequest

API_VERSION = "2018-06-01"
INVOCATION_ID_HEADER = "lambda-runtime-aws-request-id"

FETCH_ERROR_PREFIX = "Failed to fetch next Lambda invocation: "
POST_ERROR_PREFIX = "Error while calling the Lambda runtime API: "
ENCODE_ERROR_PREFIX = "Failed encoding Lambda JSON response: "

_HeaderValue = Union[str, bytes]


def next_invocation_url(api_endpoint: str) -> str:
    """返回 `GET /invocation/next` 的完整 URL。"""

    return f"http://{api_endpoint}/{API_VERSION}/runtime/invocation/next"


def response_url(api_endpoint: str, invocation_id: str) -> str:
    """返回成功上报 URL。"""

    return f"http://{api_endpoint}/{API_VERSION}/runtime/invocation/{invocation_id}/response"


def error_url(api_endpoint: str, invocation_id: str) -> str:
    """返回失败上报 URL。"""

    return f"http://{api_endpoint}/{API_VERSION}/runtime/invocation/{invocation_id}/error"


def status_detail(status_code: int) -> str:
    """把 HTTP status 渲染为 `404 Not Found` 形式（用于错误消息）。"""

    phrase = httpx.codes.get_reason_phrase(int(status_code))
    return f"{status_code} {phrase}".strip()


def is_success(status_code: int) -> bool:
    """仅 2xx 视为成功。"""

    return 200 <= int(status_code) <= 299


def _as_text(value: _HeaderValue) -> str:
    """header 名/值可能是 bytes（httpcore）或 str（httpx），统一为 str。"""

    if isinstance(value, bytes):
        return value.decode("latin-1")
    return str(value)


def find_invocation_id(headers: Iterable[Tuple[_HeaderValue, _HeaderValue]]) -> Optional[str]:
    """
    在 header 列表里查找 invocation id（大小写不敏感，值去掉首尾空白）。

    返回：
    - 找到且非空时返回 id；否则返回 None。重复出现时以最后一个为准。
    """

    found: Optional[str] = None
    for name, value in headers:
        if _as_text(name).strip().lower() == INVOCATION_ID_HEADER:
            found = _as_text(value).strip()
    return found or None


def parse_next_invocation(
    headers: Iterable[Tuple[_HeaderValue, _HeaderValue]], body: bytes
) -> InvocationRequest:
    """
    把一个 2xx 的 `/invocation/next` 响应解析为 InvocationRequest。

    异常：
    - MissingInvocationIdError：缺少或为空的 `Lambda-Runtime-Aws-Request-Id`
    - EmptyResponseBodyError：body 为空
    - InvalidPayloadError：body 不是合法 JSON（携带已拿到的 invocation id）
    """

    invocation_id = find_invocation_id(headers)
    if invocation_id is None:
        raise MissingInvocationIdError()
    if not body:
        raise EmptyResponseBodyError(details={"invocation_id": invocation_id})
    try:
        payload = json.loads(body)
    except ValueError as exc:
        # JSONDecodeError / UnicodeDecodeError 都是 ValueError
        raise InvalidPayloadError(
            f"Failed decoding Lambda JSON event: {exc}", invocation_id=invocation_id
        ) from exc
    return InvocationRequest(invocation_id=invocation_id, payload=payload)


def encode_json(value: Any) -> bytes:
    """
    把待上报的值编码为 UTF-8 JSON bytes。

    约束：
    - NaN/Infinity 不是合法 JSON，直接拒绝（allow_nan=False）；
    - bytes 与非法 surrogate 字符串都视为“无效文本编码”；
    - 嵌套过深的值同样拒绝（RecursionError）。

    异常：
    - SerializationError：消息以 `Failed encoding Lambda JSON response: ` 开头
    """

    try:
        return json.dumps(value, ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as exc:
        # UnicodeEncodeError 是 ValueError 的子类
        raise SerializationError(f"{ENCODE_ERROR_PREFIX}{_describe_encode_error(exc)}") from exc


def _describe_encode_error(exc: Exception) -> str:
    """把编码异常转换为一句简短原因。"""

    if isinstance(exc, UnicodeEncodeError):
        return "Malformed UTF-8 characters, possibly incorrectly encoded"
    return str(exc) or type(exc).__name__


def json_headers(body: bytes) -> List[Tuple[str, str]]:
    """POST 上报使用的固定 header（Content-Length 为 body 的精确字节数）。"""

    return [("Content-Type", "application/json"), ("Content-Length", str(len(body)))]


def describe_transport_error(exc: BaseException) -> str:
    """HTTP 客户端异常的可读描述；空消息时回退为类名。"""

    return str(exc) or type(exc).__name__
