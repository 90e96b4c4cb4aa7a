"""
Runtime 错误分类（异常类型）。

说明：
- transport 层把 `httpcore` / `httpx` 的异常统一归一化为下列类型，上层只按这里的类型做决策；
- `code` 为稳定错误码（英文大写下划线），`str(exc)` 只返回可读消息（会原样写入 `errorMessage`）。
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LambdaRuntimeError(Exception):
    """Runtime 内部错误基类（不建议直接抛出）。"""

    code = "LAMBDA_RUNTIME_ERROR"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        """
        创建错误。

        参数：
        - `message`：英文可读消息（不带错误码前缀）
        - `details`：结构化上下文（例如 status_code / url），仅用于日志与断言
        """

        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})


class RuntimeConfigError(LambdaRuntimeError):
    """配置错误（endpoint 为空、transport 名称未知等），启动阶段 fail-fast。"""

    code = "CONFIG_ERROR"


class MissingRequiredEnvVarError(RuntimeConfigError):
    """
    缺失 required env var。

    说明：
    - 只携带缺失的变量名，不携带任何 env value。
    """

    code = "MISSING_ENV_VAR"

    def __init__(self, name: str) -> None:
        """创建异常；`name` 为缺失的环境变量名。"""

        self.name = str(name)
        super().__init__(f"missing required env var: {self.name}", details={"env_var": self.name})


class HandlerResolutionError(RuntimeConfigError):
    """无法把 `module:function` 解析为可调用对象。"""

    code = "HANDLER_RESOLUTION_ERROR"


class RuntimeApiError(LambdaRuntimeError):
    """与 Runtime API 通信失败的基类（fetch / post 两条路径共用）。"""

    code = "RUNTIME_API_ERROR"


class InvocationFetchError(RuntimeApiError):
    """拉取下一次 invocation 失败（网络错误或非 2xx）；本轮循环不可恢复。"""

    code = "INVOCATION_FETCH_ERROR"


class MissingInvocationIdError(RuntimeApiError):
    """响应缺少 `Lambda-Runtime-Aws-Request-Id`（协议违例，不是瞬时故障）。"""

    code = "MISSING_INVOCATION_ID"

    def __init__(self, message: str = "Failed to determine the Lambda invocation ID", **kwargs: Any) -> None:
        """使用固定消息创建。"""

        super().__init__(message, **kwargs)


class EmptyResponseBodyError(RuntimeApiError):
    """`/invocation/next` 响应 body 为空（协议违例）。"""

    code = "EMPTY_RESPONSE_BODY"

    def __init__(self, message: str = "Empty Lambda runtime API response", **kwargs: Any) -> None:
        """使用固定消息创建。"""

        super().__init__(message, **kwargs)


class SerializationError(RuntimeApiError):
    """待上报的值无法编码为 JSON（在任何网络 I/O 之前抛出）。"""

    code = "SERIALIZATION_ERROR"


class ResponsePostError(RuntimeApiError):
    """上报 response/error 时网络错误或非 2xx。"""

    code = "RESPONSE_POST_ERROR"


class InvalidPayloadError(RuntimeApiError):
    """
    `/invocation/next` 返回了 invocation id，但 body 不是合法 JSON。

    说明：
    - 与其它 fetch 错误不同，此时已经拿到 invocation id，runtime 会把它上报到 `/error`，
      保证“每个拉取到的 invocation 都有一次上报”。
    """

    code = "INVALID_PAYLOAD"

    def __init__(self, message: str, *, invocation_id: str, **kwargs: Any) -> None:
        """创建异常；`invocation_id` 为本次响应头里的关联 id。"""

        super().__init__(message, **kwargs)
        self.invocation_id = invocation_id
