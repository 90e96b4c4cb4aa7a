"""
Fake transport（离线回归夹具）。

用途：
- 在不启动 mock Runtime API 的情况下回归 LambdaRuntime 的编排逻辑（fetch → handler → report）。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from lambda_runtime.core.errors import RuntimeApiError
from lambda_runtime.core.invocation import InvocationRequest
from lambda_runtime.transport import wire


@dataclass(frozen=True)
class FakeCall:
    """transport 收到的一次调用记录（method=GET/POST）。"""

    method: str
    url: str
    body: Any = None


class FakeTransport:
    """
    用脚本化序列模拟 Runtime API。

    说明：
    - `invocations`：每次 `wait_next_invocation` 消耗一个条目；条目为异常实例时直接抛出；
    - `post_failures`：按 POST 顺序消耗；条目为异常实例时该次 POST 抛出，None 表示成功；
    - POST 前仍会走真实的 `wire.encode_json`，保证编码失败语义与真实 transport 一致。
    """

    def __init__(
        self,
        invocations: Sequence[Union[InvocationRequest, RuntimeApiError]],
        *,
        post_failures: Optional[Sequence[Optional[RuntimeApiError]]] = None,
    ) -> None:
        """
        参数：
        - `invocations`：预设的 fetch 结果序列
        - `post_failures`：预设的 POST 结果序列（可选，缺省全部成功）
        """

        self._invocations = list(invocations)
        self._post_failures = list(post_failures or [])
        self.calls: List[FakeCall] = []
        self.closed = False

    def wait_next_invocation(self, url: str) -> InvocationRequest:
        """返回下一个预设 invocation。"""

        self.calls.append(FakeCall(method="GET", url=url))
        if not self._invocations:
            raise ValueError("FakeTransport has no scripted invocations left")
        item = self._invocations.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def post_json(self, url: str, value: Any) -> None:
        """记录 POST；必要时按脚本抛出错误。"""

        wire.encode_json(value)
        self.calls.append(FakeCall(method="POST", url=url, body=value))
        failure = self._post_failures.pop(0) if self._post_failures else None
        if failure is not None:
            raise failure

    def close(self) -> None:
        """标记已关闭。"""

        self.closed = True
