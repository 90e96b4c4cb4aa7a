"""
Invocation 数据模型：InvocationRequest / InvocationSuccess / InvocationFailure。

说明：
- InvocationRequest 由 transport 在 `/invocation/next` 响应上构造，只被 runtime 消费一次；
- InvocationFailure 的 `to_payload()` 即 `/invocation/{id}/error` 的 wire body。
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union


@dataclass(frozen=True)
class InvocationRequest:
    """
    一次已拉取的 invocation。

    字段：
    - invocation_id：关联 id（来自 `Lambda-Runtime-Aws-Request-Id`，非空、不透明）
    - payload：JSON 解码后的事件（不做 schema 校验，原样透传给 handler）
    """

    invocation_id: str
    payload: Any

    def __post_init__(self) -> None:
        """校验 invocation_id 非空。"""

        if not isinstance(self.invocation_id, str) or not self.invocation_id:
            raise ValueError("invocation_id must be a non-empty string")


@dataclass(frozen=True)
class InvocationSuccess:
    """handler 正常返回的结果。"""

    payload: Any


@dataclass(frozen=True)
class InvocationFailure:
    """
    handler 或成功上报失败后得到的结构化错误。

    字段：
    - message：错误描述（即 `errorMessage`，不带 `Uncaught` 前缀）
    - kind：错误类别名（即 `errorType`，取异常类名）
    - trace：调用栈，每帧一行，最内层在前
    - file/line：最内层帧的位置（best-effort，拿不到时为空串 / 0）
    """

    message: str
    kind: str
    trace: List[str] = field(default_factory=list)
    file: str = ""
    line: int = 0

    @classmethod
    def from_exception(cls, exc: BaseException) -> "InvocationFailure":
        """
        从异常构造 InvocationFailure。

        约束：
        - message 不能为空：`str(exc)` 为空时回退为类名；
        - trace 末尾固定追加 `{main}` 帧，与 file/line 一样只是诊断信息。
        """

        kind = type(exc).__name__
        message = str(exc) or kind
        frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ is not None else []

        trace: List[str] = []
        for idx, fr in enumerate(reversed(frames)):
            trace.append(f"#{idx} {fr.filename}({fr.lineno}): {fr.name}()")
        trace.append(f"#{len(trace)} {{main}}")

        file = ""
        line = 0
        if frames:
            file = frames[-1].filename
            line = int(frames[-1].lineno or 0)
        return cls(message=message, kind=kind, trace=trace, file=file, line=line)

    def to_payload(self) -> Dict[str, Any]:
        """转换为 `/error` 上报 body（稳定字段名）。"""

        return {
            "errorMessage": self.message,
            "errorType": self.kind,
            "stackTrace": list(self.trace),
        }

    def format_fatal_error(self) -> str:
        """
        渲染为写往诊断输出流的固定格式文本。

        格式：
        `Fatal error: Uncaught <kind>: <message> in <file>:<line>\\nStack trace:\\n<trace>`
        """

        trace_text = "\n".join(self.trace)
        return (
            f"Fatal error: Uncaught {self.kind}: {self.message} in {self.file}:{self.line}\n"
            f"Stack trace:\n{trace_text}"
        )


InvocationOutcome = Union[InvocationSuccess, InvocationFailure]
