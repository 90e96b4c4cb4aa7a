"""
Bootstrap Layer（handler 解析 + 循环驱动）。

设计目标：
- LambdaRuntime 本身只处理一个 invocation；这里提供“一直循环”的外层；
- handler 以 `package.module:function`（或 Lambda 风格 `module.function`）指定，
  缺省时读取 `_HANDLER` 环境变量。
"""

from __future__ import annotations

import importlib
import logging
import os
from typing import Any, Callable, Mapping, Optional

from lambda_runtime.core.errors import HandlerResolutionError
from lambda_runtime.core.runtime import LambdaRuntime

logger = logging.getLogger(__name__)

ENV_HANDLER = "_HANDLER"


def _split_handler_ref(handler_ref: str) -> tuple[str, str]:
    """把 handler 描述拆成 (module, attribute path)。"""

    s = handler_ref.strip()
    if ":" in s:
        module_name, _, attr = s.partition(":")
    else:
        module_name, _, attr = s.rpartition(".")
    if not module_name or not attr:
        raise HandlerResolutionError(
            f"invalid handler {handler_ref!r}: expected 'module:function' or 'module.function'",
            details={"handler": handler_ref},
        )
    return module_name, attr


def resolve_handler(handler_ref: Optional[str] = None, *, env: Optional[Mapping[str, str]] = None) -> Callable[[Any], Any]:
    """
    把 handler 描述解析为可调用对象。

    参数：
    - handler_ref：`module:function`；为空时读取 `_HANDLER`
    - env：环境变量映射（默认 `os.environ`）

    异常：
    - HandlerResolutionError：未指定、模块导入失败、属性不存在或不可调用
    """

    raw = handler_ref if handler_ref is not None else (os.environ if env is None else env).get(ENV_HANDLER)
    if raw is None or not str(raw).strip():
        raise HandlerResolutionError(f"no handler given and {ENV_HANDLER} is not set")

    module_name, attr = _split_handler_ref(str(raw))
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise HandlerResolutionError(
            f"cannot import handler module {module_name!r}: {exc}", details={"handler": raw}
        ) from exc
    for part in attr.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise HandlerResolutionError(
                f"handler {raw!r} not found in module {module_name!r}", details={"handler": raw}
            ) from exc
    if not callable(obj):
        raise HandlerResolutionError(f"handler {raw!r} is not callable", details={"handler": raw})
    return obj


def run_loop(
    runtime: LambdaRuntime,
    handler: Callable[[Any], Any],
    *,
    max_invocations: Optional[int] = None,
) -> int:
    """
    串行驱动 `process_next_event`。

    参数：
    - max_invocations：可选；处理满 N 次后返回（缺省无限循环）

    返回：
    - 已处理的 invocation 数

    说明：
    - 任一轮抛出的异常（拉取失败、`/error` 上报失败）原样向上抛，由调用方决定进程去留。
    """

    processed = 0
    while max_invocations is None or processed < max_invocations:
        runtime.process_next_event(handler)
        processed += 1
    logger.debug("Processed %d invocation(s)", processed)
    return processed
