"""
lambda-runtime CLI（run / config）。

约束：
- 使用 argparse（不引入第三方 CLI 依赖）
- `config` 子命令在 stdout 输出机器可读 JSON；`run` 的 stdout 留给 handler 使用
- exit code：0 正常结束；1 Runtime API 通信失败；2 配置 / handler 错误
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from lambda_runtime.bootstrap import resolve_handler, run_loop
from lambda_runtime.config.loader import load_runtime_config
from lambda_runtime.core.errors import LambdaRuntimeError, RuntimeApiError, RuntimeConfigError
from lambda_runtime.core.runtime import LambdaRuntime
from lambda_runtime.transport.factory import transport_names

logger = logging.getLogger("lambda_runtime.cli")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _dump_json_to_stdout(obj: Dict[str, Any], *, pretty: bool) -> None:
    """将 dict 输出为 JSON 到 stdout（末尾包含换行）。"""

    if pretty:
        text = json.dumps(obj, ensure_ascii=False, indent=2)
    else:
        text = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    print(text)


def _issue(exc: LambdaRuntimeError) -> Dict[str, Any]:
    """把结构化错误转换为 issue 对象（details 需可 JSON 序列化）。"""

    return {"code": exc.code, "message": exc.message, "details": json.loads(json.dumps(exc.details, default=str))}


def _build_parser() -> argparse.ArgumentParser:
    """构建 CLI argparse parser。"""

    parser = argparse.ArgumentParser(
        prog="lambda-runtime",
        description="Lambda Runtime API client（poll / execute / report）。",
    )
    root_sub = parser.add_subparsers(dest="command", required=True)

    def _add_common_flags(p: argparse.ArgumentParser) -> None:
        """为子命令添加公共 flags。"""

        p.add_argument("--config", action="append", default=[], help="Overlay config YAML path (repeatable).")
        p.add_argument("--transport", default=None, choices=transport_names(), help="Transport implementation.")
        p.add_argument("--timeout-sec", type=float, default=None, help="Per-request timeout (default: none).")

    run = root_sub.add_parser("run", help="Poll the Runtime API and dispatch invocations to a handler")
    _add_common_flags(run)
    run.add_argument("handler", nargs="?", default=None, help="Handler as module:function (default: $_HANDLER).")
    run.add_argument("--max-invocations", type=int, default=None, help="Stop after N invocations (>=1).")
    run.add_argument(
        "--log-level",
        type=str.upper,
        default="WARNING",
        choices=LOG_LEVELS,
        help="Logging level (default: WARNING).",
    )

    cfg = root_sub.add_parser("config", help="Print the resolved runtime config as JSON")
    _add_common_flags(cfg)
    cfg.add_argument("--pretty", action="store_true", help="Pretty-print JSON output.")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """CLI 参数 → 配置覆盖项。"""

    return {"transport": args.transport, "timeout_sec": args.timeout_sec}


def _handle_config(args: argparse.Namespace) -> int:
    """输出合并后的配置。"""

    try:
        config = load_runtime_config([Path(p) for p in args.config], overrides=_overrides(args))
    except RuntimeConfigError as exc:
        _dump_json_to_stdout({"ok": False, "issues": [_issue(exc)]}, pretty=bool(args.pretty))
        return 2
    _dump_json_to_stdout({"ok": True, "config": config.model_dump()}, pretty=bool(args.pretty))
    return 0


def _handle_run(args: argparse.Namespace) -> int:
    """解析配置与 handler，然后进入循环。"""

    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
    if args.max_invocations is not None and args.max_invocations < 1:
        print("error: --max-invocations must be >= 1", file=sys.stderr)
        return 2

    try:
        config = load_runtime_config([Path(p) for p in args.config], overrides=_overrides(args))
        handler = resolve_handler(args.handler)
    except RuntimeConfigError as exc:
        # 脱离托管环境（或 handler 无效）时拒绝启动
        print(f"error: {exc}", file=sys.stderr)
        return 2

    with LambdaRuntime.from_config(config) as runtime:
        try:
            run_loop(runtime, handler, max_invocations=args.max_invocations)
        except RuntimeApiError:
            logger.exception("Runtime API call failed; stopping the invocation loop")
            return 1
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    CLI 入口函数（用于 console_scripts 与测试）。

    参数：
    - argv：命令行参数列表（不含程序名）；为 None 时读取 sys.argv[1:]。

    返回：
    - int：exit code（不会直接 sys.exit，便于测试）。
    """

    parser = _build_parser()
    try:
        args = parser.parse_args(list(argv) if argv is not None else None)
    except SystemExit as exc:
        # argparse：`--help` 为 0，参数错误为 2
        code = getattr(exc, "code", 2)
        if code is None:
            return 2
        return int(code)

    if args.command == "config":
        return _handle_config(args)
    return _handle_run(args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
