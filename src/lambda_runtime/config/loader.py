"""
配置加载器（defaults → YAML overlays → 环境变量）。

设计目标：
- 使用 pydantic 做 schema 校验；默认拒绝未知字段（避免拼写错误被静默吞掉）；
- 多个 YAML 按顺序深度合并（后者覆盖前者），环境变量最后覆盖；
- 缺失 `AWS_LAMBDA_RUNTIME_API` 属于启动期致命错误（脱离托管环境时 runtime 没有意义）。
"""

from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Iterable, Literal, Mapping, MutableMapping, Optional

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from lambda_runtime.core.errors import MissingRequiredEnvVarError, RuntimeConfigError

ENV_API_ENDPOINT = "AWS_LAMBDA_RUNTIME_API"
ENV_TRANSPORT = "LAMBDA_RUNTIME_TRANSPORT"
ENV_TIMEOUT_SEC = "LAMBDA_RUNTIME_TIMEOUT_SEC"

TransportName = Literal["per_call", "reuse", "httpx"]


class RuntimeConfig(BaseModel):
    """Runtime 配置（最小集合）。"""

    model_config = ConfigDict(extra="forbid")

    api_endpoint: str
    transport: TransportName = "per_call"
    # None 表示不设超时：`/invocation/next` 是长轮询，任何超时策略都属于部署侧决定
    timeout_sec: Optional[float] = Field(default=None, gt=0)
    max_redirects: int = Field(default=20, ge=0)

    @field_validator("api_endpoint")
    @classmethod
    def _endpoint_nonempty(cls, value: str) -> str:
        """endpoint 为 `host:port`，不允许为空、带 scheme 或端口非法。"""

        v = str(value).strip()
        if not v:
            raise ValueError("api_endpoint must be a non-empty host:port")
        if "://" in v:
            raise ValueError("api_endpoint must be host:port without a scheme")
        try:
            httpx.URL(f"http://{v}/")
        except httpx.InvalidURL as exc:
            raise ValueError(f"api_endpoint is not a valid host:port: {exc}") from exc
        return v


def _deep_merge(base: MutableMapping[str, Any], overlay: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """
    深度合并两个 dict（overlay 覆盖 base）。

    合并规则：
    - dict + dict：递归合并
    - 其它类型：overlay 直接覆盖
    """

    for key, overlay_value in overlay.items():
        if key in base and isinstance(base[key], dict) and isinstance(overlay_value, Mapping):
            _deep_merge(base[key], overlay_value)  # type: ignore[arg-type]
            continue
        base[key] = deepcopy(overlay_value)
    return base


def _get_env_nonempty(key: str, env: Mapping[str, str]) -> Optional[str]:
    """读取 env 并返回非空白字符串（否则视为未设置）。"""

    v = env.get(key)
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def load_yaml_overlay(path: Path) -> Dict[str, Any]:
    """
    读取单个 YAML overlay。

    异常：
    - RuntimeConfigError：文件不存在、YAML 语法错误或顶层不是 mapping
    """

    p = Path(path)
    try:
        obj = yaml.safe_load(p.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeConfigError(f"cannot read config file: {p}", details={"path": str(p)}) from exc
    except yaml.YAMLError as exc:
        raise RuntimeConfigError(f"invalid YAML in config file: {p}", details={"path": str(p)}) from exc
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise RuntimeConfigError(f"config file must contain a mapping: {p}", details={"path": str(p)})
    # 允许顶层使用 `runtime:` 命名空间
    inner = obj.get("runtime") if set(obj.keys()) == {"runtime"} else obj
    return dict(inner or {})


def _env_overlay(env: Mapping[str, str]) -> Dict[str, Any]:
    """把环境变量转换为 overlay dict（仅包含已设置的项）。"""

    out: Dict[str, Any] = {}
    endpoint = _get_env_nonempty(ENV_API_ENDPOINT, env)
    if endpoint is not None:
        out["api_endpoint"] = endpoint
    transport = _get_env_nonempty(ENV_TRANSPORT, env)
    if transport is not None:
        out["transport"] = transport
    timeout = _get_env_nonempty(ENV_TIMEOUT_SEC, env)
    if timeout is not None:
        out["timeout_sec"] = timeout
    return out


def load_runtime_config(
    config_paths: Iterable[Path] = (),
    *,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RuntimeConfig:
    """
    按 defaults → YAML overlays → env → overrides 的顺序加载配置。

    参数：
    - config_paths：YAML 文件列表（按顺序合并）
    - env：环境变量映射（默认 `os.environ`）
    - overrides：调用方显式覆盖（例如 CLI 参数；值为 None 的项忽略）

    异常：
    - MissingRequiredEnvVarError：所有来源都没有提供 api_endpoint
    - RuntimeConfigError：schema 校验失败
    """

    merged: Dict[str, Any] = {}
    for p in config_paths:
        _deep_merge(merged, load_yaml_overlay(Path(p)))
    _deep_merge(merged, _env_overlay(os.environ if env is None else env))
    _deep_merge(merged, {k: v for k, v in (overrides or {}).items() if v is not None})

    if not str(merged.get("api_endpoint") or "").strip():
        raise MissingRequiredEnvVarError(ENV_API_ENDPOINT)
    try:
        return RuntimeConfig.model_validate(merged)
    except ValidationError as exc:
        raise RuntimeConfigError(f"invalid runtime config: {exc}", details={"errors": exc.errors()}) from exc
