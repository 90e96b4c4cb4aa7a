"""Runtime 配置（pydantic schema + YAML/env 加载）。"""
