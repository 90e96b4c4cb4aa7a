from __future__ import annotations

import ast
from pathlib import Path
from typing import Iterator, Tuple

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"

_DEF_NODES = (ast.ClassDef, ast.FunctionDef, ast.AsyncFunctionDef)


def _iter_defs_without_docstring(py_path: Path) -> Iterator[Tuple[int, str]]:
    tree = ast.parse(py_path.read_text(encoding="utf-8"), filename=str(py_path))
    for node in ast.walk(tree):
        if isinstance(node, _DEF_NODES) and ast.get_docstring(node) is None:
            yield node.lineno, node.name


def test_every_def_under_src_has_a_docstring() -> None:
    """
    Docstring 护栏：`src/` 下每个 class / def（含嵌套定义）都必须有 docstring。
    """

    missing = []
    for py_path in sorted(SRC_ROOT.rglob("*.py")):
        if "__pycache__" in py_path.parts:
            continue
        for lineno, name in _iter_defs_without_docstring(py_path):
            missing.append(f"- {py_path.relative_to(SRC_ROOT.parent)}:{lineno} {name}")

    assert not missing, "missing docstrings:\n" + "\n".join(missing)


def test_every_package_module_has_a_module_docstring() -> None:
    bare = [
        str(p.relative_to(SRC_ROOT.parent))
        for p in sorted(SRC_ROOT.rglob("*.py"))
        if "__pycache__" not in p.parts and ast.get_docstring(ast.parse(p.read_text(encoding="utf-8"))) is None
    ]
    assert bare == []
