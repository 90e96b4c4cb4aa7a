"""支持 `python -m lambda_runtime`。"""

from __future__ import annotations

from lambda_runtime.cli.main import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
