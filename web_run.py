from __future__ import annotations

import os
import sys
from pathlib import Path


def _bootstrap_src() -> None:
    root = Path(__file__).resolve().parent
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def main() -> int:
    _bootstrap_src()

    for stream in (sys.stdout, sys.stderr):
        reconf = getattr(stream, "reconfigure", None)
        if callable(reconf):
            reconf(encoding="utf-8")

    import uvicorn

    host = os.environ.get("POOPSTER_HOST", "127.0.0.1")
    port = int(os.environ.get("POOPSTER_PORT", "8000"))
    uvicorn.run("poopster.webapp:app", host=host, port=port, reload=False)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
