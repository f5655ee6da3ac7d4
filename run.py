from __future__ import annotations

import sys
from pathlib import Path


def _bootstrap_src() -> None:
    root = Path(__file__).resolve().parent
    src = root / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


def _utf8_console() -> None:
    # Emoji in event lines need a UTF-8 console on Windows.
    for stream in (sys.stdout, sys.stderr):
        reconf = getattr(stream, "reconfigure", None)
        if callable(reconf):
            reconf(encoding="utf-8")


def main() -> int:
    _bootstrap_src()
    _utf8_console()

    from poopster.main import main as game_main

    return game_main()


if __name__ == "__main__":
    raise SystemExit(main())
