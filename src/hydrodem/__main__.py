"""Module entrypoint for `python -m hydrodem`."""

from __future__ import annotations

from hydrodem.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
