"""Module entry point: python -m patrol_verify ..."""

from __future__ import annotations

from patrol_verify.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
