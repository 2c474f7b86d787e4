"""Terminal output helpers shared by the CLI commands."""

from __future__ import annotations

import sys

RULE_WIDTH = 60


def info(msg: str) -> None:
    print(f"  [INFO] {msg}")


def warn(msg: str) -> None:
    print(f"  [WARN] {msg}")


def error(msg: str) -> None:
    print(f"  [ERROR] {msg}", file=sys.stderr)


def ok(msg: str) -> None:
    print(f"  ✓ {msg}")


def item(msg: str, marker: str = "-") -> None:
    print(f"    {marker} {msg}")


def banner(title: str) -> None:
    print(f"\n{'=' * RULE_WIDTH}")
    print(f"  {title}")
    print(f"{'=' * RULE_WIDTH}\n")
