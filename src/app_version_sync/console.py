"""
控制台输出：流程阶段提示走 stdout，错误与提示走 stderr。
"""

from __future__ import annotations

import sys

from .types import Diagnostic

PREFIX = "[app-version-sync]"


def log_step(message: str, *, quiet: bool = False) -> None:
    """输出简洁的流程阶段提示；`quiet` 时不输出。"""
    if quiet:
        return
    print(f"{PREFIX} {message}")


def log_error(message: str) -> None:
    print(f"{PREFIX} Error: {message}", file=sys.stderr)


def log_diagnostic(diagnostic: Diagnostic) -> None:
    if diagnostic.level == "hint":
        print(f"{PREFIX} Hint: {diagnostic.message}", file=sys.stderr)
    else:
        log_error(diagnostic.message)
