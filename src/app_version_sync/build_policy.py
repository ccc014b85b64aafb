"""
build 号推导策略（无 I/O）。

`never_increment_build` / `increment_build` 由调用方判断并跳过，
这里只负责在需要更新时给出新的 build 号。
"""

from __future__ import annotations

import re

from .version_codec import to_build_code

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def parse_build_number(value: object) -> int | None:
    """宽松解析现有 build 号：取前导整数部分，无法解析返回 `None`。"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        return None
    m = _LEADING_INT_RE.match(value)
    return int(m.group(1)) if m else None


def next_build_number(
    current: int | None,
    *,
    explicit_set: int | None = None,
    auto_generate: bool = False,
    version: str = "",
    reset: bool = False,
) -> int:
    """
    按固定优先级计算新的 build 号：

    1. `reset` -> 1
    2. `explicit_set` 非 `None` -> 原样返回
    3. `auto_generate` -> `to_build_code(version)`
    4. 否则 `current + 1`，`current` 未知时为 1
    """
    if reset:
        return 1
    if explicit_set is not None:
        return explicit_set
    if auto_generate:
        return to_build_code(version)
    if current is None:
        return 1
    return current + 1


def build_number_for(current: int | None, version: str, options) -> int:
    """用 `VersionOptions` 中的策略参数调用 `next_build_number`。"""
    return next_build_number(
        current,
        explicit_set=options.set_build,
        auto_generate=options.generate_build,
        version=version,
        reset=options.reset_build,
    )
