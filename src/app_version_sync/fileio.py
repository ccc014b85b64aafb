"""
文本文件的读取与原子写回。

每个目标文件在一次运行中只读一次、写一次；写入先落到同目录临时文件，
再用 `os.replace` 替换，避免留下写了一半的文件。
"""

from __future__ import annotations

import os
import tempfile

from .errors import MissingFile


def read_text(path: str, *, what: str = "file", hint: str = "") -> str:
    """按 UTF-8 读取文本，文件不存在或不可读时抛出 `MissingFile`。"""
    try:
        with open(path, encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise MissingFile(f"No {what} found at {path}", hint=hint) from e


def write_text_atomic(path: str, text: str) -> None:
    """把 `text` 原子地写入 `path`，尽量保留原文件权限。"""
    parent = os.path.dirname(os.path.abspath(path))
    fd, tmp = tempfile.mkstemp(prefix=".avs_", suffix=".tmp", dir=parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
        try:
            os.chmod(tmp, os.stat(path).st_mode & 0o7777)
        except OSError:
            pass
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
