"""
Android `build.gradle` 的版本更新。

只做两处正则替换（`versionName` 与 `versionCode`），其余内容原样保留；
找不到对应字段时跳过该字段而不报错。
"""

from __future__ import annotations

import re

from .build_policy import build_number_for
from .fileio import read_text, write_text_atomic
from .types import VersionOptions

_VERSION_NAME_RE = re.compile(r"versionName ([\"'])(.*)[\"']")
_VERSION_CODE_RE = re.compile(r"versionCode (\d+)")


def apply_android_version(text: str, version: str, options: VersionOptions) -> str:
    """在内存中完成替换并返回新文本。"""
    if options.update_display_version:
        text = _VERSION_NAME_RE.sub(
            lambda m: f"versionName {m.group(1)}{version}{m.group(1)}",
            text,
            count=1,
        )

    if options.update_build_number:
        text = _VERSION_CODE_RE.sub(
            lambda m: f"versionCode {build_number_for(int(m.group(1)), version, options)}",
            text,
            count=1,
        )

    return text


def patch_android(path: str, version: str, options: VersionOptions) -> list[str]:
    """读取、更新并写回 gradle 文件，返回实际被修改的文件列表。"""
    original = read_text(
        path,
        what="gradle file",
        hint='Use the "--android" option to specify the path manually',
    )
    updated = apply_android_version(original, version, options)
    if updated == original:
        return []
    write_text_atomic(path, updated)
    return [path]
