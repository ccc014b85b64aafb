"""
语义化版本与平台 build 号之间的纯函数转换（无 I/O）。
"""

from __future__ import annotations

import re

from .errors import InvalidSemanticVersion

# semver 2.0 语法；允许前导 `v` / `=`，与 npm 的版本字段习惯一致。
_SEMVER_RE = re.compile(
    r"^\s*[v=]?\s*"
    r"(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?\s*$"
)
_DISPLAY_RE = re.compile(r"\d+\.\d+\.\d+")
_COERCE_RE = re.compile(r"(?:^|[^\d])(\d{1,16})(?:\.(\d{1,16}))?(?:\.(\d{1,16}))?(?:$|[^\d])")


def parse_semver(version: str) -> tuple[int, int, int]:
    """严格解析语义化版本，返回 `(major, minor, patch)`。"""
    m = _SEMVER_RE.match(version) if isinstance(version, str) else None
    if not m:
        raise InvalidSemanticVersion(
            f"Invalid semantic version: {version!r}",
            hint="Use a MAJOR.MINOR.PATCH version in package.json",
        )
    return int(m.group("major")), int(m.group("minor")), int(m.group("patch"))


def to_build_code(version: str) -> int:
    """
    将版本号编码为整数 build code，例如 `1.2.3` -> `1002003`。

    每个分量占三位十进制；任一分量 >= 1000 时会溢出到更高位，
    这里保持原样计算，不额外校验。
    """
    major, minor, patch = parse_semver(version)
    return 10**6 * major + 10**3 * minor + patch


def to_display_version(version: str) -> str:
    """
    取 `CFBundleShortVersionString` 可用的三段式版本。

    `1.2.3-beta.1` -> `1.2.3`；找不到三段数字时原样返回输入。
    """
    if not isinstance(version, str):
        return version
    m = _DISPLAY_RE.search(version)
    return m.group(0) if m else version


def coerce_version(text: str) -> str | None:
    """从任意文本中宽松提取第一个版本号并补全为 `x.y.z`，找不到返回 `None`。"""
    m = _COERCE_RE.search(text or "")
    if not m:
        return None
    major, minor, patch = (int(g) if g else 0 for g in m.groups())
    return f"{major}.{minor}.{patch}"
