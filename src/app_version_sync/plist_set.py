"""
工程引用的 `Info.plist` 集合：发现、解析、修改、按原缩进风格重新序列化。

所有文件先在内存中解析并渲染完成，全部成功后才写盘，
任何一个 plist 解析失败都不会导致其它 plist 被部分写入。
"""

from __future__ import annotations

import os
import plistlib
import re
from collections import Counter
from dataclasses import dataclass
from typing import Any

from .build_policy import build_number_for, parse_build_number
from .errors import MalformedPlist, MissingFile
from .fileio import write_text_atomic
from .pbxproj import XcodeProjectDocument
from .types import VersionOptions
from .version_codec import to_display_version

SHORT_VERSION_KEY = "CFBundleShortVersionString"
BUILD_VERSION_KEY = "CFBundleVersion"

_ROOT_DICT_RE = re.compile(r"<dict>[\s\S]*</dict>|<dict\s*/>")
_LEADING_WS_RE = re.compile(r"^[ \t]*")
_OPEN_TEXT_RE = re.compile(r"<(string|key)>(?!.*</\1>)")
_SRCROOT_PREFIXES = ("$(SRCROOT)", "${SRCROOT}", "$(PROJECT_DIR)", "${PROJECT_DIR}")


def discover_plist_paths(document: XcodeProjectDocument) -> list[str]:
    """收集所有 target 的构建配置中 `INFOPLIST_FILE` 的取值（去重、保序）。"""
    out: list[str] = []
    for _project, _target, config in document.walk():
        name = config.settings.infoplist_file
        if name and name not in out:
            out.append(name)
    return out


def resolve_plist_path(ios_dir: str, name: str) -> str:
    """`INFOPLIST_FILE` 相对于工程所在目录；支持 `$(SRCROOT)` 前缀。"""
    for prefix in _SRCROOT_PREFIXES:
        if name.startswith(prefix):
            name = name[len(prefix):].lstrip("/")
            break
    return os.path.join(ios_dir, name)


def detect_indent(text: str) -> str:
    """
    从原文推断缩进单位：返回 `"\\t"` 或若干空格。

    统计相邻非空行之间缩进的变化量，取出现次数最多的一种；
    推断不出时使用 Xcode 默认的制表符。
    """
    tally: Counter[tuple[str, int]] = Counter()
    prev_kind, prev_size = "", 0
    for line in text.splitlines():
        if not line.strip():
            continue
        leading = _LEADING_WS_RE.match(line).group(0)
        if not leading:
            prev_kind, prev_size = "", 0
            continue
        kind = "tab" if leading[0] == "\t" else "space"
        size = len(leading)
        if kind == prev_kind or not prev_kind:
            diff = abs(size - prev_size)
            if diff:
                tally[(kind, diff)] += 1
        prev_kind, prev_size = kind, size

    if not tally:
        return "\t"
    (kind, size), _count = tally.most_common(1)[0]
    return "\t" if kind == "tab" else " " * size


def _reindent(xml: str, indent: str, base: str = "") -> str:
    # plistlib 固定用一个制表符表示一级缩进；`<string>`/`<key>` 中的换行内容不动。
    if indent == "\t" and not base:
        return xml
    out: list[str] = []
    in_data = False
    open_text = ""
    for i, line in enumerate(xml.split("\n")):
        if open_text:
            out.append(line)
            if f"</{open_text}>" in line:
                open_text = ""
            continue
        stripped = line.lstrip("\t")
        depth = len(line) - len(stripped)
        if i and (stripped.startswith("<") or in_data):
            line = base + indent * depth + stripped
        if "<data>" in stripped and "</data>" not in stripped:
            in_data = True
        elif "</data>" in stripped:
            in_data = False
        m = _OPEN_TEXT_RE.search(stripped)
        if m:
            open_text = m.group(1)
        out.append(line)
    return "\n".join(out)


def _line_indent(text: str, pos: int) -> str:
    """`pos` 所在行在 `pos` 之前的空白；该段含非空白字符时返回空串。"""
    start = text.rfind("\n", 0, pos) + 1
    prefix = text[start:pos]
    return prefix if not prefix.strip() else ""


def render_plist(original_text: str, data: dict[str, Any], indent: str | None = None) -> str:
    """
    重新序列化 plist 的顶层 `<dict>`，并拼回原文的头部与尾部。

    缩进风格取自原文（见 `detect_indent`），顶层 `<dict>` 自身的缩进
    会加到其内容的每一行上；原文使用 CRLF 时换行符保持 CRLF。
    头部的 XML 声明、DOCTYPE 与 `<plist>` 标签保持原样。
    """
    m = _ROOT_DICT_RE.search(original_text)
    if not m:
        raise MalformedPlist("Property list has no top-level <dict>")
    try:
        xml = plistlib.dumps(data, fmt=plistlib.FMT_XML, sort_keys=False).decode("utf-8")
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedPlist(f"Cannot serialize property list: {e}") from e
    body = _ROOT_DICT_RE.search(xml).group(0)
    body = _reindent(
        body,
        indent or detect_indent(original_text),
        _line_indent(original_text, m.start()),
    )
    if "\r\n" in original_text:
        body = body.replace("\n", "\r\n")
    return original_text[: m.start()] + body + original_text[m.end():]


@dataclass
class PlistFile:
    """单个 plist：引用名、磁盘路径、原文与解析结果。"""

    name: str
    path: str
    text: str
    data: dict[str, Any]
    rendered: str | None = None

    @property
    def changed(self) -> bool:
        return self.rendered is not None and self.rendered != self.text


def load_plist_file(ios_dir: str, name: str) -> PlistFile:
    path = resolve_plist_path(ios_dir, name)
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        raise MissingFile(f"No Info.plist found at {path}") from e

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedPlist(f"Invalid property list {path}: {e}") from e
    try:
        data = plistlib.loads(raw, fmt=plistlib.FMT_XML)
    except Exception as e:
        # 畸形的 `<date>`、`<integer>` 等会让 plistlib 抛出各种异常。
        raise MalformedPlist(f"Invalid property list {path}: {e}") from e
    if not isinstance(data, dict):
        raise MalformedPlist(f"Property list {path} does not contain a top-level dictionary")
    return PlistFile(name=name, path=path, text=text, data=data)


class PlistSet:
    """一次运行中需要更新的全部 plist。"""

    def __init__(self, files: list[PlistFile]) -> None:
        self.files = files

    @classmethod
    def load(cls, ios_dir: str, names: list[str]) -> PlistSet:
        return cls([load_plist_file(ios_dir, name) for name in names])

    def apply(self, version: str, options: VersionOptions) -> None:
        """修改版本字段并在内存中渲染，不写盘。"""
        for f in self.files:
            if options.update_display_version:
                f.data[SHORT_VERSION_KEY] = to_display_version(version)
            if options.update_build_number:
                current = parse_build_number(f.data.get(BUILD_VERSION_KEY))
                f.data[BUILD_VERSION_KEY] = str(build_number_for(current, version, options))
            try:
                f.rendered = render_plist(f.text, f.data)
            except MalformedPlist as e:
                raise MalformedPlist(f"{f.path}: {e}") from e

    def write(self) -> list[str]:
        """写回有变化的文件，返回写入的路径。"""
        written: list[str] = []
        for f in self.files:
            if f.changed:
                write_text_atomic(f.path, f.rendered)
                written.append(f.path)
        return written
