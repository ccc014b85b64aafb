"""
Xcode `project.pbxproj` 的最小读写模型。

`project.pbxproj` 是 OpenStep 风格的 ASCII plist。这里只实现读取所需的语法
（字典、数组、字符串、data、注释），并记录每个值在原文中的位置；
修改时只替换被改动的值片段，其余内容（注释、缩进、对象顺序）逐字保留。

解析结果组织为一个按下标寻址的节点池：
`ProjectNode -> TargetNode -> BuildConfigurationNode`，子节点通过 handle
记录所属父节点，不持有父对象引用。
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Union

from .errors import MalformedProject
from .fileio import read_text, write_text_atomic


# ---------------------------------------------------------------------------
# 语法树
# ---------------------------------------------------------------------------


@dataclass
class PbxString:
    value: str
    start: int
    end: int
    quoted: bool = False


@dataclass
class PbxData:
    value: bytes
    start: int
    end: int


@dataclass
class PbxArray:
    items: list[PbxValue]
    start: int
    end: int


@dataclass
class PbxDict:
    entries: dict[str, PbxValue]
    start: int
    end: int


PbxValue = Union[PbxString, PbxData, PbxArray, PbxDict]

# 紧跟在值后的 `/*` 是注释的开始，不属于值。
_UNQUOTED_CHARS = re.compile(r"(?:[A-Za-z0-9_$:.\-+@]|/(?!\*))+")
_SAFE_UNQUOTED = re.compile(r"[A-Za-z0-9_$/:.]+")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "'": "'", "\\": "\\", "a": "\a", "b": "\b",
            "f": "\f", "v": "\v"}


class PbxParseError(ValueError):
    """OpenStep plist 语法错误，携带出错偏移。"""

    def __init__(self, message: str, pos: int) -> None:
        super().__init__(f"{message} at offset {pos}")
        self.pos = pos


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> PbxDict:
        self._skip()
        value = self._value()
        self._skip()
        if self.pos != len(self.text):
            raise PbxParseError("unexpected trailing content", self.pos)
        if not isinstance(value, PbxDict):
            raise PbxParseError("root object is not a dictionary", 0)
        return value

    def _skip(self) -> None:
        text = self.text
        n = len(text)
        while self.pos < n:
            ch = text[self.pos]
            if ch.isspace():
                self.pos += 1
            elif text.startswith("//", self.pos):
                nl = text.find("\n", self.pos)
                self.pos = n if nl == -1 else nl + 1
            elif text.startswith("/*", self.pos):
                close = text.find("*/", self.pos + 2)
                if close == -1:
                    raise PbxParseError("unterminated comment", self.pos)
                self.pos = close + 2
            else:
                break

    def _peek(self) -> str:
        if self.pos >= len(self.text):
            raise PbxParseError("unexpected end of document", self.pos)
        return self.text[self.pos]

    def _expect(self, ch: str) -> None:
        self._skip()
        if self._peek() != ch:
            raise PbxParseError(f"expected {ch!r}, got {self._peek()!r}", self.pos)
        self.pos += 1

    def _value(self) -> PbxValue:
        ch = self._peek()
        if ch == "{":
            return self._dict()
        if ch == "(":
            return self._array()
        if ch in "\"'":
            return self._quoted()
        if ch == "<":
            return self._data()
        return self._unquoted()

    def _dict(self) -> PbxDict:
        start = self.pos
        self.pos += 1
        entries: dict[str, PbxValue] = {}
        while True:
            self._skip()
            if self._peek() == "}":
                self.pos += 1
                return PbxDict(entries, start, self.pos)
            key = self._value()
            if not isinstance(key, PbxString):
                raise PbxParseError("dictionary key must be a string", key.start)
            self._expect("=")
            self._skip()
            entries[key.value] = self._value()
            self._expect(";")

    def _array(self) -> PbxArray:
        start = self.pos
        self.pos += 1
        items: list[PbxValue] = []
        while True:
            self._skip()
            if self._peek() == ")":
                self.pos += 1
                return PbxArray(items, start, self.pos)
            items.append(self._value())
            self._skip()
            if self._peek() == ",":
                self.pos += 1
            elif self._peek() != ")":
                raise PbxParseError("expected ',' or ')'", self.pos)

    def _quoted(self) -> PbxString:
        start = self.pos
        quote = self.text[start]
        self.pos += 1
        out: list[str] = []
        text = self.text
        while True:
            if self.pos >= len(text):
                raise PbxParseError("unterminated string", start)
            ch = text[self.pos]
            if ch == quote:
                self.pos += 1
                return PbxString("".join(out), start, self.pos, quoted=True)
            if ch == "\\":
                self.pos += 1
                esc = self._peek()
                if esc == "U":
                    digits = text[self.pos + 1 : self.pos + 5]
                    try:
                        out.append(chr(int(digits, 16)))
                    except ValueError as e:
                        raise PbxParseError("invalid \\U escape", self.pos) from e
                    self.pos += 5
                    continue
                out.append(_ESCAPES.get(esc, esc))
                self.pos += 1
                continue
            out.append(ch)
            self.pos += 1

    def _unquoted(self) -> PbxString:
        m = _UNQUOTED_CHARS.match(self.text, self.pos)
        if not m:
            raise PbxParseError(f"unexpected character {self._peek()!r}", self.pos)
        start, self.pos = m.span()
        return PbxString(m.group(0), start, self.pos)

    def _data(self) -> PbxData:
        start = self.pos
        close = self.text.find(">", start)
        if close == -1:
            raise PbxParseError("unterminated data", start)
        raw = re.sub(r"\s+", "", self.text[start + 1 : close])
        try:
            value = bytes.fromhex(raw)
        except ValueError as e:
            raise PbxParseError("invalid data literal", start) from e
        self.pos = close + 1
        return PbxData(value, start, self.pos)


def parse_pbxproj(text: str) -> PbxDict:
    """解析 OpenStep plist 文本，返回带位置信息的根字典。"""
    return _Parser(text).parse()


def to_python(node: PbxValue) -> Any:
    """把语法树节点转换为普通 Python 值。"""
    if isinstance(node, PbxString):
        return node.value
    if isinstance(node, PbxData):
        return node.value
    if isinstance(node, PbxArray):
        return [to_python(x) for x in node.items]
    return {k: to_python(v) for k, v in node.entries.items()}


def format_string(value: str, *, quoted: bool = False) -> str:
    """按 Xcode 习惯序列化字符串：简单标识符不加引号，其余加引号并转义。"""
    if not quoted and _SAFE_UNQUOTED.fullmatch(value):
        return value
    escaped = (
        value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\t", "\\t")
    )
    return f'"{escaped}"'


# ---------------------------------------------------------------------------
# 节点池
# ---------------------------------------------------------------------------

INFOPLIST_FILE = "INFOPLIST_FILE"
CURRENT_PROJECT_VERSION = "CURRENT_PROJECT_VERSION"


@dataclass
class BuildSettings:
    """构建设置：常用键为具名字段，其余键放入 `extra`。"""

    infoplist_file: str | None = None
    current_project_version: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: dict[str, Any]) -> BuildSettings:
        extra = dict(mapping)
        plist = extra.pop(INFOPLIST_FILE, None)
        cpv = extra.pop(CURRENT_PROJECT_VERSION, None)
        return cls(
            infoplist_file=plist if isinstance(plist, str) else None,
            current_project_version=cpv if isinstance(cpv, str) else None,
            extra=extra,
        )

    def get(self, key: str) -> Any:
        if key == INFOPLIST_FILE:
            return self.infoplist_file
        if key == CURRENT_PROJECT_VERSION:
            return self.current_project_version
        return self.extra.get(key)

    def set(self, key: str, value: Any) -> None:
        if key == INFOPLIST_FILE:
            self.infoplist_file = value
        elif key == CURRENT_PROJECT_VERSION:
            self.current_project_version = value
        else:
            self.extra[key] = value


@dataclass
class ProjectNode:
    handle: int
    object_id: str
    targets: list[int] = field(default_factory=list)


@dataclass
class TargetNode:
    handle: int
    object_id: str
    name: str
    project: int
    configurations: list[int] = field(default_factory=list)


@dataclass
class BuildConfigurationNode:
    handle: int
    object_id: str
    name: str
    target: int
    settings: BuildSettings


class XcodeProjectDocument:
    """
    打开的 `project.pbxproj`。

    修改通过 `set_build_setting` 暂存为文本片段替换，`render`/`save`
    时一次性应用；未修改的部分与原文逐字节一致。
    """

    def __init__(self, text: str, root: PbxDict, *, path: str = "") -> None:
        self.path = path
        self.text = text
        self.root = root
        self.projects: list[ProjectNode] = []
        self.targets: list[TargetNode] = []
        self.configurations: list[BuildConfigurationNode] = []
        self._settings_nodes: dict[int, PbxDict | None] = {}
        self._edits: dict[tuple[int, str], tuple[int, int, str]] = {}
        self._index()

    @classmethod
    def parse(cls, text: str, *, path: str = "") -> XcodeProjectDocument:
        try:
            root = parse_pbxproj(text)
        except PbxParseError as e:
            raise MalformedProject(f"Cannot parse Xcode project {path or '<text>'}: {e}") from e
        return cls(text, root, path=path)

    @classmethod
    def open(cls, path: str) -> XcodeProjectDocument:
        return cls.parse(read_text(path, what="Xcode project"), path=path)

    # -- 建立索引 ----------------------------------------------------------

    def _objects(self) -> dict[str, PbxValue]:
        objects = self.root.entries.get("objects")
        if not isinstance(objects, PbxDict):
            raise MalformedProject(f"Xcode project has no objects table: {self.path or '<text>'}")
        return objects.entries

    def _index(self) -> None:
        objects = self._objects()

        root_id = self.root.entries.get("rootObject")
        project_ids: list[str] = []
        if isinstance(root_id, PbxString) and isinstance(objects.get(root_id.value), PbxDict):
            project_ids.append(root_id.value)
        for object_id, obj in objects.items():
            if object_id not in project_ids and _isa(obj) == "PBXProject":
                project_ids.append(object_id)

        for project_id in project_ids:
            project = ProjectNode(handle=len(self.projects), object_id=project_id)
            self.projects.append(project)
            for target_id in _string_items(_entry(objects[project_id], "targets")):
                target_obj = objects.get(target_id)
                # 悬空引用直接忽略。
                if not isinstance(target_obj, PbxDict):
                    continue
                target = TargetNode(
                    handle=len(self.targets),
                    object_id=target_id,
                    name=_string(_entry(target_obj, "name")),
                    project=project.handle,
                )
                self.targets.append(target)
                project.targets.append(target.handle)
                self._index_configurations(objects, target, target_obj)

    def _index_configurations(
        self, objects: dict[str, PbxValue], target: TargetNode, target_obj: PbxDict
    ) -> None:
        list_id = _string(_entry(target_obj, "buildConfigurationList"))
        list_obj = objects.get(list_id)
        if not isinstance(list_obj, PbxDict):
            return
        for config_id in _string_items(_entry(list_obj, "buildConfigurations")):
            config_obj = objects.get(config_id)
            if not isinstance(config_obj, PbxDict):
                continue
            settings_node = _entry(config_obj, "buildSettings")
            if not isinstance(settings_node, PbxDict):
                settings_node = None
            config = BuildConfigurationNode(
                handle=len(self.configurations),
                object_id=config_id,
                name=_string(_entry(config_obj, "name")),
                target=target.handle,
                settings=BuildSettings.from_mapping(
                    to_python(settings_node) if settings_node is not None else {}
                ),
            )
            self.configurations.append(config)
            self._settings_nodes[config.handle] = settings_node
            target.configurations.append(config.handle)

    # -- 遍历 --------------------------------------------------------------

    def walk(self) -> Iterator[tuple[ProjectNode, TargetNode, BuildConfigurationNode]]:
        """按文档顺序遍历所有 `(project, target, configuration)` 三元组。"""
        for project in self.projects:
            for t in project.targets:
                target = self.targets[t]
                for c in target.configurations:
                    yield project, target, self.configurations[c]

    def targets_named(self, name: str) -> list[TargetNode]:
        return [t for t in self.targets if t.name == name]

    # -- 修改 --------------------------------------------------------------

    def set_build_setting(self, config: BuildConfigurationNode, key: str, value: str) -> None:
        """暂存对某个构建配置中单个键的修改；键不存在时在字典末尾插入。"""
        node = self._settings_nodes.get(config.handle)
        if node is None:
            raise MalformedProject(
                f"Build configuration {config.name or config.object_id} has no buildSettings"
            )

        current = node.entries.get(key)
        if isinstance(current, PbxString):
            edit = (current.start, current.end, format_string(value, quoted=current.quoted))
        elif current is not None:
            edit = (current.start, current.end, format_string(value))
        else:
            pos, line = self._insertion_point(node)
            edit = (pos, pos, line.format(key=format_string(key), value=format_string(value)))

        self._edits[(config.handle, key)] = edit
        config.settings.set(key, value)

    def _insertion_point(self, node: PbxDict) -> tuple[int, str]:
        text = self.text
        close = node.end - 1
        line_start = text.rfind("\n", node.start, close) + 1
        if line_start > node.start and not text[line_start:close].strip():
            closing_indent = text[line_start:close]
            entry_indent = closing_indent + "\t"
            for value in node.entries.values():
                key_line = text.rfind("\n", 0, value.start) + 1
                leading = re.match(r"[ \t]*", text[key_line:]).group(0)
                if leading:
                    entry_indent = leading
                    break
            return line_start, entry_indent + "{key} = {value};\n"
        # 单行字典：`{ A = B; }`
        return close, "{key} = {value}; "

    @property
    def dirty(self) -> bool:
        return bool(self._edits)

    def render(self) -> str:
        """返回应用了所有暂存修改后的完整文本。"""
        text = self.text
        for start, end, replacement in sorted(self._edits.values(), key=lambda e: e[0], reverse=True):
            text = text[:start] + replacement + text[end:]
        return text

    def save(self, path: str = "") -> bool:
        """一次性写回所有修改；内容没有变化时不写文件，返回是否写入。"""
        if not self._edits:
            return False
        rendered = self.render()
        if rendered == self.text:
            return False
        target = path or self.path
        if not target:
            raise ValueError("no path to save Xcode project to")
        write_text_atomic(target, rendered)
        return True


def _entry(node: PbxValue | None, key: str) -> PbxValue | None:
    if isinstance(node, PbxDict):
        return node.entries.get(key)
    return None


def _string(node: PbxValue | None) -> str:
    return node.value if isinstance(node, PbxString) else ""


def _string_items(node: PbxValue | None) -> list[str]:
    if not isinstance(node, PbxArray):
        return []
    return [x.value for x in node.items if isinstance(x, PbxString)]


def _isa(node: PbxValue) -> str:
    return _string(_entry(node, "isa"))
