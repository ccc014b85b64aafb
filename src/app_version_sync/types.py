"""
CLI 与各平台流水线共享的轻量类型定义。
"""

from __future__ import annotations

from dataclasses import dataclass, field

ANDROID = "android"
IOS = "ios"
PLATFORMS: tuple[str, ...] = (ANDROID, IOS)


@dataclass(frozen=True)
class Manifest:
    """`package.json` 中本工具关心的两个字段。"""

    name: str
    version: str


@dataclass(frozen=True)
class VersionOptions:
    """一次运行的全部策略参数（对应命令行选项）。"""

    reset_build: bool = False
    set_build: int | None = None
    generate_build: bool = False
    # 只更新 build 号，不更新展示版本。
    increment_build: bool = False
    # 完全不更新 build 号。
    never_increment_build: bool = False
    # 空元组表示两个平台都处理。
    targets: tuple[str, ...] = ()
    amend: bool = False
    never_amend: bool = False
    skip_tag: bool = False
    quiet: bool = False
    android: str = "android/app/build.gradle"
    ios: str = "ios/App"

    @property
    def update_display_version(self) -> bool:
        return not self.increment_build

    @property
    def update_build_number(self) -> bool:
        return not self.never_increment_build

    def selected_platforms(self) -> tuple[str, ...]:
        """返回本次需要处理的平台，未指定时默认全部。"""
        if not self.targets:
            return PLATFORMS
        return tuple(p for p in PLATFORMS if p in self.targets)


@dataclass(frozen=True)
class Diagnostic:
    """单条诊断信息；`level` 为 `error` 或 `hint`。"""

    message: str
    level: str = "error"


@dataclass
class PlatformResult:
    """单个平台流水线的结果：诊断为空即成功。"""

    platform: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    changed_files: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics


@dataclass
class RunResult:
    """汇总所有已运行平台的结果。"""

    results: dict[str, PlatformResult] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results.values())

    @property
    def failed(self) -> list[PlatformResult]:
        return [r for r in self.results.values() if not r.ok]

    @property
    def changed_files(self) -> list[str]:
        out: list[str] = []
        for r in self.results.values():
            for path in r.changed_files:
                if path not in out:
                    out.append(path)
        return out

    @property
    def diagnostics(self) -> list[Diagnostic]:
        out: list[Diagnostic] = []
        for r in self.failed:
            out.extend(r.diagnostics)
        return out

    def summary(self) -> str:
        """把失败平台的诊断拼成一行：平台内用 `, ` 分隔，平台间用 `; `。"""
        groups = []
        for r in self.failed:
            text = ", ".join(d.message for d in r.diagnostics)
            groups.append(f"{r.platform}: {text}")
        return "; ".join(groups)
