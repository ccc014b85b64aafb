"""
版本同步流程使用的异常类型。

每个平台流水线只会抛出这里定义的异常，由 `runner` 统一转换为诊断信息，
不会跨越平台边界传播。
"""

from __future__ import annotations


class VersionSyncError(RuntimeError):
    """所有同步错误的基类，可附带一条面向用户的修复提示。"""

    def __init__(self, message: str, *, hint: str = "") -> None:
        super().__init__(message)
        self.hint = hint


class MissingFile(VersionSyncError):
    """预期的 Android/工程/plist 文件不存在或不可读。"""


class ProjectNotFound(MissingFile):
    """iOS 目录下找不到 `*.xcodeproj/project.pbxproj`。"""


class MalformedProject(VersionSyncError):
    """工程文件无法解析，或不存在与应用同名的 target。"""


class MalformedPlist(VersionSyncError):
    """被引用的 plist 不是合法的 XML plist，或顶层不是字典。"""


class InvalidSemanticVersion(VersionSyncError):
    """需要推导 build code 时，版本号不是合法的语义化版本。"""


class ManifestError(VersionSyncError):
    """`package.json` 缺失、无法解析或缺少必需字段。"""
