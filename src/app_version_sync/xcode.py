"""
iOS 工程的版本更新：`project.pbxproj` 中的 `CURRENT_PROJECT_VERSION`
以及它引用的各个 `Info.plist`。

流程：
1) 在 iOS 目录下定位 `*.xcodeproj/project.pbxproj`。
2) 解析工程，先收集 `INFOPLIST_FILE`（不受后续修改影响）。
3) 对与应用同名的 target 的每个构建配置暂存新的 build 号。
4) 解析并渲染全部 plist（任何一个失败则整个平台失败，不写任何文件）。
5) 写回 plist，最后一次性保存工程文件。
"""

from __future__ import annotations

import os

from .build_policy import build_number_for, parse_build_number
from .errors import MalformedProject, ProjectNotFound
from .pbxproj import CURRENT_PROJECT_VERSION, XcodeProjectDocument
from .plist_set import PlistSet, discover_plist_paths
from .types import VersionOptions

PROJECT_FILE = "project.pbxproj"


def find_project_file(ios_dir: str) -> str:
    """
    返回 iOS 目录下第一个 `.xcodeproj` 中的 `project.pbxproj` 路径。

    存在多个工程时按名称排序取第一个。
    """
    try:
        names = sorted(os.listdir(ios_dir))
    except OSError as e:
        raise ProjectNotFound(
            f'Xcode project not found in "{ios_dir}"',
            hint='Use the "--ios" option to specify the path manually',
        ) from e

    for name in names:
        if not name.lower().endswith(".xcodeproj"):
            continue
        candidate = os.path.join(ios_dir, name, PROJECT_FILE)
        if os.path.isfile(candidate):
            return candidate

    raise ProjectNotFound(
        f'Xcode project not found in "{ios_dir}"',
        hint='Use the "--ios" option to specify the path manually',
    )


def stage_build_numbers(
    document: XcodeProjectDocument, app_name: str, version: str, options: VersionOptions
) -> int:
    """为同名 target 的所有构建配置暂存新的 `CURRENT_PROJECT_VERSION`，返回修改数量。"""
    if not document.targets_named(app_name):
        raise MalformedProject(
            f'No target named "{app_name}" in {document.path or "Xcode project"}',
            hint='The Xcode target name must match "name" in package.json',
        )

    count = 0
    for _project, target, config in document.walk():
        if target.name != app_name:
            continue
        current = parse_build_number(config.settings.current_project_version)
        new_value = build_number_for(current, version, options)
        document.set_build_setting(config, CURRENT_PROJECT_VERSION, str(new_value))
        count += 1
    return count


def patch_ios(ios_dir: str, app_name: str, version: str, options: VersionOptions) -> list[str]:
    """更新 iOS 工程与 plist，返回被修改的文件列表。"""
    project_file = find_project_file(ios_dir)
    document = XcodeProjectDocument.open(project_file)
    plist_names = discover_plist_paths(document)

    if options.update_build_number:
        stage_build_numbers(document, app_name, version, options)

    plists = PlistSet.load(ios_dir, plist_names)
    plists.apply(version, options)

    changed = plists.write()
    if document.save():
        changed.append(project_file)
    return changed
