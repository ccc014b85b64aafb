"""
按平台并行运行版本更新流水线并汇总结果。

Android 与 iOS 修改的文件互不相交，各自在独立线程中运行；
每个平台把自己的异常转换为诊断信息，失败不会影响另一个平台。
两个平台都结束后才产出汇总结果。
"""

from __future__ import annotations

import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from .android import patch_android
from .console import log_step
from .errors import VersionSyncError
from .types import ANDROID, IOS, Diagnostic, Manifest, PlatformResult, RunResult, VersionOptions
from .xcode import patch_ios

_LABELS = {ANDROID: "Android", IOS: "iOS"}


def run_platform(platform: str, task: Callable[[], list[str]], *, quiet: bool = False) -> PlatformResult:
    """执行单个平台任务，把异常收敛为 `PlatformResult` 中的诊断。"""
    label = _LABELS.get(platform, platform)
    result = PlatformResult(platform=platform)
    log_step(f"Versioning {label}...", quiet=quiet)
    try:
        result.changed_files = list(task())
    except VersionSyncError as e:
        result.diagnostics.append(Diagnostic(str(e)))
        if e.hint:
            result.diagnostics.append(Diagnostic(e.hint, level="hint"))
    except OSError as e:
        result.diagnostics.append(Diagnostic(f"{label} file error: {e}"))
    except Exception as e:
        result.diagnostics.append(Diagnostic(f"Unexpected {label} error: {type(e).__name__}: {e}"))
    else:
        log_step(f"{label} updated", quiet=quiet)
    return result


def run_platforms(project_path: str, manifest: Manifest, options: VersionOptions) -> RunResult:
    """并行运行所选平台，等待全部完成后返回汇总结果。"""
    tasks: dict[str, Callable[[], list[str]]] = {
        ANDROID: lambda: patch_android(
            os.path.join(project_path, options.android), manifest.version, options
        ),
        IOS: lambda: patch_ios(
            os.path.join(project_path, options.ios), manifest.name, manifest.version, options
        ),
    }

    platforms = options.selected_platforms()
    if not platforms:
        return RunResult()

    with ThreadPoolExecutor(max_workers=len(platforms)) as executor:
        futures = {
            p: executor.submit(run_platform, p, tasks[p], quiet=options.quiet) for p in platforms
        }
        return RunResult(results={p: futures[p].result() for p in platforms})
