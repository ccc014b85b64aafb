"""
把版本修改并入当前 git 提交/标签。

`plan_amend` 只根据参数与环境变量做决策（无 I/O）；
`apply_amend` 等函数是对 `git` 命令的轻量封装。
"""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .types import VersionOptions
from .version_codec import coerce_version


@dataclass(frozen=True)
class AmendPlan:
    """一次修订的动作：`stage` 只暂存文件，`amend` 修订提交并可选重打标签。"""

    mode: str
    files: tuple[str, ...] = ()
    retag: bool = False


def should_amend(options: VersionOptions, env: Mapping[str, str]) -> bool:
    """显式 `--amend`，或在 npm `version` 生命周期脚本中运行且未禁用时修订。"""
    if options.amend:
        return True
    event = env.get("npm_lifecycle_event", "")
    return "version" in event and not options.never_amend


def plan_amend(
    options: VersionOptions,
    env: Mapping[str, str],
    *,
    changed_files: Sequence[str],
    last_commit_subject: str = "",
) -> AmendPlan | None:
    """决定是否以及如何修订，不需要修订时返回 `None`。"""
    if not should_amend(options, env):
        return None

    # npm 的 `version` 阶段提交尚未生成，只需把文件加入暂存区。
    if env.get("npm_lifecycle_event") == "version":
        return AmendPlan(mode="stage", files=tuple(changed_files))

    wants_tag = bool(
        options.amend
        or env.get("npm_config_git_tag_version")
        or env.get("npm_config_version_git_tag")
    )
    retag = (
        wants_tag
        and not options.skip_tag
        and coerce_version(last_commit_subject) is not None
    )
    return AmendPlan(mode="amend", files=tuple(changed_files), retag=retag)


def _run_git(args: list[str], *, cwd: str) -> str:
    """执行 git 命令并返回 stdout，失败时抛出带 stderr 的异常。"""
    cmd = ["git", *args]
    p = subprocess.run(cmd, capture_output=True, cwd=cwd, check=False)
    if p.returncode != 0:
        raise RuntimeError(f"Command failed: {' '.join(cmd)}\n{p.stderr.decode(errors='replace')}")
    return p.stdout.decode(errors="replace").strip()


def last_commit_subject(cwd: str) -> str:
    return _run_git(["log", "-1", "--pretty=%s"], cwd=cwd)


def head_commit(cwd: str) -> str:
    return _run_git(["log", "-1", "--pretty=%H"], cwd=cwd)


def apply_amend(plan: AmendPlan, *, cwd: str) -> str:
    """执行修订计划，返回被重新指向的标签名（没有则为空字符串）。"""
    if plan.mode == "stage":
        if plan.files:
            _run_git(["add", *plan.files], cwd=cwd)
        return ""

    # 标签需在修订前读取：修订后 HEAD 会变化。
    tag = _run_git(["describe", "--exact-match", "HEAD"], cwd=cwd) if plan.retag else ""
    _run_git(["commit", "-a", "--amend", "--no-edit"], cwd=cwd)
    if tag:
        _run_git(["tag", "-af", tag, "-m", tag], cwd=cwd)
    return tag
