"""
`app-version-sync` 的命令行入口模块。

负责收集版本策略参数、读取 `package.json`，调用 `runner.run_platforms`
更新 Android/iOS 文件，并按需把修改并入当前 git 提交。
"""

import argparse
import os
from collections.abc import Mapping, Sequence

from .console import log_diagnostic, log_error, log_step
from .errors import ManifestError
from .git_amend import apply_amend, head_commit, last_commit_subject, plan_amend, should_amend
from .manifest import load_manifest
from .runner import run_platforms
from .types import PLATFORMS, VersionOptions


def defaults() -> dict[str, str]:
    """Android/iOS 路径的默认值（相对项目根目录）。"""
    return {
        "android": "android/app/build.gradle",
        "ios": "ios/App",
    }


def split_list(value: str) -> list[str]:
    """把逗号分隔的字符串拆成去空白的列表。"""
    return [x.strip() for x in (value or "").split(",") if x.strip()]


def _parse_targets(values: Sequence[str], env: Mapping[str, str]) -> tuple[str, ...]:
    """合并 `--target` 与环境变量 `RNV` 指定的平台，校验取值。"""
    raw: list[str] = []
    for v in values:
        raw.extend(split_list(v))
    raw.extend(split_list(env.get("RNV", "")))

    out: list[str] = []
    for t in raw:
        t = t.lower()
        if t not in PLATFORMS:
            raise SystemExit(
                f"Error: unknown target platform: {t}. Expected one of: {', '.join(PLATFORMS)}"
            )
        if t not in out:
            out.append(t)
    return tuple(out)


def build_parser() -> argparse.ArgumentParser:
    """构建并返回 `app-version-sync` 命令行参数解析器。"""
    d = defaults()
    p = argparse.ArgumentParser(
        prog="app-version-sync",
        formatter_class=argparse.RawTextHelpFormatter,
        description=(
            "Sync the version in package.json into the Android build.gradle,\n"
            "the Xcode project and the Info.plist files of a mobile app."
        ),
    )
    p.add_argument("project_path", nargs="?", default="", help="Path to the project (default: cwd)")
    p.add_argument(
        "-A",
        "--amend",
        action="store_true",
        help="Amend the previous commit. Also re-points the version tag",
    )
    p.add_argument("--skip-tag", action="store_true", help="Do not re-point the tag when amending")
    p.add_argument(
        "-a",
        "--android",
        default=d["android"],
        help=f"Path to your build.gradle (default: {d['android']})",
    )
    p.add_argument(
        "-b",
        "--increment-build",
        action="store_true",
        help="Only increment build number",
    )
    p.add_argument(
        "-B",
        "--never-increment-build",
        action="store_true",
        help="Never increment build number",
    )
    p.add_argument(
        "-d",
        "--never-amend",
        action="store_true",
        help="Never amend the previous commit",
    )
    p.add_argument(
        "-g",
        "--generate-build",
        action="store_true",
        help="Generate build number from the version (e.g. 1.2.3 -> 1002003)",
    )
    p.add_argument(
        "-i",
        "--ios",
        default=d["ios"],
        help=f"Path to the directory containing your .xcodeproj (default: {d['ios']})",
    )
    p.add_argument("-q", "--quiet", action="store_true", help="Be quiet, only report errors")
    p.add_argument("-r", "--reset-build", action="store_true", help="Reset build number back to 1")
    p.add_argument("-s", "--set-build", type=int, default=None, help="Set a build number")
    p.add_argument(
        "-t",
        "--target",
        action="append",
        default=[],
        metavar="PLATFORMS",
        help="Only version the given platforms, comma separated (android,ios).\n"
        "Also read from the RNV environment variable",
    )
    return p


def options_from_namespace(ns: argparse.Namespace, env: Mapping[str, str]) -> VersionOptions:
    """把 argparse 命名空间整理成 `VersionOptions`。"""
    return VersionOptions(
        reset_build=bool(ns.reset_build),
        set_build=ns.set_build,
        generate_build=bool(ns.generate_build),
        increment_build=bool(ns.increment_build),
        never_increment_build=bool(ns.never_increment_build),
        targets=_parse_targets(ns.target, env),
        amend=bool(ns.amend),
        never_amend=bool(ns.never_amend),
        skip_tag=bool(ns.skip_tag),
        quiet=bool(ns.quiet),
        android=ns.android,
        ios=ns.ios,
    )


def main(argv: Sequence[str] | None = None, env: Mapping[str, str] | None = None) -> int:
    """CLI 入口：解析参数、更新各平台文件，必要时修订 git 提交。"""
    env = os.environ if env is None else env
    parser = build_parser()
    ns = parser.parse_args(argv)
    options = options_from_namespace(ns, env)

    project_path = os.path.abspath(os.path.expanduser(ns.project_path or os.getcwd()))

    try:
        manifest = load_manifest(project_path)
    except ManifestError as e:
        hint = f"Hint: {e.hint}\n" if e.hint else ""
        raise SystemExit(
            f"Error: {e}\n{hint}"
            "Pass the project path as an argument, see --help for usage\n"
        ) from e

    log_step(f"Syncing version {manifest.version} of {manifest.name}", quiet=options.quiet)
    result = run_platforms(project_path, manifest, options)

    if not result.ok:
        for diagnostic in result.diagnostics:
            log_diagnostic(diagnostic)
        log_error(f"Done, with errors. {result.summary()}")
        return 1

    if should_amend(options, env):
        log_step("Amending...", quiet=options.quiet)
        try:
            subject = last_commit_subject(project_path) if not options.skip_tag else ""
            plan = plan_amend(
                options,
                env,
                changed_files=result.changed_files,
                last_commit_subject=subject,
            )
            tag = apply_amend(plan, cwd=project_path)
            if tag:
                log_step(f"Adjusted Git tag {tag}", quiet=options.quiet)
            if plan.mode == "amend":
                log_step(f"Amended commit {head_commit(project_path)}", quiet=options.quiet)
        except RuntimeError as e:
            log_error(str(e))
            return 1

    log_step("Done", quiet=options.quiet)
    return 0
