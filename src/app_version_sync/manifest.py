"""
读取项目根目录的 `package.json`，只取 `name` 与 `version`。
"""

from __future__ import annotations

import json
import os

from .errors import ManifestError
from .types import Manifest

MANIFEST_FILE = "package.json"


def load_manifest(project_path: str) -> Manifest:
    path = os.path.join(project_path, MANIFEST_FILE)
    hint = "Is this the right folder? Looks like there isn't a package.json here"
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ManifestError(f"Cannot read {path}: {e.strerror or e}", hint=hint) from e
    except json.JSONDecodeError as e:
        raise ManifestError(f"Invalid JSON in {path}: {e}", hint=hint) from e

    if not isinstance(data, dict):
        raise ManifestError(f"{path} must contain a JSON object", hint=hint)

    name = data.get("name")
    version = data.get("version")
    if not isinstance(version, str) or not version:
        raise ManifestError(f'{path} has no "version" field')
    if not isinstance(name, str) or not name:
        raise ManifestError(f'{path} has no "name" field')
    return Manifest(name=name, version=version)
