"""
`python -m app_version_sync` entrypoint.

This is mainly for convenience; the installed console script `app-version-sync`
calls the same `app_version_sync.cli:main`.
"""

from .cli import main


if __name__ == "__main__":
    raise SystemExit(main())
