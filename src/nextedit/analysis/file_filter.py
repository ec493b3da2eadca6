"""Workspace file discovery for analyzers.

Skips binary files, secret files and well-known dependency/build
directories, then applies the include/exclude globs from AnalysisOptions.
"""

import fnmatch
import os
from collections.abc import Sequence
from pathlib import Path, PurePosixPath

BINARY_EXTENSIONS: frozenset[str] = frozenset(
    {
        # Images
        ".png", ".jpg", ".jpeg", ".gif", ".ico", ".bmp", ".webp",
        # Compiled output
        ".exe", ".dll", ".so", ".dylib", ".o", ".pyc", ".class", ".wasm",
        # Archives
        ".zip", ".tar", ".gz", ".bz2", ".xz", ".7z", ".jar",
        # Fonts and media
        ".ttf", ".otf", ".woff", ".woff2", ".mp3", ".mp4", ".wav",
        # Documents and data
        ".pdf", ".db", ".sqlite", ".sqlite3", ".bin", ".pkl", ".npy", ".parquet",
    }
)

SECRET_PATTERNS: tuple[str, ...] = (
    ".env",
    ".env.*",
    "*.env",
    "*credentials*",
    "*secret*",
    "*.pem",
    "*.key",
    "*.p12",
    "id_rsa",
    "id_rsa.*",
    "id_ed25519",
    "id_ed25519.*",
    ".netrc",
    ".npmrc",
    ".pypirc",
)

EXCLUDED_DIRECTORIES: frozenset[str] = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".nextedit",
        "node_modules",
        "__pycache__",
        ".venv",
        "venv",
        ".tox",
        ".mypy_cache",
        ".pytest_cache",
        ".ruff_cache",
        "dist",
        "build",
        "target",
        ".next",
        ".idea",
        ".vscode",
    }
)


def is_binary_file(file_path: str | Path) -> bool:
    """Check if a file looks binary based on its extension."""
    return Path(file_path).suffix.lower() in BINARY_EXTENSIONS


def is_secret_file(file_path: str | Path) -> bool:
    """Check if a file name matches a secret file pattern."""
    filename = Path(file_path).name.lower()
    return any(fnmatch.fnmatch(filename, pattern) for pattern in SECRET_PATTERNS)


def is_excluded_directory(dir_name: str) -> bool:
    """Check if a directory name is always skipped."""
    return dir_name in EXCLUDED_DIRECTORIES


def matches_glob(rel_path: str, pattern: str) -> bool:
    """Match a workspace-relative POSIX path against a glob.

    ``*`` also matches ``/``, and a leading ``**/`` may match nothing, so
    ``**/*.py`` matches both ``a.py`` and ``pkg/a.py``.

    Args:
        rel_path: Path relative to the workspace, with forward slashes.
        pattern: Glob pattern.

    Returns:
        True if the path matches.
    """
    if fnmatch.fnmatchcase(rel_path, pattern):
        return True
    if pattern.startswith("**/"):
        return matches_glob(rel_path, pattern[3:])
    return False


def is_included(
    rel_path: str,
    include_patterns: Sequence[str],
    exclude_patterns: Sequence[str],
) -> bool:
    """Apply include and exclude globs to a relative path.

    An empty include list includes everything. Excludes win over includes.
    """
    if any(matches_glob(rel_path, p) for p in exclude_patterns):
        return False
    if not include_patterns:
        return True
    return any(matches_glob(rel_path, p) for p in include_patterns)


def should_exclude_file(file_path: str | Path) -> bool:
    """Check if a file is never analyzed (binary or secret)."""
    return is_binary_file(file_path) or is_secret_file(file_path)


def discover_files(
    workspace: str | Path,
    include_patterns: Sequence[str] = (),
    exclude_patterns: Sequence[str] = (),
    max_files: int | None = None,
) -> list[str]:
    """Discover analyzable files in a workspace.

    Walks in sorted order so results are stable across runs.

    Args:
        workspace: Workspace root directory.
        include_patterns: Globs a file must match (empty for all).
        exclude_patterns: Globs that drop a file.
        max_files: Maximum number of files to return (None for unlimited).

    Returns:
        List of workspace-relative POSIX paths.
    """
    root = Path(workspace)
    files: list[str] = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not is_excluded_directory(d))

        for filename in sorted(filenames):
            rel_path = PurePosixPath((Path(dirpath) / filename).relative_to(root))
            rel = rel_path.as_posix()

            if should_exclude_file(rel):
                continue
            if not is_included(rel, include_patterns, exclude_patterns):
                continue

            files.append(rel)
            if max_files is not None and len(files) >= max_files:
                return files

    return files
