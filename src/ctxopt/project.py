"""Load a {path -> content} project snapshot from a directory."""

from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path, PurePosixPath

from ctxopt.config import LoaderConfig, ProjectConfig

logger = logging.getLogger("ctxopt.project")


def load_project_files(
    root: str | Path, config: ProjectConfig | LoaderConfig | None = None
) -> dict[str, str]:
    """Read every included text file under `root`.

    Paths are relative to `root`, use forward slashes, and the returned dict is
    sorted by path. Files matching `exclude_patterns` or `.gitignore`, with an
    extension outside `include_extensions` (empty list = all) or larger than
    `max_file_size_kb` are skipped.
    """
    root = Path(root).resolve()
    if isinstance(config, ProjectConfig):
        loader = config.loader
    else:
        loader = config or LoaderConfig()

    files: dict[str, str] = {}
    for full_path in collect_files(root, loader):
        rel_path = full_path.relative_to(root).as_posix()
        try:
            files[rel_path] = full_path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Skipping unreadable file {rel_path}: {e}")

    logger.debug(f"Loaded {len(files)} files from {root}")
    return dict(sorted(files.items()))


def collect_files(root: Path, config: LoaderConfig) -> list[Path]:
    """Collect snapshot files, respecting exclusion patterns."""
    files = []
    max_size = config.max_file_size_kb * 1024
    extensions = {e.lower() for e in config.include_extensions}

    all_exclude = config.exclude_patterns + _read_gitignore(root)

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)

        dirnames[:] = [
            d
            for d in dirnames
            if not _should_exclude(os.path.join(rel_dir, d) if rel_dir != "." else d, all_exclude)
        ]

        for filename in filenames:
            rel_path = os.path.join(rel_dir, filename) if rel_dir != "." else filename

            if _should_exclude(rel_path, all_exclude):
                continue

            if extensions and PurePosixPath(filename).suffix.lower() not in extensions:
                continue

            full_path = Path(dirpath) / filename
            try:
                if full_path.stat().st_size > max_size:
                    continue
            except OSError:
                continue

            files.append(full_path)

    return sorted(files)


def _should_exclude(path: str, patterns: list[str]) -> bool:
    """Check if a path matches any exclusion pattern."""
    path_parts = Path(path).parts
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern):
            return True
        for part in path_parts:
            if fnmatch.fnmatch(part, pattern):
                return True
    return False


def _read_gitignore(root: Path) -> list[str]:
    """Read .gitignore patterns from the project root."""
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return []

    patterns = []
    try:
        for line in gitignore.read_text().splitlines():
            line = line.strip()
            if line and not line.startswith("#") and not line.startswith("!"):
                patterns.append(line.rstrip("/").lstrip("/"))
    except OSError:
        pass
    return [p for p in patterns if p]
