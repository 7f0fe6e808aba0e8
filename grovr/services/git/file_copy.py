"""Replicate untracked bootstrap files (``.env`` and friends) into a new worktree."""

import shutil
from pathlib import Path
from typing import Iterable, List

from grovr.exceptions import FileCopyError
from grovr.logging_config import get_logger

logger = get_logger(__name__)


def _copy_dir(src: Path, dst: Path) -> None:
    dst.mkdir(parents=True, exist_ok=True)
    for entry in src.iterdir():
        target = dst / entry.name
        if entry.is_dir():
            _copy_dir(entry, target)
        else:
            shutil.copy2(entry, target)


def copy_paths_to_worktree(source_path: str, target_path: str, paths: Iterable[str]) -> List[str]:
    """Copy relative paths from one worktree into another.

    Missing sources are skipped; the lists callers pass are speculative
    ("copy .env if present"). Files overwrite their destination. Directories
    are copied depth-first with their structure preserved. The first failure
    stops the remaining copies.

    Args:
        source_path: Worktree to copy from
        target_path: Worktree to copy into
        paths: Paths relative to both worktrees

    Returns:
        The relative paths that were copied

    Raises:
        FileCopyError: a copy failed
    """
    source_root = Path(source_path)
    target_root = Path(target_path)
    copied = []

    for rel_path in paths:
        src = source_root / rel_path
        dst = target_root / rel_path

        if not src.exists():
            logger.debug(f"Skipping {rel_path}: not present in {source_path}")
            continue

        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            if src.is_dir():
                _copy_dir(src, dst)
            else:
                shutil.copy2(src, dst)
        except OSError as e:
            logger.error(f"Failed to copy {rel_path} into {target_path}: {e}")
            raise FileCopyError(rel_path, str(e)) from e

        copied.append(rel_path)
        logger.debug(f"Copied {rel_path} into {target_path}")

    return copied
