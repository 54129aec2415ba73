"""
Keyword index build: walk a directory root and load matching text files.
Missing directories and unreadable files degrade to a partial index, never an error.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Literal

from pydantic import BaseModel, ConfigDict

from ..common.errors import IndexingError

logger = logging.getLogger(__name__)

Category = Literal["doc", "code"]


class IndexedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    category: Category
    # Lowercased content, so queries don't re-normalize per file
    search_content: str

    @classmethod
    def from_content(cls, path: str, content: str, category: Category) -> "IndexedFile":
        return cls(path=path, content=content, category=category, search_content=content.lower())


def walk_dir(directory: str | os.PathLike, exclude_dirs: Iterable[str]) -> list[str]:
    """
    List files under directory as posix paths relative to it.
    Any subdirectory whose name is in exclude_dirs is pruned, at every depth.
    """
    root = Path(directory)
    if not root.is_dir():
        return []
    excluded = set(exclude_dirs)
    results: list[str] = []

    def _on_error(err: OSError) -> None:
        logger.debug(f"Skipping unreadable directory {err.filename}: {err}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        base = Path(dirpath)
        for name in sorted(filenames):
            results.append((base / name).relative_to(root).as_posix())
    return results


def _read_file(full_path: Path, rel_path: str, max_file_size: int) -> str | None:
    """Returns file text, None if oversized. Raises IndexingError if unreadable."""
    try:
        if full_path.stat().st_size > max_file_size:
            return None
        return full_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise IndexingError(rel_path, str(e)) from e


def index_dir(
    directory: str | os.PathLike | None,
    category: Category,
    extensions: Iterable[str],
    exclude_dirs: Iterable[str],
    max_file_size: int,
) -> list[IndexedFile]:
    """
    Index all files under directory whose extension is in extensions.

    Args:
        directory: Root to walk. None or a missing directory yields [].
        category: "doc" or "code", fixed for every file produced
        extensions: Allowed extensions, e.g. [".md", ".txt"] (case-insensitive)
        exclude_dirs: Directory names to prune at any depth
        max_file_size: Files larger than this many bytes are skipped

    Returns:
        list[IndexedFile]: The indexed files, in walk order
    """
    if not directory:
        return []
    root = Path(directory).resolve()
    allowed = {ext.lower() for ext in extensions}
    results: list[IndexedFile] = []
    skipped = 0

    for rel_path in walk_dir(root, exclude_dirs):
        if os.path.splitext(rel_path)[1].lower() not in allowed:
            continue
        try:
            content = _read_file(root / rel_path, rel_path, max_file_size)
        except IndexingError as e:
            logger.debug(str(e))
            skipped += 1
            continue
        if content is None:
            skipped += 1
            continue
        results.append(IndexedFile.from_content(rel_path, content, category))

    logger.info(f"Indexed {len(results)} {category} files from {root} ({skipped} skipped)")
    return results
