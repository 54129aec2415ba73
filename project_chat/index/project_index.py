"""
ProjectIndex: the docs + code corpus behind the project tools.
The file list is an immutable tuple replaced in one assignment on re-index, so a
query always sees either the old or the new snapshot.
"""
from __future__ import annotations

import logging
from pathlib import Path

from ..common.config import IndexConfig
from .indexing import IndexedFile, index_dir

logger = logging.getLogger(__name__)


class ProjectIndex:
    def __init__(self, config: IndexConfig | None = None, build: bool = True):
        self.config = config or IndexConfig()
        self._files: tuple[IndexedFile, ...] = ()
        if build:
            self.build()

    @property
    def files(self) -> tuple[IndexedFile, ...]:
        return self._files

    @property
    def file_count(self) -> int:
        return len(self._files)

    def build(self) -> int:
        """Rebuild from scratch and swap the snapshot. Returns the new file count."""
        cfg = self.config
        files = [
            *index_dir(cfg.docs_dir, "doc", cfg.doc_extensions, cfg.exclude_dirs, cfg.max_file_size),
            *index_dir(cfg.code_dir, "code", cfg.code_extensions, cfg.exclude_dirs, cfg.max_file_size),
        ]
        self._files = tuple(files)
        return len(files)

    def reindex(self) -> int:
        count = self.build()
        logger.info(f"Re-indexed project: {count} files")
        return count

    def docs(self) -> list[IndexedFile]:
        return [f for f in self._files if f.category == "doc"]

    def code(self) -> list[IndexedFile]:
        return [f for f in self._files if f.category == "code"]

    def find(self, path: str) -> IndexedFile | None:
        for f in self._files:
            if f.path == path:
                return f
        return None

    def read_api_spec(self) -> str | None:
        """Content of the configured API spec file, or None if unset or unreadable."""
        if not self.config.api_spec_path:
            return None
        try:
            return Path(self.config.api_spec_path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read API spec %s: %s", self.config.api_spec_path, e)
            return None
