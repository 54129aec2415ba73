# Keyword index over a project's docs and source code.

from .indexing import IndexedFile, walk_dir, index_dir
from .search import search_index, extract_snippet, DEFAULT_MAX_RESULTS
from .project_index import ProjectIndex

__all__ = [
    "IndexedFile",
    "walk_dir",
    "index_dir",
    "search_index",
    "extract_snippet",
    "DEFAULT_MAX_RESULTS",
    "ProjectIndex",
]
