from quartermaster.archive.builder import (
    DEFAULT_EXCLUDES,
    ArchiveResult,
    build_archive,
    is_excluded,
)

__all__ = ["DEFAULT_EXCLUDES", "ArchiveResult", "build_archive", "is_excluded"]
