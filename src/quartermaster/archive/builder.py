"""Application archive builder.

This module packages a local application directory into a zip archive that
can be uploaded to the agent service as a new application version. Entries
are named by their path relative to the parent of the archived directory, so
extracting the archive recreates the directory itself.
"""

import fnmatch
import logging
import os
import stat
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Sequence, Union

from quartermaster.core.exceptions import ArchiveBuildError

logger = logging.getLogger(__name__)

# Matched anywhere in the archive path: OS metadata, VCS metadata and build
# output inside a Go workspace.
DEFAULT_EXCLUDES = (
    "*.DS_Store*",
    "*/.git/*",
    "*/.bzr/*",
    "*/.hg/*",
    "*go/*/.git*",
    "*go/*/.bzr*",
    "*go/*/.hg*",
    "*go/pkg*",
    "*go/bin*",
)


@dataclass
class ArchiveResult:
    """Summary of a finished archive."""

    path: Path
    entries: List[str] = field(default_factory=list)
    excluded: int = 0


def is_excluded(path: str, rules: Iterable[str]) -> bool:
    """Check whether an archive path matches any exclusion rule.

    Args:
        path: Archive path using forward slashes
        rules: Shell-style glob patterns; ``*`` also matches ``/``

    Returns:
        True if the path should be left out of the archive
    """
    return any(fnmatch.fnmatchcase(path, rule) for rule in rules)


def _iter_files(root: Path):
    """Yield (archive_name, filesystem_path) for every file below root."""
    base = root.parent
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        dirnames.sort()
        for name in sorted(filenames):
            full = Path(dirpath) / name
            yield full.relative_to(base).as_posix(), full


def _raise_walk_error(error: OSError):
    raise error


def build_archive(
    root: Union[str, Path],
    output: Union[str, Path],
    exclude: Sequence[str] = DEFAULT_EXCLUDES,
) -> ArchiveResult:
    """Write every non-excluded regular file under ``root`` into a zip archive.

    The destination is created or truncated. Any I/O error aborts the build;
    whatever was written to ``output`` so far is left in place and must be
    discarded by the caller.

    Args:
        root: Directory to package
        output: Path of the zip archive to write
        exclude: Glob patterns matched against each entry's archive path

    Returns:
        ArchiveResult listing the archived entry names

    Raises:
        ArchiveBuildError: If the directory can't be read or the archive written
    """
    root = Path(root).absolute()
    output = Path(output)
    if not root.is_dir():
        raise ArchiveBuildError(f"'{root}' is not a directory")

    result = ArchiveResult(path=output)
    output_abs = output.absolute()
    try:
        with zipfile.ZipFile(
            output, "w", compression=zipfile.ZIP_DEFLATED, strict_timestamps=False
        ) as zipf:
            for arcname, full in _iter_files(root):
                if full == output_abs:
                    continue
                if is_excluded(arcname, exclude):
                    logger.debug(f"Excluding {arcname}")
                    result.excluded += 1
                    continue

                # stat follows symlinks, so a link to a regular file is archived
                if not stat.S_ISREG(os.stat(full).st_mode):
                    continue

                zipf.write(full, arcname)
                result.entries.append(arcname)
    except OSError as e:
        raise ArchiveBuildError(f"Failed to build archive {output}: {e}") from e

    logger.info(f"Archived {len(result.entries)} files from {root} into {output} ({result.excluded} excluded)")
    return result
