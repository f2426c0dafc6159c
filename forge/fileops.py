
import logging
import os
import pathlib
import shutil

from typing import List

logger = logging.getLogger(__name__)

def copy_tree(source: pathlib.Path, destination: pathlib.Path) -> List[pathlib.Path]:
    """Merges `source` into `destination`, overwriting files that already exist.

    A file or directory that fails to copy gets logged and skipped.
    Symlinked files are copied by content; symlinked directories are skipped.
    Returns the source paths that failed.
    """
    source = pathlib.Path(source)
    destination = pathlib.Path(destination)
    failed = []

    destination.mkdir(parents = True, exist_ok = True)

    for entry in sorted(source.iterdir()):
        target = destination / entry.name

        if entry.is_dir():
            if entry.is_symlink():
                logger.warning(f"COPY: skipping symlinked directory {entry}")
                continue

            try:
                failed += copy_tree(entry, target)
            except OSError as e:
                logger.warning(f"COPY: failed to copy directory '{entry}': {e}")
                failed.append(entry)
            continue

        try:
            shutil.copyfile(entry, target)
            shutil.copymode(entry, target)
        except OSError as e:
            logger.warning(f"COPY: failed to copy file '{entry}': {e}")
            failed.append(entry)

    return failed

def replace_tree(source: pathlib.Path, destination: pathlib.Path) -> List[pathlib.Path]:
    """Like copy_tree, but anything already at `destination` is wiped first so stale files don't survive."""
    destination = pathlib.Path(destination)

    if destination.is_symlink() or destination.is_file():
        os.remove(destination)
    elif destination.is_dir():
        shutil.rmtree(destination)

    return copy_tree(source, destination)
