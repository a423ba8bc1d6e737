"""Safe file I/O utilities.

Provides a replace-on-write helper for whole-file JSON documents: the new
content is written to a sibling temp file, ``fsync``-ed, then moved over
the target with ``os.replace`` so readers never observe a half-written
file.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def atomic_write_text(path: Path, text: str) -> None:
    """Replace *path* with *text*.

    * The temp file lives in the same directory so ``os.replace`` is a
      rename on the same filesystem.
    * ``os.fsync`` runs before the rename.
    * Parent directories are created on demand.
    * On failure the temp file is removed and the ``OSError`` propagates.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
