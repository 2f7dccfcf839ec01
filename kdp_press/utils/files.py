"""
Filesystem helpers shared by every output stage.

All outputs go through a temporary name first and are renamed into place
only after they were written completely.
"""

import os
import re
import shutil
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from kdp_press.errors import ConfigError, FilesystemError

PathLike = Union[str, Path]

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def sanitize_theme(name: str) -> str:
    """
    Normalize a theme into a directory name.

    Rule: lowercase, every run of characters outside [a-z0-9] becomes a
    single hyphen, no leading or trailing hyphen.
    """
    slug = _NON_ALNUM.sub("-", name.lower()).strip("-")
    if not slug:
        raise ConfigError(f"Theme '{name}' has no usable characters for a directory name")
    return slug


def page_filename(index: int, prefix: str = "page") -> str:
    """1-based, zero-padded file name: page-001.png"""
    return f"{prefix}-{index:03d}.png"


def _temp_sibling(path: Path) -> Path:
    return path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")


@contextmanager
def atomic_output(path: PathLike) -> Iterator[Path]:
    """
    Yield a temporary path next to ``path``; rename it over ``path`` when the
    block exits cleanly, delete it otherwise.
    """
    final = Path(path)
    try:
        final.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Could not create directory: {e}", str(final.parent)) from e

    tmp = _temp_sibling(final)
    try:
        yield tmp
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    try:
        os.replace(tmp, final)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise FilesystemError(f"Could not move output into place: {e}", str(final)) from e


def write_bytes_atomic(path: PathLike, data: bytes) -> Path:
    with atomic_output(path) as tmp:
        try:
            tmp.write_bytes(data)
        except OSError as e:
            raise FilesystemError(f"Write failed: {e}", str(path)) from e
    return Path(path)


def make_staging_dir(output_root: PathLike, slug: str) -> Path:
    root = Path(output_root)
    staging = root / f".staging-{slug}-{uuid.uuid4().hex[:8]}"
    try:
        staging.mkdir(parents=True)
    except OSError as e:
        raise FilesystemError(f"Could not create staging directory: {e}", str(staging)) from e
    return staging


def promote_staging_dir(staging: PathLike, final: PathLike) -> Path:
    """
    Move a fully written staging directory to its final name.

    An existing publication at ``final`` is moved aside first and removed
    only after the new one is in place.
    """
    staging = Path(staging)
    final = Path(final)
    backup = None
    try:
        if final.exists():
            backup = final.with_name(f".old-{final.name}-{uuid.uuid4().hex[:8]}")
            os.replace(final, backup)
        os.replace(staging, final)
    except OSError as e:
        if backup is not None and not final.exists():
            os.replace(backup, final)
        raise FilesystemError(f"Could not publish output directory: {e}", str(final)) from e
    if backup is not None:
        shutil.rmtree(backup, ignore_errors=True)
    return final


def discard_dir(path: PathLike) -> None:
    shutil.rmtree(path, ignore_errors=True)
