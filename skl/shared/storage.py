import logging
import os
import tempfile

logger = logging.getLogger("skl.storage")

_UPLOAD_URL_PREFIX = "/uploads/"


def ensure_dir(path: str) -> None:
    """Create directory if missing (mkdir -p equivalent)."""
    if path:
        os.makedirs(path, exist_ok=True)


def write_atomic(path: str, data, mode: str = "wb") -> None:
    """Write data to a temporary file then atomically rename to target path."""
    dir_path = os.path.dirname(path)
    ensure_dir(dir_path)
    fd, tmp_path = tempfile.mkstemp(dir=dir_path or ".")
    try:
        with os.fdopen(fd, mode) as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)


def remove_quietly(path: str) -> bool:
    """Delete a generated file, logging instead of raising when it is gone."""
    try:
        os.remove(path)
        return True
    except FileNotFoundError:
        return False
    except OSError:
        logger.exception("[STORAGE] could not delete %s", path)
        return False


def resolve_asset_path(value: str, asset_root: str | None) -> str:
    """Map a stored upload reference (``/uploads/logos/a.png``) to a file path.

    Every reference, absolute ones included, resolves under ``asset_root``.
    """
    relative = (value or "").strip()
    if relative.startswith(_UPLOAD_URL_PREFIX):
        relative = relative[len(_UPLOAD_URL_PREFIX):]
    relative = relative.lstrip("/")
    root = asset_root or "."
    root_real = os.path.realpath(root)
    resolved = os.path.realpath(os.path.join(root, relative))
    if resolved != root_real and not resolved.startswith(f"{root_real}{os.sep}"):
        raise ValueError(f"Asset path escapes upload root: {value!r}")
    return resolved
