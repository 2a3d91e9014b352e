from __future__ import annotations

import shutil
from pathlib import Path

from reelsmith.exceptions import DependencyMissingError, PreconditionError


def require_binary(binary: str) -> None:
    if shutil.which(binary) is None:
        raise DependencyMissingError(
            f"Missing required dependency '{binary}'. Install it and try again."
        )


def require_file(path: str | Path, *, what: str) -> Path:
    resolved = Path(path).expanduser()
    if not str(path).strip():
        raise PreconditionError(f"Missing {what} path.")
    if not resolved.is_file():
        raise PreconditionError(f"{what.capitalize()} not found: {resolved}")
    return resolved
