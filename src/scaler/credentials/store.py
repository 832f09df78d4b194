"""Access-token file shared between processes.

The file holds the raw bearer token and nothing else.  Reads take a shared
``flock`` and writes an exclusive one, so concurrent readers never see a
half-written token.  The locks are advisory and only serialise access to
the file: two processes can still both decide to refresh, and the last
writer wins.
"""

from __future__ import annotations

import fcntl
import os
from pathlib import Path

from scaler.observability import get_logger

log = get_logger("scaler.credentials")


class TokenFileStore:
    """Load and save the cached access token at *path*.

    Parameters
    ----------
    path:
        Location of the token file.  The parent directory must exist.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> str | None:
        """Return the persisted token, or ``None`` when there is none.

        A missing file, an empty file, and any read failure all yield
        ``None``; read failures are logged.
        """
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                fcntl.flock(fh.fileno(), fcntl.LOCK_SH)
                try:
                    token = fh.read().strip()
                finally:
                    fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeError) as exc:
            log.warning(
                "Could not read token file",
                extra={"extra_fields": {"path": str(self.path), "error": str(exc)}},
            )
            return None
        return token or None

    def save(self, token: str) -> None:
        """Replace the file content with *token*.

        The write happens under an exclusive lock and is flushed to disk
        before the lock is released.  New files are created with mode
        ``0600``.
        """
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
            try:
                fh.truncate(0)
                fh.write(token)
                fh.flush()
                os.fsync(fh.fileno())
            finally:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)
