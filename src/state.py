"""Persisted per-account markers.

The state file is a flat JSON object mapping account name to the marker of
the last notified transaction. It is the only durable state of the notifier
and is rewritten after every account so a crash loses at most one account's
progress.
"""

import json
import os
import tempfile
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)


class PersistenceError(Exception):
    """Raised when the state file cannot be read or written."""

    pass


class StateStore:
    """JSON-file backed mapping of account name to marker.

    Attributes:
        path: Location of the state file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._markers: dict[str, str] = {}

    def load(self) -> dict[str, str]:
        """Read the state file. A missing file is an empty state.

        Raises:
            PersistenceError: If the file is unreadable, not a JSON object,
                or holds a marker that is neither a string nor null.
        """
        if not self.path.exists():
            logger.info("state_file_absent", path=str(self.path))
            self._markers = {}
            return self.snapshot()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read state file {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"State file {self.path} must hold a JSON object")

        markers = {}
        for account, marker in data.items():
            if marker is None:
                # A null marker means nothing has been recorded yet
                logger.warning("state_marker_null", account=account)
                continue
            if not isinstance(marker, str):
                raise PersistenceError(
                    f"State file {self.path} has a non-string marker for {account!r}"
                )
            markers[str(account)] = marker

        self._markers = markers
        logger.info("state_loaded", path=str(self.path), accounts=len(self._markers))
        return self.snapshot()

    def get(self, account: str) -> str | None:
        return self._markers.get(account)

    def update(self, account: str, marker: str) -> None:
        """Set the marker for an account and write the file immediately."""
        previous = self._markers.get(account)
        self._markers[account] = marker
        try:
            self._write()
        except OSError as e:
            if previous is None:
                self._markers.pop(account, None)
            else:
                self._markers[account] = previous
            raise PersistenceError(
                f"Failed to write state file {self.path}: {e}"
            ) from e

        logger.info("state_updated", account=account, path=str(self.path))

    def snapshot(self) -> dict[str, str]:
        return dict(self._markers)

    def _write(self) -> None:
        # Write to a sibling temp file then rename so readers never see a
        # half-written file.
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=directory, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._markers, f, indent=2, sort_keys=True)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise
