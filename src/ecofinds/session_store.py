"""Session storage for ecofinds."""

import json
import os
import tempfile
from pathlib import Path

from . import config
from .errors import InvalidSchemaVersionError, SessionNotFoundError
from .models import Session

SCHEMA_VERSION = 1
SESSION_FILE = "session.json"


class SessionStore:
    """Reads and writes the saved session (API URL and bearer token)."""

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize SessionStore.

        Args:
            data_dir: Override base data directory (for testing).
        """
        self.data_dir = data_dir or config.DATA_DIR
        self.session_path = self.data_dir / SESSION_FILE

    def exists(self) -> bool:
        """Check if a session file exists."""
        return self.session_path.exists()

    def load(self) -> Session:
        """
        Load the session from disk.

        Raises:
            SessionNotFoundError: If no session was saved.
            InvalidSchemaVersionError: If schema version is unsupported.
        """
        if not self.exists():
            raise SessionNotFoundError(str(self.session_path))

        with open(self.session_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise InvalidSchemaVersionError(version, SCHEMA_VERSION)

        return Session.from_dict(data["session"])

    def save(self, session: Session) -> None:
        """
        Save the session to disk atomically.

        Uses write-to-temp-then-rename so a crash never leaves a torn file.
        """
        self.data_dir.mkdir(parents=True, exist_ok=True)

        data = {"schema_version": SCHEMA_VERSION, "session": session.to_dict()}
        fd, temp_path = tempfile.mkstemp(
            dir=self.data_dir, prefix=".session_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.chmod(temp_path, 0o600)
            os.replace(temp_path, self.session_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def clear(self) -> bool:
        """Delete the saved session. Returns False if there was none."""
        if not self.exists():
            return False
        self.session_path.unlink()
        return True
