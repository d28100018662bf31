"""Session context and its on-disk persistence."""

import json
import os
import stat
from enum import Enum
from pathlib import Path

import structlog
from pydantic import BaseModel

log = structlog.get_logger(__name__)

SECURE_FILE_MODE = stat.S_IRUSR | stat.S_IWUSR  # 0600


class Role(str, Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class SessionContext(BaseModel):
    """Identity of the signed-in operator. Issued outside tokenbook."""

    role: Role
    display_name: str
    credential: str

    @property
    def is_super_admin(self) -> bool:
        return self.role == Role.SUPER_ADMIN

    @property
    def role_label(self) -> str:
        return "Super Admin" if self.is_super_admin else "Admin"


class SessionStore:
    """Keeps the current session in ~/.config/tokenbook/session.json."""

    DEFAULT_DATA_DIR = Path("~/.config/tokenbook")
    SESSION_FILENAME = "session.json"

    def __init__(self, data_dir: Path | str | None = None):
        if data_dir is None:
            data_dir = self.DEFAULT_DATA_DIR
        self.data_dir = Path(data_dir).expanduser()
        self.session_file = self.data_dir / self.SESSION_FILENAME

    def load(self) -> SessionContext | None:
        if not self.session_file.exists():
            return None

        try:
            data = json.loads(self.session_file.read_text())
            return SessionContext.model_validate(data)
        except (json.JSONDecodeError, ValueError):
            # Unreadable session counts as signed out
            log.warning("session_unreadable", path=str(self.session_file))
            self.clear()
            return None

    def save(self, session: SessionContext) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.session_file.write_text(session.model_dump_json(indent=2))
        os.chmod(self.session_file, SECURE_FILE_MODE)
        log.info("session_saved", role=session.role.value)

    def clear(self) -> None:
        if self.session_file.exists():
            self.session_file.unlink()
            log.info("session_cleared")
