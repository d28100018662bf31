"""Local file-based gateway.

Stores token records as JSON in ~/.config/tokenbook/tokens.json. Useful
offline and in tests; it enforces the same rules as the REST backend
(duplicate values refused, deletes reserved for super admins).
"""

import json
import os
import stat
import uuid
from pathlib import Path

from tokenbook.core.gateway.base import TokenGateway
from tokenbook.core.session import Role, SessionContext
from tokenbook.core.token import Token, TokenDraft, utcnow
from tokenbook.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateTokenError,
    TokenNotFoundError,
)

SECURE_FILE_MODE = stat.S_IRUSR | stat.S_IWUSR  # 0600


class LocalGateway(TokenGateway):
    DEFAULT_DATA_DIR = Path("~/.config/tokenbook")
    TOKENS_FILENAME = "tokens.json"

    def __init__(
        self,
        session: SessionContext | None,
        data_dir: Path | str | None = None,
    ):
        if data_dir is None:
            data_dir = self.DEFAULT_DATA_DIR
        self.session = session
        self.data_dir = Path(data_dir).expanduser()
        self.tokens_file = self.data_dir / self.TOKENS_FILENAME

    @property
    def gateway_type(self) -> str:
        return "local"

    def list_tokens(self) -> list[Token]:
        self._require_session()
        return self._read()

    def create_token(self, draft: TokenDraft) -> Token:
        self._require_session()
        tokens = self._read()
        if any(t.value == draft.value for t in tokens):
            raise DuplicateTokenError("Token already exists")

        token = Token(
            id=uuid.uuid4().hex,
            name=draft.name,
            value=draft.value,
            tag=draft.tag,
            created_at=draft.created_at or utcnow(),
        )
        tokens.append(token)
        self._write(tokens)
        return token

    def update_token(self, token_id: str, draft: TokenDraft) -> Token:
        self._require_session()
        tokens = self._read()
        for index, existing in enumerate(tokens):
            if existing.id == token_id:
                updated = Token(
                    id=token_id,
                    name=draft.name,
                    value=draft.value,
                    tag=draft.tag,
                    created_at=draft.created_at or existing.created_at,
                )
                tokens[index] = updated
                self._write(tokens)
                return updated
        raise TokenNotFoundError(token_id)

    def delete_token(self, token_id: str) -> None:
        session = self._require_session()
        if session.role != Role.SUPER_ADMIN:
            raise AuthorizationError()

        tokens = self._read()
        remaining = [t for t in tokens if t.id != token_id]
        if len(remaining) == len(tokens):
            raise TokenNotFoundError(token_id)
        self._write(remaining)

    def _require_session(self) -> SessionContext:
        if self.session is None:
            raise AuthenticationError()
        return self.session

    def _read(self) -> list[Token]:
        if not self.tokens_file.exists():
            return []

        try:
            data = json.loads(self.tokens_file.read_text())
            return [Token.model_validate(item) for item in data]
        except (json.JSONDecodeError, ValueError, TypeError):
            return []

    def _write(self, tokens: list[Token]) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        records = [token.to_record() for token in tokens]
        self.tokens_file.write_text(json.dumps(records, indent=2))
        os.chmod(self.tokens_file, SECURE_FILE_MODE)
