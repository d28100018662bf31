"""Canonical in-memory token collection for the current session."""

from collections.abc import Iterable, Iterator

from tokenbook.core.token import Token


class TokenStore:
    """Single owner of every token record the client knows about.

    Tokens keep the order the gateway returned them in (then insertion
    order), which is the tie-breaker for every stable sort of the view.
    The store never talks to the network.
    """

    def __init__(self, tokens: Iterable[Token] | None = None):
        self._tokens: dict[str, Token] = {}
        if tokens:
            self.load(tokens)

    def load(self, tokens: Iterable[Token]) -> None:
        self._tokens = {}
        for token in tokens:
            self._tokens[token.id] = token

    def insert(self, token: Token) -> None:
        self._tokens[token.id] = token

    def remove(self, token_id: str) -> bool:
        if token_id in self._tokens:
            del self._tokens[token_id]
            return True
        return False

    def replace(self, token_id: str, token: Token) -> bool:
        if token_id not in self._tokens:
            return False
        # Keep the id immutable and the position unchanged
        self._tokens[token_id] = token.model_copy(update={"id": token_id})
        return True

    def get(self, token_id: str) -> Token | None:
        return self._tokens.get(token_id)

    def ids(self) -> list[str]:
        return list(self._tokens)

    def list_tokens(self) -> list[Token]:
        return list(self._tokens.values())

    def __contains__(self, token_id: object) -> bool:
        return token_id in self._tokens

    def __iter__(self) -> Iterator[Token]:
        return iter(list(self._tokens.values()))

    def __len__(self) -> int:
        return len(self._tokens)
