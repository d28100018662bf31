"""Selection of token ids marked for bulk actions."""

from collections.abc import Iterable, Iterator

from tokenbook.core.store import TokenStore
from tokenbook.core.token import Token


class SelectionSet:
    """Insertion-ordered set of selected token ids.

    The header checkbox is two-state: checking it selects every visible id,
    unchecking it clears the whole selection, visible or not.
    """

    def __init__(self, ids: Iterable[str] | None = None):
        self._ids: dict[str, None] = dict.fromkeys(ids or ())

    def toggle(self, token_id: str) -> bool:
        """Flip one id; returns True when it ends up selected."""
        if token_id in self._ids:
            del self._ids[token_id]
            return False
        self._ids[token_id] = None
        return True

    def select_all(self, visible_ids: Iterable[str]) -> None:
        for token_id in visible_ids:
            self._ids.setdefault(token_id, None)

    def set_all(self, checked: bool, visible_ids: Iterable[str]) -> None:
        if checked:
            self.select_all(visible_ids)
        else:
            self.clear()

    def clear(self) -> None:
        self._ids.clear()

    def is_all_selected(self, visible_ids: Iterable[str]) -> bool:
        visible = list(visible_ids)
        return bool(visible) and all(token_id in self._ids for token_id in visible)

    def prune(self, existing_ids: Iterable[str]) -> int:
        """Drop ids no longer in the store; returns how many were dropped."""
        existing = set(existing_ids)
        stale = [token_id for token_id in self._ids if token_id not in existing]
        for token_id in stale:
            del self._ids[token_id]
        return len(stale)

    def resolve(self, store: TokenStore) -> list[Token]:
        tokens = []
        for token_id in self._ids:
            token = store.get(token_id)
            if token is not None:
                tokens.append(token)
        return tokens

    def ids(self) -> list[str]:
        return list(self._ids)

    def __contains__(self, token_id: object) -> bool:
        return token_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)
