"""Match a pasted list of token values against the store.

Supported line formats:
1. Chat log lines: ``[21/11, 10:04 am] Name: token`` (value after the colon)
2. Plain values separated by newlines, spaces or commas
"""

import re
from collections.abc import Iterable

from pydantic import BaseModel, Field

from tokenbook.core.token import Token

BRACKETED_LINE = re.compile(r"\[.*?\].*?:\s*(.+)")
SEPARATORS = re.compile(r"[\s,]+")


class DeleteMatch(BaseModel):
    tokens: list[Token] = Field(default_factory=list)
    candidates: list[str] = Field(default_factory=list)

    @property
    def ids(self) -> list[str]:
        return [token.id for token in self.tokens]


def extract_candidates(text: str) -> list[str]:
    candidates: list[str] = []
    for line in text.splitlines():
        line = line.strip()
        if not line:
            continue

        match = BRACKETED_LINE.search(line)
        if match:
            value = match.group(1).strip()
            if value:
                candidates.append(value)
        else:
            candidates.extend(part for part in SEPARATORS.split(line) if part)
    return candidates


def find_match(candidate: str, tokens: Iterable[Token]) -> Token | None:
    """First token whose value contains the candidate or is contained by it."""
    needle = candidate.lower()
    for token in tokens:
        stored = token.value.lower()
        # An empty stored value would match every candidate
        if not stored:
            continue
        if needle in stored or stored in needle:
            return token
    return None


def match_tokens(text: str, tokens: Iterable[Token]) -> DeleteMatch:
    tokens = list(tokens)
    candidates = extract_candidates(text)

    matched: dict[str, Token] = {}
    for candidate in candidates:
        token = find_match(candidate, tokens)
        if token is not None and token.id not in matched:
            matched[token.id] = token

    return DeleteMatch(tokens=list(matched.values()), candidates=candidates)
