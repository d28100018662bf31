"""Shared fixtures for tokenbook tests."""

from datetime import UTC, datetime, timedelta

import pytest

from tokenbook.core.session import Role, SessionContext
from tokenbook.core.token import Tag, Token

NOW = datetime(2025, 11, 21, 12, 0, tzinfo=UTC)


def make_token(
    token_id: str,
    name: str = "Alice",
    value: str | None = None,
    tag: Tag | None = None,
    age: int = 0,
    now: datetime = NOW,
) -> Token:
    return Token(
        id=token_id,
        name=name,
        value=value if value is not None else f"value-{token_id}-abcdef",
        tag=tag,
        created_at=now - timedelta(days=age),
    )


@pytest.fixture
def super_admin() -> SessionContext:
    return SessionContext(
        role=Role.SUPER_ADMIN, display_name="Root", credential="super-secret"
    )


@pytest.fixture
def admin() -> SessionContext:
    return SessionContext(
        role=Role.ADMIN, display_name="Ops", credential="admin-secret"
    )
