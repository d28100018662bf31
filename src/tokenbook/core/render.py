"""Turn application state into a presentation-neutral table description."""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from tokenbook.core.policy import Capabilities, capabilities_for
from tokenbook.core.token import Tag, Token, TokenStatus, normalize_instant, utcnow
from tokenbook.core.view import ViewStats, derive_view

if TYPE_CHECKING:
    from tokenbook.core.controller import AppState

MASK = "••••••••"
FULL_MASK = "••••••••••••••"

TAG_LABELS = {
    Tag.BANTI: "🔴 Banti",
    Tag.DEVELOPMENT: "🟢 Development",
    Tag.TESTING: "🟡 Testing",
    Tag.STAGING: "🟠 Staging",
    Tag.PERSONAL: "🔵 Personal",
}


class RowView(BaseModel):
    id: str
    name: str
    value: str
    tag: str
    added_on: str
    age_days: int
    age_note: str
    status: TokenStatus
    selected: bool
    revealed: bool
    can_delete: bool


class TableView(BaseModel):
    rows: list[RowView] = Field(default_factory=list)
    stats: ViewStats = Field(default_factory=ViewStats)
    capabilities: Capabilities
    user: str | None = None
    role_label: str | None = None
    header_checked: bool = False
    selected_count: int = 0
    show_filter_stats: bool = False
    show_expiry_stats: bool = False
    empty: bool = True
    no_results: bool = False
    status: str | None = None
    status_level: str | None = None


def mask_value(value: str) -> str:
    if len(value) > 8:
        return f"{value[:4]}{MASK}{value[-4:]}"
    return FULL_MASK


def tag_label(tag: Tag | None) -> str:
    return TAG_LABELS[tag] if tag else "-"


def age_note(age: int, status: TokenStatus, days_left: int) -> str:
    if status == TokenStatus.EXPIRED:
        return f"Expired ({age} days old)"
    elif status == TokenStatus.EXPIRING_SOON:
        return f"Expires in {days_left} days"
    return f"{age} days old"


def render_row(
    token: Token,
    now: datetime,
    selected: bool,
    revealed: bool,
    can_delete: bool,
) -> RowView:
    age = token.age_days(now)
    status = token.status_at(now)
    return RowView(
        id=token.id,
        name=token.name or "Unknown",
        value=token.value if revealed else mask_value(token.value),
        tag=tag_label(token.tag),
        added_on=token.created_at.astimezone().strftime("%d-%m-%Y"),
        age_days=age,
        age_note=age_note(age, status, token.days_left(now)),
        status=status,
        selected=selected,
        revealed=revealed,
        can_delete=can_delete,
    )


def render(state: "AppState", now: datetime | None = None) -> TableView:
    """Describe what the token table should show for the given AppState."""
    now = normalize_instant(now) if now else utcnow()
    session = state.session
    capabilities = capabilities_for(session.role if session else None)

    view = derive_view(state.store, state.filters, now)
    rows = [
        render_row(
            token,
            now,
            selected=token.id in state.selection,
            revealed=token.id in state.revealed,
            can_delete=capabilities.can_delete,
        )
        for token in view.tokens
    ]

    status = state.status if state.status and state.status.visible_at(now) else None

    return TableView(
        rows=rows,
        stats=view.stats,
        capabilities=capabilities,
        user=session.display_name if session else None,
        role_label=session.role_label if session else None,
        header_checked=state.selection.is_all_selected(view.ids),
        selected_count=len(state.selection),
        show_filter_stats=view.filters_active,
        show_expiry_stats=view.stats.has_expiry_warnings,
        empty=len(state.store) == 0,
        no_results=not rows and len(state.store) > 0,
        status=status.text if status else None,
        status_level=status.level.value if status else None,
    )
