"""Application state and the operations that act on it.

Single-item operations patch the store with the gateway's response.
Multi-item operations always finish with a full reload so the store
matches the backend exactly, whatever happened halfway through.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, tzinfo
from enum import Enum

import structlog
from pydantic import BaseModel, ConfigDict, Field

from tokenbook.core.bulk import AbortReason, BulkCoordinator, BulkSummary
from tokenbook.core.gateway.base import TokenGateway
from tokenbook.core.policy import (
    DELETE_DENIED,
    TAG_DENIED,
    Capabilities,
    capabilities_for,
)
from tokenbook.core.render import TableView, render
from tokenbook.core.selection import SelectionSet
from tokenbook.core.session import SessionContext, SessionStore
from tokenbook.core.store import TokenStore
from tokenbook.core.token import Tag, Token, TokenDraft, utcnow
from tokenbook.core.view import DerivedView, FilterState, derive_view
from tokenbook.exceptions import (
    AuthenticationError,
    AuthorizationError,
    GatewayError,
    ImportFormatError,
    TokenNotFoundError,
    ValidationError,
)
from tokenbook.parsers.delete_list import match_tokens
from tokenbook.parsers.message_log import MessageCandidate, parse_messages
from tokenbook.transfer import export_csv, export_json, parse_import

log = structlog.get_logger(__name__)

STATUS_TTL = timedelta(seconds=5)


class StatusLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class StatusMessage(BaseModel):
    text: str
    level: StatusLevel = StatusLevel.INFO
    created_at: datetime = Field(default_factory=utcnow)

    def visible_at(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) - self.created_at < STATUS_TTL


class AppState(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    store: TokenStore = Field(default_factory=TokenStore)
    filters: FilterState = Field(default_factory=FilterState)
    selection: SelectionSet = Field(default_factory=SelectionSet)
    session: SessionContext | None = None
    status: StatusMessage | None = None
    parsed_messages: list[MessageCandidate] = Field(default_factory=list)
    pending_deletes: list[Token] = Field(default_factory=list)
    revealed: set[str] = Field(default_factory=set)


class TokenBook:
    """Top-level controller; the only writer of AppState."""

    def __init__(
        self,
        gateway: TokenGateway,
        session: SessionContext | None,
        session_store: SessionStore | None = None,
        on_signed_out: Callable[[], None] | None = None,
    ):
        self.gateway = gateway
        self.session_store = session_store
        self.on_signed_out = on_signed_out
        self.state = AppState(session=session)
        self.bulk = BulkCoordinator(on_signed_out=self._tear_down_session)

    @property
    def capabilities(self) -> Capabilities:
        session = self.state.session
        return capabilities_for(session.role if session else None)

    @property
    def signed_in(self) -> bool:
        return self.state.session is not None

    # Status

    def _status(self, text: str, level: StatusLevel = StatusLevel.INFO) -> None:
        self.state.status = StatusMessage(text=text, level=level)

    def _ok(self, text: str) -> None:
        self._status(text, StatusLevel.SUCCESS)

    def _error(self, text: str) -> None:
        self._status(text, StatusLevel.ERROR)

    # Session

    def _tear_down_session(self) -> None:
        log.warning("session_expired")
        self.state.session = None
        self.state.selection.clear()
        if self.session_store is not None:
            self.session_store.clear()
        self._error("Session expired. Please sign in again.")
        if self.on_signed_out:
            self.on_signed_out()

    def sign_out(self) -> None:
        self.gateway.logout()
        self.state.session = None
        self.state.store.load([])
        self.state.selection.clear()
        if self.session_store is not None:
            self.session_store.clear()
        self._ok("Signed out")

    # Store reconciliation

    def _after_store_change(self) -> None:
        self.state.selection.prune(self.state.store.ids())
        self.state.revealed &= set(self.state.store.ids())

    def refresh(self) -> bool:
        try:
            tokens = self.gateway.list_tokens()
        except AuthenticationError:
            self._tear_down_session()
            return False
        except GatewayError as e:
            self._error(f"Failed to load tokens: {e.message}")
            return False

        self.state.store.load(tokens)
        self._after_store_change()
        log.info("tokens_loaded", count=len(tokens))
        return True

    def _finish_bulk(self, summary: BulkSummary) -> BulkSummary:
        self.state.selection.clear()
        if summary.aborted == AbortReason.SIGNED_OUT:
            return summary

        level = StatusLevel.SUCCESS if summary.ok else StatusLevel.ERROR
        message = summary.message
        if self.refresh():
            self._status(message, level)
        elif self.signed_in:
            self._error(f"{message} ({self.state.status.text})")
        return summary

    # Filters and selection

    def set_filters(self, **changes) -> DerivedView:
        self.state.filters = FilterState.model_validate(
            {**self.state.filters.model_dump(), **changes}
        )
        return self.view()

    def clear_search(self) -> DerivedView:
        return self.set_filters(search="")

    def view(self, now: datetime | None = None) -> DerivedView:
        return derive_view(self.state.store, self.state.filters, now)

    def render(self, now: datetime | None = None) -> TableView:
        return render(self.state, now)

    def toggle_selection(self, token_id: str) -> bool:
        if token_id not in self.state.store:
            return False
        return self.state.selection.toggle(token_id)

    def set_select_all(self, checked: bool) -> None:
        self.state.selection.set_all(checked, self.view().ids)

    def deselect_all(self) -> None:
        self.state.selection.clear()

    def is_all_selected(self) -> bool:
        return self.state.selection.is_all_selected(self.view().ids)

    def toggle_reveal(self, token_id: str) -> bool:
        if token_id in self.state.revealed:
            self.state.revealed.discard(token_id)
            return False
        if token_id in self.state.store:
            self.state.revealed.add(token_id)
            return True
        return False

    # Single-item operations

    def add_token(
        self,
        name: str,
        value: str,
        tag: Tag | None = None,
        created_at: datetime | None = None,
    ) -> Token | None:
        try:
            draft = TokenDraft(
                name=name,
                value=value,
                tag=self.capabilities.resolve_tag(tag),
                created_at=created_at,
            ).validate_required()
        except ValidationError as e:
            self._error(e.message)
            return None

        try:
            token = self.gateway.create_token(draft)
        except AuthenticationError:
            self._tear_down_session()
            return None
        except GatewayError as e:
            self._error(f"Failed to add token: {e.message}")
            return None

        self.state.store.insert(token)
        log.info("token_added", token_id=token.id)
        self._ok("Token added successfully!")
        return token

    def edit_token(
        self,
        token_id: str,
        name: str,
        value: str,
        tag: Tag | None,
        created_at: datetime | None,
    ) -> Token | None:
        if token_id not in self.state.store:
            self._error("Token not found")
            return None

        try:
            draft = TokenDraft(
                name=name,
                value=value,
                tag=self.capabilities.resolve_tag(tag),
                created_at=created_at,
            ).validate_required(require_date=True)
        except ValidationError as e:
            self._error(e.message)
            return None

        try:
            token = self.gateway.update_token(token_id, draft)
        except AuthenticationError:
            self._tear_down_session()
            return None
        except GatewayError as e:
            self._error(f"Failed to update token: {e.message}")
            return None

        self.state.store.replace(token_id, token)
        log.info("token_updated", token_id=token_id)
        self._ok("Token updated successfully!")
        return self.state.store.get(token_id)

    def delete_token(self, token_id: str) -> bool:
        if not self.capabilities.can_delete:
            self._error(DELETE_DENIED)
            return False

        try:
            self.gateway.delete_token(token_id)
        except AuthenticationError:
            self._tear_down_session()
            return False
        except AuthorizationError:
            self._error(DELETE_DENIED)
            return False
        except GatewayError as e:
            self._error(f"Failed to delete token: {e.message}")
            return False

        self.state.store.remove(token_id)
        self._after_store_change()
        log.info("token_deleted", token_id=token_id)
        self._ok("Token deleted successfully!")
        return True

    # Bulk operations

    def _delete_targets(self, targets: list[Token], label: str) -> BulkSummary | None:
        if not self.capabilities.can_bulk_delete:
            self._error(DELETE_DENIED)
            return None
        if not targets:
            self._error("No tokens to delete!")
            return None

        summary = self.bulk.run(
            targets, lambda token: self.gateway.delete_token(token.id), label
        )
        return self._finish_bulk(summary)

    def bulk_delete_selected(self) -> BulkSummary | None:
        self._after_store_change()
        return self._delete_targets(
            self.state.selection.resolve(self.state.store), "Bulk delete"
        )

    def find_tokens_to_delete(self, text: str) -> list[Token]:
        self.state.pending_deletes = []
        if not text.strip():
            self._error("Please paste token values first!")
            return []

        result = match_tokens(text, self.state.store)
        if not result.candidates:
            self._error("No valid token values found!")
            return []
        if not result.tokens:
            self._error("No matching tokens found!")
            return []

        self.state.pending_deletes = result.tokens
        self._status(
            f"Found {len(result.tokens)} matching tokens! "
            "Review and confirm deletion"
        )
        return result.tokens

    def confirm_bulk_delete(self) -> BulkSummary | None:
        if not self.capabilities.can_delete_by_search:
            self._error(DELETE_DENIED)
            return None

        targets = self.state.pending_deletes
        summary = self._delete_targets(targets, "Bulk delete")
        if summary is not None:
            self.state.pending_deletes = []
        return summary

    def _update_selected(
        self, label: str, changes: Callable[[Token], TokenDraft]
    ) -> BulkSummary | None:
        self._after_store_change()
        selected_ids = self.state.selection.ids()
        if not selected_ids:
            self._error("No tokens selected!")
            return None

        def update(token_id: str) -> Token:
            # Looked up per item; an id gone from the store counts as failed
            token = self.state.store.get(token_id)
            if token is None:
                raise TokenNotFoundError(token_id)
            return self.gateway.update_token(token_id, changes(token))

        summary = self.bulk.run(selected_ids, update, label)
        return self._finish_bulk(summary)

    def bulk_update_tag(self, tag: Tag | None) -> BulkSummary | None:
        if not self.capabilities.can_bulk_tag:
            self._error(TAG_DENIED)
            return None
        return self._update_selected(
            "Bulk tag update", lambda token: TokenDraft.from_token(token, tag=tag)
        )

    def bulk_update_date(self, created_at: datetime | None) -> BulkSummary | None:
        # No role gate here, unlike delete and tag updates
        if created_at is None:
            self._error("Please select a date!")
            return None
        return self._update_selected(
            "Bulk date update",
            lambda token: TokenDraft.from_token(token, created_at=created_at),
        )

    # Imports and exports

    def parse_messages(
        self, text: str, tz: tzinfo | None = None
    ) -> list[MessageCandidate]:
        self.state.parsed_messages = []
        if not text.strip():
            self._error("Please paste messages first!")
            return []

        candidates = parse_messages(text, tz)
        if not candidates:
            self._error("No valid messages found! Check the format.")
            return []

        self.state.parsed_messages = candidates
        self._ok(f"Found {len(candidates)} tokens! Review and import them")
        return candidates

    def import_parsed_messages(self, tag: Tag | None = None) -> BulkSummary | None:
        candidates = self.state.parsed_messages
        if not candidates:
            self._error("No tokens to import!")
            return None

        tag = self.capabilities.resolve_tag(tag)
        drafts = [
            TokenDraft(name=c.name, value=c.value, tag=tag, created_at=c.created_at)
            for c in candidates
        ]
        summary = self.bulk.run(drafts, self.gateway.create_token, "Import")
        self.state.parsed_messages = []
        return self._finish_bulk(summary)

    def import_json(self, text: str) -> BulkSummary | None:
        try:
            drafts = parse_import(text)
        except ImportFormatError as e:
            self._error(f"Failed to import tokens. {e.message}")
            return None

        capabilities = self.capabilities
        drafts = [
            draft.model_copy(update={"tag": capabilities.resolve_tag(draft.tag)})
            for draft in drafts
        ]
        summary = self.bulk.run(drafts, self.gateway.create_token, "Import")
        return self._finish_bulk(summary)

    def export(self, fmt: str) -> str:
        tokens = self.state.store.list_tokens()
        if fmt == "csv":
            data = export_csv(tokens)
        elif fmt == "json":
            data = export_json(tokens)
        else:
            raise ValueError(f"Unknown export format: {fmt}")
        self._ok(f"Exported {len(tokens)} tokens to {fmt.upper()} successfully!")
        return data
