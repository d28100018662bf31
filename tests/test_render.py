"""Tests for the table renderer."""

from datetime import timedelta

from conftest import NOW, make_token
from tokenbook.core.controller import AppState, StatusLevel, StatusMessage
from tokenbook.core.render import FULL_MASK, age_note, mask_value, render, tag_label
from tokenbook.core.store import TokenStore
from tokenbook.core.token import Tag, TokenStatus
from tokenbook.core.view import FilterState


def make_state(session, tokens=(), **kwargs) -> AppState:
    return AppState(store=TokenStore(tokens), session=session, **kwargs)


class TestHelpers:
    def test_mask_long_value(self):
        assert mask_value("abcd1234wxyz") == "abcd••••••••wxyz"

    def test_mask_short_value(self):
        assert mask_value("12345678") == FULL_MASK

    def test_tag_label(self):
        assert tag_label(Tag.TESTING) == "🟡 Testing"
        assert tag_label(None) == "-"

    def test_age_notes(self):
        assert age_note(31, TokenStatus.EXPIRED, -1) == "Expired (31 days old)"
        assert age_note(27, TokenStatus.EXPIRING_SOON, 3) == "Expires in 3 days"
        assert age_note(2, TokenStatus.ACTIVE, 28) == "2 days old"


class TestRender:
    def test_rows_are_masked_unless_revealed(self, super_admin):
        tokens = [
            make_token("1", value="abcd1234wxyz"),
            make_token("2", value="efgh5678stuv"),
        ]
        state = make_state(super_admin, tokens, revealed={"2"})
        table = render(state, NOW)

        values = {row.id: row.value for row in table.rows}
        assert values == {"1": "abcd••••••••wxyz", "2": "efgh5678stuv"}

    def test_admin_rows_hide_delete(self, admin):
        table = render(make_state(admin, [make_token("1")]), NOW)
        assert table.rows[0].can_delete is False
        assert table.capabilities.tag_locked
        assert table.role_label == "Admin"

    def test_header_checkbox_follows_visible_selection(self, super_admin):
        state = make_state(super_admin, [make_token("1"), make_token("2")])
        state.selection.select_all(["1", "2"])
        assert render(state, NOW).header_checked is True

        state.selection.toggle("2")
        table = render(state, NOW)
        assert table.header_checked is False
        assert table.selected_count == 1

    def test_empty_and_no_results(self, super_admin):
        assert render(make_state(super_admin), NOW).empty is True

        state = make_state(
            super_admin, [make_token("1")], filters=FilterState(search="nothing")
        )
        table = render(state, NOW)
        assert table.empty is False
        assert table.no_results is True
        assert table.show_filter_stats is True

    def test_expiry_stats_shown_only_with_warnings(self, super_admin):
        fresh = render(make_state(super_admin, [make_token("1")]), NOW)
        stale = render(make_state(super_admin, [make_token("1", age=40)]), NOW)
        assert fresh.show_expiry_stats is False
        assert stale.show_expiry_stats is True
        assert stale.rows[0].status == TokenStatus.EXPIRED

    def test_status_expires(self, super_admin):
        status = StatusMessage(text="Saved", level=StatusLevel.SUCCESS, created_at=NOW)
        state = make_state(super_admin, status=status)

        assert render(state, NOW + timedelta(seconds=1)).status == "Saved"
        assert render(state, NOW + timedelta(seconds=6)).status is None

    def test_signed_out_state(self):
        table = render(make_state(None, [make_token("1")]), NOW)
        assert table.user is None
        assert table.capabilities.can_delete is False
