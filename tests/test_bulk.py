"""Tests for the bulk operation coordinator."""

from unittest.mock import MagicMock

from tokenbook.core.bulk import AbortReason, BulkCoordinator, BulkSummary
from tokenbook.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateTokenError,
    GatewayError,
    TokenNotFoundError,
)


class TestBulkCoordinator:
    def test_counts_successes_and_failures(self):
        operation = MagicMock(side_effect=[None, GatewayError("boom"), None])
        summary = BulkCoordinator().run(["a", "b", "c"], operation, "Test")

        assert summary.succeeded == 2
        assert summary.failed == 1
        assert summary.aborted is None
        assert operation.call_count == 3

    def test_runs_items_in_order(self):
        seen = []
        BulkCoordinator().run(["a", "b", "c"], seen.append)
        assert seen == ["a", "b", "c"]

    def test_not_found_counts_as_failed(self):
        operation = MagicMock(side_effect=[TokenNotFoundError("x"), None])
        summary = BulkCoordinator().run(["x", "y"], operation)
        assert summary.failed == 1
        assert summary.succeeded == 1

    def test_duplicates_are_counted_separately(self):
        duplicate = DuplicateTokenError("Token already exists")
        operation = MagicMock(side_effect=[duplicate, None])
        summary = BulkCoordinator().run(["a", "b"], operation)
        assert summary.duplicates == 1
        assert summary.succeeded == 1
        assert summary.failed == 0

    def test_authentication_failure_aborts_and_signs_out(self):
        signed_out = MagicMock()
        operation = MagicMock(side_effect=[None, AuthenticationError(), None, None])
        summary = BulkCoordinator(on_signed_out=signed_out).run(
            ["a", "b", "c", "d"], operation
        )

        assert operation.call_count == 2
        assert summary.aborted == AbortReason.SIGNED_OUT
        assert summary.succeeded == 1
        assert summary.skipped == 3
        signed_out.assert_called_once()

    def test_authorization_failure_aborts_without_sign_out(self):
        signed_out = MagicMock()
        operation = MagicMock(side_effect=[AuthorizationError(), None])
        summary = BulkCoordinator(on_signed_out=signed_out).run(["a", "b"], operation)

        assert operation.call_count == 1
        assert summary.aborted == AbortReason.ACCESS_DENIED
        assert summary.skipped == 2
        assert "Access denied" in summary.message
        signed_out.assert_not_called()

    def test_progress_callback(self):
        progress = MagicMock()
        BulkCoordinator(on_progress=progress).run(["a", "b"], MagicMock())
        progress.assert_any_call(1, 2)
        progress.assert_any_call(2, 2)

    def test_empty_targets(self):
        summary = BulkCoordinator().run([], MagicMock())
        assert summary.total == 0
        assert not summary.ok


class TestBulkSummary:
    def test_message_lists_outcomes(self):
        summary = BulkSummary(label="Import", succeeded=3, duplicates=1, failed=2)
        assert summary.message.startswith("Import complete!")
        assert "3 succeeded" in summary.message
        assert "1 duplicates skipped" in summary.message
        assert "2 failed" in summary.message

    def test_signed_out_message(self):
        summary = BulkSummary(label="x", aborted=AbortReason.SIGNED_OUT)
        assert "sign in" in summary.message
