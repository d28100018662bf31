"""Sequential bulk operations against the token gateway."""

from collections.abc import Callable, Sequence
from enum import Enum
from typing import TypeVar

import structlog
from pydantic import BaseModel

from tokenbook.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DuplicateTokenError,
    GatewayError,
)

log = structlog.get_logger(__name__)

T = TypeVar("T")


class AbortReason(str, Enum):
    SIGNED_OUT = "signed_out"
    ACCESS_DENIED = "access_denied"


class BulkSummary(BaseModel):
    label: str
    succeeded: int = 0
    failed: int = 0
    duplicates: int = 0
    skipped: int = 0
    aborted: AbortReason | None = None

    @property
    def total(self) -> int:
        return self.succeeded + self.failed + self.duplicates + self.skipped

    @property
    def ok(self) -> bool:
        return self.aborted is None and self.succeeded > 0

    @property
    def message(self) -> str:
        if self.aborted == AbortReason.SIGNED_OUT:
            return "Session expired. Please sign in again."
        if self.aborted == AbortReason.ACCESS_DENIED:
            text = "Access denied."
        else:
            text = f"{self.label} complete!"

        parts = [f"✓ {self.succeeded} succeeded"]
        if self.duplicates:
            parts.append(f"⚠ {self.duplicates} duplicates skipped")
        if self.failed:
            parts.append(f"✗ {self.failed} failed")
        if self.skipped:
            parts.append(f"{self.skipped} not attempted")
        return f"{text} " + ", ".join(parts)


class BulkCoordinator:
    """Runs a per-item gateway operation over a list of targets, one at a time.

    Per-item failures are counted and the run carries on. An authentication
    failure or an authorization failure stops the run; the items not yet
    attempted are reported as skipped. On authentication failure the
    on_signed_out hook fires before the summary is returned.
    """

    def __init__(
        self,
        on_signed_out: Callable[[], None] | None = None,
        on_progress: Callable[[int, int], None] | None = None,
    ):
        self.on_signed_out = on_signed_out
        self.on_progress = on_progress

    def run(
        self,
        targets: Sequence[T],
        operation: Callable[[T], object],
        label: str = "Bulk operation",
    ) -> BulkSummary:
        summary = BulkSummary(label=label)

        for index, target in enumerate(targets):
            try:
                operation(target)
            except AuthenticationError:
                summary.aborted = AbortReason.SIGNED_OUT
                summary.skipped = len(targets) - index
                log.warning("bulk_aborted", label=label, reason="signed_out")
                if self.on_signed_out:
                    self.on_signed_out()
                return summary
            except AuthorizationError:
                summary.aborted = AbortReason.ACCESS_DENIED
                summary.skipped = len(targets) - index
                log.warning("bulk_aborted", label=label, reason="access_denied")
                return summary
            except DuplicateTokenError:
                summary.duplicates += 1
            except GatewayError as e:
                summary.failed += 1
                log.info("bulk_item_failed", label=label, index=index, error=e.message)
            else:
                summary.succeeded += 1
            if self.on_progress:
                self.on_progress(index + 1, len(targets))

        log.info(
            "bulk_finished",
            label=label,
            succeeded=summary.succeeded,
            failed=summary.failed,
            duplicates=summary.duplicates,
        )
        return summary
