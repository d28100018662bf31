"""Progress indicator utilities using rich library."""

import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)


@contextmanager
def progress_spinner(message: str = "Loading") -> Iterator[Progress]:
    """Indeterminate spinner around a single gateway call.

    Disappears after completion and stays off when stderr is not a
    terminal, so piped output is clean.

    Usage:
        with progress_spinner("Loading tokens"):
            book.refresh()
    """
    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        TimeElapsedColumn(),
        transient=True,
        disable=not sys.stderr.isatty(),
    )

    with progress:
        progress.add_task(message, total=None)
        yield progress


@contextmanager
def bulk_progress(message: str) -> Iterator[Callable[[int, int], None]]:
    """Counted progress bar for bulk runs.

    Yields a callback taking (done, total), suitable for
    BulkCoordinator.on_progress.
    """
    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        transient=True,
        disable=not sys.stderr.isatty(),
    )

    with progress:
        task = progress.add_task(message, total=None)

        def advance(done: int, total: int) -> None:
            progress.update(task, completed=done, total=total)

        yield advance
