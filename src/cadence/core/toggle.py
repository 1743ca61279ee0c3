"""Toggle resolution - decides what a checkbox click means.

classify_toggle() is pure: it returns one of four tagged actions and never
touches storage. The engine executes the action.
"""

from dataclasses import dataclass
from datetime import date, tzinfo

from .patterns import next_occurrence
from .todos import Todo


@dataclass(frozen=True)
class DirectWrite:
    """Non-recurring todo: set ``completed`` on the row."""

    todo: Todo
    completed: bool


@dataclass(frozen=True)
class AdvanceSeries:
    """
    Complete the current pending occurrence and move the series on.

    ``next_date`` is None when the end date or occurrence cap stops the
    series; then no successor is created.
    """

    todo: Todo
    occurrence_date: date
    next_date: date | None
    completed_occurrences: int


@dataclass(frozen=True)
class RecordHistory:
    """Mark a non-current occurrence in the ledger; the row is untouched."""

    todo: Todo
    scheduled_date: date
    completed: bool


@dataclass(frozen=True)
class NoOp:
    """Nothing to do (e.g. unchecking the current occurrence)."""

    todo: Todo
    reason: str


ToggleAction = DirectWrite | AdvanceSeries | RecordHistory | NoOp


def classify_toggle(
    todo: Todo,
    desired_completed: bool,
    virtual_date: date | None = None,
    today: date | None = None,
    tz: tzinfo | None = None,
) -> ToggleAction:
    """
    Classify a toggle of ``todo`` (or of its occurrence on ``virtual_date``).

    - no pattern -> DirectWrite
    - virtual_date given and not the stored due date (or no due date at
      all) -> RecordHistory
    - otherwise it is the current pending occurrence -> AdvanceSeries when
      completing, NoOp when unchecking (advance has no inverse) or when
      the series is already finished.

    Pure function - no I/O.
    """
    if not todo.is_recurring:
        return DirectWrite(todo=todo, completed=desired_completed)

    due = todo.due_on(tz)
    if virtual_date is not None and (due is None or virtual_date != due):
        return RecordHistory(todo=todo, scheduled_date=virtual_date, completed=desired_completed)

    if not desired_completed:
        return NoOp(todo=todo, reason="current occurrence cannot be un-completed")
    if todo.completed:
        return NoOp(todo=todo, reason="series already completed")

    occurrence = due or today or date.today()
    completed_occurrences = todo.completed_occurrences + 1
    return AdvanceSeries(
        todo=todo,
        occurrence_date=occurrence,
        next_date=next_occurrence(todo.recurring_pattern, occurrence, completed_occurrences),
        completed_occurrences=completed_occurrences,
    )
