"""Cadence CLI - personal task manager."""

import json
import logging
import sys
from dataclasses import replace
from datetime import date, datetime

import click

from .adapters.file_store import FileTodoStore
from .adapters.remote_store import AuthenticationError, RemoteTodoStore
from .config import Tokens, load_config
from .core.dates import local_date, parse_timestamp
from .core.errors import StorageError, ValidationError
from .core.patterns import RecurringPattern, format_recurring_pattern, parse_recurring_description
from .core.todos import Entry, StatusFilter, VirtualTodo, is_entry_completed
from .core.toggle import AdvanceSeries, DirectWrite, NoOp, RecordHistory
from .core.views import DateGroup, effective_time_minutes
from .engine import UNSET, ScheduleEngine
from .workflows import build_engine, sync_local_to_remote

HANDLED_ERRORS = (StorageError, ValidationError, AuthenticationError)

FILTER_OPTION = click.option(
    "--filter",
    "status",
    type=click.Choice([s.value for s in StatusFilter]),
    default=StatusFilter.ALL.value,
    help="Completion status to show",
)
SEARCH_OPTION = click.option("--search", "query", default="", help="Case-insensitive text search")
JSON_OPTION = click.option("--json", "as_json", is_flag=True, help="Output as JSON")


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _engine() -> ScheduleEngine:
    return build_engine()


def _parse_when(value: str | None) -> datetime | None:
    """ISO date or date-time from an option; 'none' means clear."""
    if value is None or value.lower() == "none":
        return None
    return parse_timestamp(value)


def _pattern_from_options(
    repeat: str | None,
    notify: str | None,
    reference: date,
    current: RecurringPattern | None = None,
) -> RecurringPattern | None:
    pattern = current
    if repeat:
        pattern = parse_recurring_description(repeat, reference)
        if pattern is None:
            raise ValidationError(f"Unrecognized repeat pattern: {repeat!r}")
    if notify:
        if pattern is None:
            raise ValidationError("--notify needs a repeating todo")
        pattern = replace(pattern, notify_at=notify)
    return pattern


def entry_to_dict(entry: Entry) -> dict:
    """JSON form of a view entry."""
    if isinstance(entry, VirtualTodo):
        data = entry.todo.to_dict()
        data.update(
            {
                "virtualDate": entry.virtual_date.isoformat(),
                "virtualKey": entry.virtual_key,
                "occurrenceCompleted": entry.occurrence_completed,
            }
        )
        return data
    return entry.to_dict()


def format_entry(entry: Entry, tz=None) -> str:
    mark = "x" if is_entry_completed(entry) else " "
    details = [f"#{entry.id}"]
    minutes = effective_time_minutes(entry, tz)
    if minutes is not None:
        details.append(f"{minutes // 60:02d}:{minutes % 60:02d}")
    if entry.recurring_pattern is not None:
        details.append(format_recurring_pattern(entry.recurring_pattern))
    return f"[{mark}] {entry.text} ({', '.join(details)})"


def _show_entries(entries: list[Entry], as_json: bool, empty_msg: str, tz=None) -> None:
    if as_json:
        click.echo(json.dumps([entry_to_dict(e) for e in entries], indent=2))
        return
    if not entries:
        click.echo(empty_msg)
        return
    for entry in entries:
        click.echo(format_entry(entry, tz))


def _show_groups(groups: list[DateGroup], as_json: bool, empty_msg: str, tz=None) -> None:
    if as_json:
        click.echo(
            json.dumps(
                [
                    {
                        "date": g.date.isoformat(),
                        "label": g.label,
                        "entries": [entry_to_dict(e) for e in g.entries],
                    }
                    for g in groups
                ],
                indent=2,
            )
        )
        return
    if not groups:
        click.echo(empty_msg)
        return
    for i, group in enumerate(groups):
        if i:
            click.echo()
        click.echo(f"### {group.label}")
        for entry in group.entries:
            click.echo(f"  {format_entry(entry, tz)}")


@click.group()
@click.version_option(package_name="cadence")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool):
    """Cadence - personal task manager."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )


@main.command()
@click.argument("text")
@click.option("--due", default=None, help="Due date (YYYY-MM-DD or ISO date-time)")
@click.option("--remind", default=None, help="Reminder time (ISO date-time)")
@click.option("--repeat", default=None, help='Repeat rule, e.g. "daily", "every mon and thu"')
@click.option("--notify", default=None, help="Notify time for repeating todos (HH:mm)")
def add(text: str, due: str | None, remind: str | None, repeat: str | None, notify: str | None):
    """Add a todo."""
    try:
        engine = _engine()
        due_date = _parse_when(due)
        reference = local_date(due_date, engine.tz) if due_date else engine.current_date()
        pattern = _pattern_from_options(repeat, notify, reference)
        todo = engine.create(text, due_date=due_date, reminder_at=_parse_when(remind), recurring_pattern=pattern)
    except HANDLED_ERRORS as e:
        _fail(e)

    click.echo(f"Added #{todo.id}: {todo.text}")


@main.command("list")
@FILTER_OPTION
@SEARCH_OPTION
@JSON_OPTION
def list_todos(status: str, query: str, as_json: bool):
    """List stored todos."""
    try:
        engine = _engine()
        todos = engine.list_todos(StatusFilter(status), query)
    except HANDLED_ERRORS as e:
        _fail(e)

    _show_entries(todos, as_json, "No todos.", engine.tz)


@main.command()
@FILTER_OPTION
@SEARCH_OPTION
@JSON_OPTION
def today(status: str, query: str, as_json: bool):
    """Show what is due today."""
    try:
        engine = _engine()
        entries = engine.today_view(StatusFilter(status), query)
    except HANDLED_ERRORS as e:
        _fail(e)

    _show_entries(entries, as_json, "Nothing due today.", engine.tz)


@main.command()
@FILTER_OPTION
@SEARCH_OPTION
@JSON_OPTION
def upcoming(status: str, query: str, as_json: bool):
    """Show the coming days, grouped by date."""
    try:
        engine = _engine()
        groups = engine.upcoming_view(StatusFilter(status), query)
    except HANDLED_ERRORS as e:
        _fail(e)

    _show_groups(groups, as_json, "Nothing upcoming.", engine.tz)


@main.command()
@FILTER_OPTION
@SEARCH_OPTION
@JSON_OPTION
def overdue(status: str, query: str, as_json: bool):
    """Show past-due todos and missed occurrences."""
    try:
        engine = _engine()
        groups = engine.overdue_view(StatusFilter(status), query)
    except HANDLED_ERRORS as e:
        _fail(e)

    _show_groups(groups, as_json, "Nothing overdue.", engine.tz)


def _toggle(todo_id: str, completed: bool, on: str | None) -> None:
    try:
        engine = _engine()
        virtual_date = local_date(on) if on else None
        action = engine.toggle(todo_id, completed, virtual_date)
    except HANDLED_ERRORS as e:
        _fail(e)

    text = action.todo.text
    match action:
        case DirectWrite():
            click.echo(f"{'Completed' if action.completed else 'Reopened'}: {text}")
        case AdvanceSeries():
            if action.next_date is None:
                click.echo(f"Completed {text} for {action.occurrence_date}; series finished.")
            else:
                click.echo(f"Completed {text} for {action.occurrence_date}; next on {action.next_date}.")
        case RecordHistory():
            state = "done" if action.completed else "not done"
            click.echo(f"Marked {text} on {action.scheduled_date} as {state}.")
        case NoOp():
            click.echo(f"Nothing to do: {action.reason}.")


@main.command()
@click.argument("todo_id")
@click.option("--date", "on", default=None, help="Occurrence date (YYYY-MM-DD) of a repeating todo")
def done(todo_id: str, on: str | None):
    """Mark a todo (or one occurrence) completed."""
    _toggle(todo_id, True, on)


@main.command()
@click.argument("todo_id")
@click.option("--date", "on", default=None, help="Occurrence date (YYYY-MM-DD) of a repeating todo")
def undo(todo_id: str, on: str | None):
    """Mark a todo (or one occurrence) not completed."""
    _toggle(todo_id, False, on)


@main.command()
@click.argument("todo_id")
def rm(todo_id: str):
    """Delete a todo."""
    try:
        _engine().delete(todo_id)
    except HANDLED_ERRORS as e:
        _fail(e)

    click.echo(f"Deleted #{todo_id}")


@main.command()
@click.argument("todo_id")
@click.option("--due", default=None, help="New due date; 'none' clears it")
@click.option("--remind", default=None, help="New reminder; 'none' clears it")
@click.option("--repeat", default=None, help="New repeat rule")
@click.option("--notify", default=None, help="Notify time (HH:mm) for the repeat rule")
@click.option("--clear-repeat", is_flag=True, help="Stop repeating")
def schedule(
    todo_id: str,
    due: str | None,
    remind: str | None,
    repeat: str | None,
    notify: str | None,
    clear_repeat: bool,
):
    """Change a todo's due date, reminder or repeat rule."""
    try:
        engine = _engine()
        todo = engine.find(todo_id)
        changes = {}
        if due is not None:
            changes["due_date"] = _parse_when(due)
        if remind is not None:
            changes["reminder_at"] = _parse_when(remind)
        if clear_repeat:
            changes["recurring_pattern"] = None
        elif repeat or notify:
            due_date = changes.get("due_date", todo.due_date)
            reference = local_date(due_date, engine.tz) if due_date else engine.current_date()
            changes["recurring_pattern"] = _pattern_from_options(
                repeat, notify, reference, todo.recurring_pattern
            )
        if not changes:
            click.echo("Nothing to change.")
            return
        updated = engine.update_schedule(todo.id, **changes)
    except HANDLED_ERRORS as e:
        _fail(e)

    due_str = updated.due_date.isoformat() if updated.due_date else "none"
    repeat_str = format_recurring_pattern(updated.recurring_pattern) if updated.recurring_pattern else "none"
    click.echo(f"Updated #{updated.id}: due {due_str}, repeat {repeat_str}")


@main.command()
@click.argument("todo_id")
@click.option("--days", default=30, show_default=True, help="How many past days to show")
@JSON_OPTION
def history(todo_id: str, days: int, as_json: bool):
    """Show the completion history of a repeating todo."""
    try:
        records = _engine().history(todo_id, days)
    except HANDLED_ERRORS as e:
        _fail(e)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in records], indent=2))
        return
    if not records:
        click.echo("No history.")
        return
    for record in records:
        state = "done" if record.is_completed else "not done"
        click.echo(f"{record.scheduled_date}  {state}")


@main.command()
@click.option("--days", default=30, show_default=True, help="Days of history to analyze")
@JSON_OPTION
def stats(days: int, as_json: bool):
    """Show today's progress and completion analytics."""
    try:
        engine = _engine()
        today_stats = engine.today_stats()
        data = engine.analytics(days)
    except HANDLED_ERRORS as e:
        _fail(e)

    if as_json:
        click.echo(
            json.dumps(
                {
                    "today": {
                        "total": today_stats.total,
                        "completed": today_stats.completed,
                        "active": today_stats.active,
                        "completionRate": today_stats.completion_rate,
                    },
                    "totalRegularCompleted": data.total_regular_completed,
                    "totalRecurringCompleted": data.total_recurring_completed,
                    "totalRecurringMissed": data.total_recurring_missed,
                    "completionRate": data.completion_rate,
                    "currentStreak": data.current_streak,
                },
                indent=2,
            )
        )
        return

    click.echo(
        f"Today: {today_stats.completed}/{today_stats.total} done ({today_stats.completion_rate}%)"
    )
    click.echo(f"Last {days} days:")
    click.echo(f"  Completed todos:        {data.total_regular_completed}")
    click.echo(f"  Completed occurrences:  {data.total_recurring_completed}")
    click.echo(f"  Missed occurrences:     {data.total_recurring_missed}")
    click.echo(f"  Completion rate:        {data.completion_rate}%")
    click.echo(f"  Current streak:         {data.current_streak} days")


@main.command()
@click.argument("token")
@click.option("--owner", default="", help="Account identifier")
def login(token: str, owner: str):
    """Store an access token for the remote backend."""
    Tokens(access_token=token, owner=owner).save()
    click.echo("Signed in.")


@main.command()
def logout():
    """Forget the stored access token and use local storage."""
    Tokens.clear()
    click.echo("Signed out.")


@main.command()
def sync():
    """Copy local (guest) todos into the signed-in account."""
    config = load_config()
    tokens = Tokens.load()
    if not tokens.is_authenticated:
        _fail(AuthenticationError("No access token. Run 'cadence login' first."))

    try:
        id_map = sync_local_to_remote(FileTodoStore(config.store_path), RemoteTodoStore(config, tokens))
    except HANDLED_ERRORS as e:
        _fail(e)

    click.echo(f"Synced {len(id_map)} todos.")


if __name__ == "__main__":
    main()
