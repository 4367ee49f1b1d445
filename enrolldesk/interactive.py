from __future__ import annotations

from datetime import date
from typing import Any, Callable, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from enrolldesk.app import AppContext
from enrolldesk.errors import ConsoleError
from enrolldesk.forms import REGISTER_FORM, LOGIN_FORM, FieldSpec, EntityForm
from enrolldesk.listview import ListView, Notification
from enrolldesk.model import COURSE, INSTRUCTOR, STUDENT, Record, course_status, parse_date, principal_name

console = Console()

LEVEL_STYLES = {
    "success": "green",
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
}

LIST_HELP = (
    "[s] search  [n] next  [p] previous  [g] go to page  [z] page size\n"
    "[a] add  [e #] edit  [d #] delete  [v #] details  [b] back"
)


def _println(msg: str = "") -> None:
    console.print(msg)


def _prompt(msg: str, password: bool = False) -> str:
    # prompts are plain text; "[s]"-style hints must not be read as markup
    return console.input(escape(msg), password=password)


def _safe_str(x: Any) -> str:
    return "" if x is None else str(x)


def _show_date(value: Any) -> str:
    d = parse_date(value)
    return d.strftime("%b %d, %Y") if d else "-"


def _show_notifications(notes: list[Notification]) -> None:
    for note in notes:
        style = LEVEL_STYLES.get(note.level, "white")
        _println(f"[{style}]{escape(note.text)}[/]")


def run_interactive(ctx: AppContext) -> None:
    """
    Main menu loop. Each entity screen keeps its own list view (and thus its
    own page/search state) for the lifetime of the session.
    """
    views = {kind.plural: ctx.view(kind) for kind in (STUDENT, COURSE, INSTRUCTOR)}

    while True:
        _print_header(ctx)

        logged_in = ctx.store.is_authenticated()
        menu = "\n[1] Students\n[2] Courses\n[3] Instructors\n"
        if logged_in:
            menu += "[4] My courses\n[5] Logout\n[6] My analytics\n[7] Edit my profile\n"
        else:
            menu += "[4] Login\n[5] Register\n"
        menu += "[0] Exit\nSelect: "

        choice = _prompt(menu).strip()

        if choice == "0":
            _println("Bye.")
            return

        if choice == "1":
            _flow_list(views["students"])
        elif choice == "2":
            _flow_list(views["courses"])
        elif choice == "3":
            _flow_list(views["instructors"])
        elif choice == "4" and logged_in:
            _flow_my_courses(ctx)
        elif choice == "4":
            _flow_login(views["instructors"])
        elif choice == "5" and logged_in:
            views["instructors"].logout()
            _show_notifications(views["instructors"].drain_notifications())
        elif choice == "5":
            _flow_register(views["instructors"])
        elif choice == "6" and logged_in:
            _flow_analytics(views["instructors"])
        elif choice == "7" and logged_in:
            if views["instructors"].open_profile():
                _flow_form(views["instructors"])
            _show_notifications(views["instructors"].drain_notifications())
        else:
            _println("Invalid choice.")


def _print_header(ctx: AppContext) -> None:
    _println("\n=== Student Enrollment System ===")
    _println(f"API: {escape(ctx.settings.api_url)}")
    principal = ctx.store.current_principal()
    if principal:
        dept = _safe_str(principal.get("department"))
        who = escape(principal_name(principal))
        _println(f"Welcome, [bold]{who}[/]" + (f" ({escape(dept)})" if dept else ""))
    else:
        _println("Not logged in (browse only; login to manage your courses)")


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


def _actions_cell(view: ListView, record: Record) -> str:
    if view.can_manage(record):
        return "[green]edit/delete[/]"
    return "[dim]View Only[/]"


def _student_row(view: ListView, r: Record) -> list[str]:
    name = f"{_safe_str(r.get('first_name'))} {_safe_str(r.get('last_name'))}".strip()
    return [
        escape(_safe_str(r.get("student_id"))),
        escape(name),
        escape(_safe_str(r.get("email"))),
        _show_date(r.get("date_of_birth")),
        escape(_safe_str(r.get("phone")) or "-"),
    ]


def _course_row(view: ListView, r: Record) -> list[str]:
    instructor = " ".join(
        x
        for x in (
            _safe_str(r.get("instructor_title")),
            _safe_str(r.get("instructor_first_name")),
            _safe_str(r.get("instructor_last_name")),
        )
        if x
    )
    status = course_status(r, view.today or date.today())
    status_style = {"upcoming": "blue", "active": "green", "completed": "dim"}[status]
    return [
        f"[bold cyan]{escape(_safe_str(r.get('course_code')))}[/]",
        escape(_safe_str(r.get("course_name"))),
        f"[magenta]{escape(instructor)}[/]" if instructor else "-",
        _safe_str(r.get("credits")),
        f"{_safe_str(r.get('enrolled_count') or 0)}/{_safe_str(r.get('max_capacity'))}",
        f"{_show_date(r.get('start_date'))} to {_show_date(r.get('end_date'))}",
        f"[{status_style}]{status.capitalize()}[/]",
        _actions_cell(view, r),
    ]


def _instructor_row(view: ListView, r: Record) -> list[str]:
    name = " ".join(x for x in (_safe_str(r.get(k)) for k in ("title", "first_name", "last_name")) if x)
    active = r.get("is_active")
    return [
        escape(name),
        escape(_safe_str(r.get("email"))),
        escape(_safe_str(r.get("department"))),
        escape(_safe_str(r.get("phone")) or "-"),
        f"{_safe_str(r.get('course_count') or 0)} courses",
        "[green]Active[/]" if active or active is None else "[red]Inactive[/]",
        _show_date(r.get("hire_date")),
        _actions_cell(view, r),
    ]


COLUMNS: dict[str, tuple[list[str], Callable[[ListView, Record], list[str]]]] = {
    STUDENT.plural: (["ID", "Name", "Email", "Date of birth", "Phone"], _student_row),
    COURSE.plural: (
        ["Code", "Course", "Instructor", "Credits", "Capacity", "Duration", "Status", "Actions"],
        _course_row,
    ),
    INSTRUCTOR.plural: (
        ["Instructor", "Email", "Department", "Phone", "Courses", "Status", "Hire date", "Actions"],
        _instructor_row,
    ),
}


def _render_table(view: ListView) -> None:
    headers, row_fn = COLUMNS[view.kind.plural]
    title = f"{view.kind.plural.capitalize()} | page {view.page}/{view.page_count} | {view.total} total"
    if view.search_text:
        title += f" | search: {escape(view.search_text)}"

    table = Table(title=title, box=box.SIMPLE)
    table.add_column("#", justify="right")
    for h in headers:
        table.add_column(h)

    for i, record in enumerate(view.rows, start=1):
        table.add_row(str(i), *row_fn(view, record))

    console.print(table)
    if not view.rows:
        _println("No results.")

    start = (view.page - 1) * view.page_size + 1 if view.rows else 0
    end = start + len(view.rows) - 1 if view.rows else 0
    _println(f"{start}-{end} of {view.total} {view.kind.plural}")


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------


def _pick_row(view: ListView, arg: str) -> Optional[Record]:
    if not arg.isdigit():
        _println("Please give a row number, e.g. 'e 2'.")
        return None
    i = int(arg)
    if not (1 <= i <= len(view.rows)):
        _println("Out of range.")
        return None
    return view.rows[i - 1]


def _flow_list(view: ListView) -> None:
    """
    One entity screen: fetch on entry, then react to single-letter commands.
    """
    view.mount()

    while True:
        _show_notifications(view.drain_notifications())
        _render_table(view)
        _println(escape(LIST_HELP))

        raw = _prompt(f"{view.kind.plural} > ").strip()
        if not raw or raw.lower() == "b":
            return

        cmd, _, arg = raw.partition(" ")
        cmd = cmd.lower()
        arg = arg.strip()

        if cmd == "s":
            text = arg if arg else _prompt("Search text [blank = all]: ")
            view.search(text)
        elif cmd == "n":
            if view.page < view.page_count:
                view.change_page(view.page + 1)
            else:
                _println("Already on the last page.")
        elif cmd == "p":
            if view.page > 1:
                view.change_page(view.page - 1)
            else:
                _println("Already on the first page.")
        elif cmd == "g":
            text = arg or _prompt("Page: ").strip()
            if text.isdigit():
                view.change_page(int(text))
            else:
                _println("Not a number.")
        elif cmd == "z":
            text = arg or _prompt(f"Page size [{view.page_size}]: ").strip()
            if text.isdigit():
                view.change_page(1, int(text))
            else:
                _println("Not a number.")
        elif cmd == "a":
            if view.open_create():
                _flow_form(view)
        elif cmd == "e":
            record = _pick_row(view, arg)
            if record is not None and view.open_edit(record):
                _flow_form(view)
        elif cmd == "d":
            record = _pick_row(view, arg)
            if record is not None:
                _flow_delete(view, record)
        elif cmd == "v":
            record = _pick_row(view, arg)
            if record is not None:
                _flow_details(view, record)
        else:
            _println("Invalid command.")


def _ask_field(form: EntityForm, spec: FieldSpec) -> None:
    current = form.values.get(spec.name)
    shown = "" if current is None else _safe_str(current)
    hint = ""
    if spec.choices:
        hint = f" ({'/'.join(spec.choices)})"
    elif spec.kind == "date":
        hint = " (YYYY-MM-DD)"

    if spec.kind == "secret":
        raw = _prompt(f"{spec.label}: ", password=True)
        form.set(spec.name, raw)
        return

    suffix = f" [{shown}]" if shown else ""
    raw = _prompt(f"{spec.label}{hint}{suffix} ('-' clears): ")
    if raw.strip() == "-":
        form.set(spec.name, None)
    elif raw.strip():
        form.set(spec.name, raw)


def _fill_form(form: EntityForm, only: Optional[set[str]] = None) -> None:
    for spec in form.fields:
        if only is None or spec.name in only:
            _ask_field(form, spec)


def _flow_form(view: ListView) -> None:
    """
    Prompt every field, then submit. On failure the form stays open and only
    the invalid fields are asked again (server rejections re-ask everything).
    """
    form = view.form
    if form is None:
        return

    if view.editing_profile:
        heading = "Edit My Profile"
    elif form.is_editing:
        heading = f"Edit {view.kind.label}"
    else:
        heading = f"Add New {view.kind.label}"
    _println(f"\n--- {heading} ---")
    if view.kind is COURSE and not form.is_editing:
        who = principal_name(view.store.current_principal())
        if who:
            _println(f"[cyan]This course will be automatically assigned to you: {escape(who)}[/]")

    _fill_form(form)

    while True:
        go = _prompt("Submit? [Y/n]: ").strip().lower()
        if go == "n":
            view.close_form()
            _println("Discarded.")
            return

        if view.submit_form():
            return

        _show_notifications(view.drain_notifications())
        again = _prompt("Try again? [Y/n]: ").strip().lower()
        if again == "n":
            view.close_form()
            return
        _fill_form(form, only=set(form.errors) or None)


def _flow_delete(view: ListView, record: Record) -> None:
    if not view.request_delete(record):
        return
    label = _safe_str(view.kind.record_id(record))
    sure = _prompt(f"Are you sure you want to delete this {view.kind.name} ({label})? [y/N]: ")
    if sure.strip().lower() == "y":
        view.confirm_delete()
    else:
        view.cancel_delete()
        _println("Cancelled.")


def _print_record(record: Record) -> None:
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in record.items():
        if key == "password":
            continue
        table.add_row(escape(key), escape(_safe_str(value)))
    console.print(table)


def _print_related(name: str, value: Any) -> None:
    _println(f"\n[bold]{escape(name.replace('_', ' ').capitalize())}[/]")
    if isinstance(value, list):
        if not value:
            _println("  (none)")
        for item in value:
            if isinstance(item, dict):
                bits = [f"{k}={_safe_str(v)}" for k, v in item.items() if not isinstance(v, (dict, list))]
                _println(f"  - {escape(' | '.join(bits))}")
            else:
                _println(f"  - {escape(_safe_str(item))}")
    elif isinstance(value, dict):
        _print_record(value)
    else:
        _println(f"  {escape(_safe_str(value))}")


def _flow_details(view: ListView, record: Record) -> None:
    _print_record(record)
    for name, value in view.related(record).items():
        _print_related(name, value)
    _show_notifications(view.drain_notifications())
    _prompt("\nPress Enter to go back...")


def _collect(fields: tuple[FieldSpec, ...]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for spec in fields:
        if spec.kind == "secret":
            values[spec.name] = _prompt(f"{spec.label}: ", password=True)
            continue
        hint = f" ({'/'.join(spec.choices)})" if spec.choices else ""
        default = f" [{spec.default}]" if spec.default is not None else ""
        raw = _prompt(f"{spec.label}{hint}{default}: ").strip()
        if raw:
            values[spec.name] = raw
    return values


def _flow_login(view: ListView) -> None:
    _println("\n--- Instructor Login ---")
    view.login(_collect(LOGIN_FORM.fields))
    _show_notifications(view.drain_notifications())


def _flow_register(view: ListView) -> None:
    _println("\n--- Register as Instructor ---")
    view.register(_collect(REGISTER_FORM.fields))
    _show_notifications(view.drain_notifications())


def _flow_my_courses(ctx: AppContext) -> None:
    try:
        courses = ctx.instructors.my_courses()
    except ConsoleError as exc:
        _println(f"[bold red]{escape(exc.message)}[/]")
        return

    if not courses:
        _println("You have no courses yet.")
        return

    table = Table(title="My courses", box=box.SIMPLE)
    for h in ("Code", "Course", "Capacity", "Duration", "Status"):
        table.add_column(h)
    for c in courses:
        table.add_row(
            f"[bold cyan]{escape(_safe_str(c.get('course_code')))}[/]",
            escape(_safe_str(c.get("course_name"))),
            f"{_safe_str(c.get('enrolled_count') or 0)}/{_safe_str(c.get('max_capacity'))}",
            f"{_show_date(c.get('start_date'))} to {_show_date(c.get('end_date'))}",
            course_status(c).capitalize(),
        )
    console.print(table)



def _flow_analytics(view: ListView) -> None:
    data = view.analytics()
    _show_notifications(view.drain_notifications())
    if data is None:
        return
    _print_related("my_analytics", data)
