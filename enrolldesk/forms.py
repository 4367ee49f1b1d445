"""
Entity and authentication forms.

A form is a modal, single-record editor that knows nothing about HTTP:
- it is seeded from an existing record (edit) or from defaults (create)
- write-only secrets (password) always start blank
- submit() validates, formats dates as YYYY-MM-DD and hands the payload to a
  caller-supplied handler
- cancel() throws away every edit

The schemas below are data: field order, defaults and rule lists. The terminal
UI walks them to prompt the user; tests drive them directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

from enrolldesk.errors import ValidationError
from enrolldesk.model import COURSE, INSTRUCTOR, STUDENT, EntityKind, Record, parse_date
from enrolldesk.session import Session, SessionStore
from enrolldesk.validation import (
    COURSE_CODE_RE,
    PASSWORD_RE,
    PHONE_RE,
    Rule,
    after_field,
    age_between,
    email,
    int_between,
    is_date,
    is_empty,
    length,
    not_after_today,
    not_before_today,
    one_of,
    pattern,
    required,
    validate,
)

CREATE = "create"
EDIT = "edit"

TITLES = ("Dr.", "Prof.", "Mr.", "Ms.", "Mrs.")

WIRE_DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    kind: str = "text"  # text | int | date | choice | secret | multiline
    default: Any = None
    rules: tuple[Rule, ...] = ()
    choices: tuple[str, ...] = ()
    modes: tuple[str, ...] = (CREATE, EDIT)
    # Only enforced when creating (e.g. "start date not in the past")
    create_rules: tuple[Rule, ...] = ()
    upper: bool = False


@dataclass(frozen=True)
class FormSchema:
    name: str
    fields: tuple[FieldSpec, ...]

    def fields_for(self, mode: str) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if mode in f.modes)

    def rules_for(self, mode: str) -> dict[str, tuple[Rule, ...]]:
        out: dict[str, tuple[Rule, ...]] = {}
        for f in self.fields_for(mode):
            out[f.name] = f.rules + (f.create_rules if mode == CREATE else ())
        return out


PHONE_RULE = pattern(PHONE_RE, "Please enter a valid phone number")

PASSWORD_RULES = (
    required("Please enter password"),
    length(6, None, "Password must be at least 6 characters long"),
    pattern(
        PASSWORD_RE,
        "Password must contain at least one lowercase letter, one uppercase letter, and one number",
    ),
)


def _name_rules(which: str) -> tuple[Rule, ...]:
    return (
        required(f"Please enter {which} name"),
        length(2, 50, f"{which.capitalize()} name must be between 2 and 50 characters"),
    )


STUDENT_FORM = FormSchema(
    name=STUDENT.name,
    fields=(
        FieldSpec("first_name", "First name", rules=_name_rules("first")),
        FieldSpec("last_name", "Last name", rules=_name_rules("last")),
        FieldSpec("email", "Email", rules=(required("Please enter email"), email())),
        FieldSpec(
            "date_of_birth",
            "Date of birth",
            kind="date",
            rules=(
                required("Please select date of birth"),
                is_date(),
                age_between(16, 120, "Student must be between 16 and 120 years old"),
            ),
        ),
        FieldSpec("phone", "Phone", rules=(PHONE_RULE,)),
        FieldSpec(
            "address",
            "Address",
            kind="multiline",
            rules=(length(None, 255, "Address cannot exceed 255 characters"),),
        ),
    ),
)

COURSE_FORM = FormSchema(
    name=COURSE.name,
    fields=(
        FieldSpec(
            "course_name",
            "Course name",
            rules=(
                required("Please enter course name"),
                length(3, 100, "Course name must be between 3 and 100 characters"),
            ),
        ),
        FieldSpec(
            "course_code",
            "Course code",
            upper=True,
            rules=(
                required("Please enter course code"),
                length(3, 20, "Course code must be between 3 and 20 characters"),
                pattern(COURSE_CODE_RE, "Course code must contain only uppercase letters and numbers"),
            ),
        ),
        FieldSpec(
            "description",
            "Description",
            kind="multiline",
            rules=(length(None, 1000, "Description cannot exceed 1000 characters"),),
        ),
        FieldSpec(
            "credits",
            "Credits",
            kind="int",
            default=3,
            rules=(required("Please enter credits"), int_between(1, 10, "Credits must be between 1 and 10")),
        ),
        FieldSpec(
            "max_capacity",
            "Maximum capacity",
            kind="int",
            default=30,
            rules=(
                required("Please enter maximum capacity"),
                int_between(1, 500, "Maximum capacity must be between 1 and 500"),
            ),
        ),
        FieldSpec(
            "start_date",
            "Start date",
            kind="date",
            rules=(required("Please select start date"), is_date()),
            create_rules=(not_before_today("Start date cannot be in the past"),),
        ),
        FieldSpec(
            "end_date",
            "End date",
            kind="date",
            rules=(
                required("Please select end date"),
                is_date(),
                after_field("start_date", "End date must be after start date"),
            ),
        ),
    ),
)

INSTRUCTOR_FORM = FormSchema(
    name=INSTRUCTOR.name,
    fields=(
        FieldSpec(
            "title",
            "Title",
            kind="choice",
            default="Mr.",
            choices=TITLES,
            rules=(one_of(TITLES, "Please choose a valid title"),),
        ),
        FieldSpec("first_name", "First name", rules=_name_rules("first")),
        FieldSpec("last_name", "Last name", rules=_name_rules("last")),
        FieldSpec("email", "Email", rules=(required("Please enter email"), email())),
        FieldSpec("password", "Password", kind="secret", rules=PASSWORD_RULES, modes=(CREATE,)),
        FieldSpec("phone", "Phone", rules=(PHONE_RULE,)),
        FieldSpec(
            "department",
            "Department",
            rules=(
                required("Please enter department"),
                length(2, 100, "Department must be between 2 and 100 characters"),
            ),
        ),
        FieldSpec(
            "bio",
            "Bio",
            kind="multiline",
            rules=(length(None, 1000, "Bio cannot exceed 1000 characters"),),
        ),
        FieldSpec(
            "hire_date",
            "Hire date",
            kind="date",
            rules=(is_date(), not_after_today("Hire date cannot be in the future")),
        ),
    ),
)

LOGIN_FORM = FormSchema(
    name="login",
    fields=(
        FieldSpec("email", "Email", rules=(required("Please enter your email"), email())),
        FieldSpec("password", "Password", kind="secret", rules=(required("Please enter your password"),)),
    ),
)

REGISTER_FORM = FormSchema(
    name="register",
    fields=(
        FieldSpec(
            "title",
            "Title",
            kind="choice",
            default="Mr.",
            choices=TITLES,
            rules=(one_of(TITLES, "Please choose a valid title"),),
        ),
        FieldSpec("first_name", "First name", rules=_name_rules("first")),
        FieldSpec("last_name", "Last name", rules=_name_rules("last")),
        FieldSpec("email", "Email", rules=(required("Please enter email"), email())),
        FieldSpec("password", "Password", kind="secret", rules=PASSWORD_RULES),
        FieldSpec(
            "department",
            "Department",
            rules=(length(2, 100, "Department must be between 2 and 100 characters"),),
        ),
        FieldSpec("phone", "Phone", rules=(PHONE_RULE,)),
    ),
)

SCHEMAS: dict[str, FormSchema] = {
    STUDENT.plural: STUDENT_FORM,
    COURSE.plural: COURSE_FORM,
    INSTRUCTOR.plural: INSTRUCTOR_FORM,
}


def schema_for(kind: EntityKind) -> FormSchema:
    return SCHEMAS[kind.plural]


def _normalize(spec: FieldSpec, raw: Any) -> Any:
    """
    Turn user input (usually a string typed in the terminal) into the form value.
    Unparseable input is kept as-is so validation can report it.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        text = raw if spec.kind == "secret" else raw.strip()
        if not text:
            return None
        if spec.upper:
            text = text.upper()
        if spec.kind == "int":
            try:
                return int(text)
            except ValueError:
                return text
        if spec.kind == "date":
            return parse_date(text) or text
        return text
    if spec.kind == "date":
        return parse_date(raw) or raw
    return raw


class EntityForm:
    """
    One open create/edit form.
    """

    def __init__(self, schema: FormSchema, record: Optional[Record] = None, today: date | None = None) -> None:
        self.schema = schema
        self.record = dict(record) if record else None
        self.mode = EDIT if record else CREATE
        self.today = today
        self.values: dict[str, Any] = self._initial_values()
        self.errors: dict[str, str] = {}
        self.closed = False

    @property
    def is_editing(self) -> bool:
        return self.mode == EDIT

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        return self.schema.fields_for(self.mode)

    def _initial_values(self) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for spec in self.fields:
            if spec.kind == "secret":
                values[spec.name] = None
            elif self.record is not None:
                values[spec.name] = _normalize(spec, self.record.get(spec.name))
            else:
                values[spec.name] = spec.default
        return values

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def set(self, name: str, raw: Any) -> None:
        self.values[name] = _normalize(self.field(name), raw)

    def update(self, raw_values: dict[str, Any]) -> None:
        for name, raw in raw_values.items():
            self.set(name, raw)

    def validate(self) -> dict[str, str]:
        self.errors = validate(self.values, self.schema.rules_for(self.mode), self.today)
        return self.errors

    def payload(self) -> dict[str, Any]:
        """
        Values ready for the wire: dates as YYYY-MM-DD, empty fields omitted on
        create and sent as null on edit (so clearing a field reaches the server).
        """
        out: dict[str, Any] = {}
        for spec in self.fields:
            value = self.values.get(spec.name)
            if spec.kind == "date" and value is not None:
                d = parse_date(value)
                value = d.strftime(WIRE_DATE_FORMAT) if d else value
            if is_empty(value):
                if spec.kind == "secret" or self.mode == CREATE:
                    continue
                value = None
            out[spec.name] = value
        return out

    def submit(self, handler: Callable[[dict[str, Any]], Any]) -> Any:
        """
        Validate and pass the payload to `handler`.

        Raises ValidationError (nothing is sent) when any rule fails. Errors
        raised by the handler propagate and the form stays open.
        """
        errors = self.validate()
        if errors:
            raise ValidationError(errors)
        result = handler(self.payload())
        self.closed = True
        return result

    def cancel(self) -> None:
        self.values = self._initial_values()
        self.errors = {}
        self.closed = True


class AuthForm:
    """
    Login / register surface driving the SessionStore.

    Registration does not log the user in; the caller closes the form and the
    user logs in separately.
    """

    def __init__(self, store: SessionStore, mode: str = "login") -> None:
        self.store = store
        self.forms = {"login": EntityForm(LOGIN_FORM), "register": EntityForm(REGISTER_FORM)}
        self.mode = "login"
        self.switch(mode)

    def switch(self, mode: str) -> None:
        if mode not in self.forms:
            raise ValueError(f"Unknown auth mode: {mode!r}")
        self.mode = mode

    @property
    def form(self) -> EntityForm:
        return self.forms[self.mode]

    def login(self, credentials: dict[str, Any] | None = None) -> Session:
        form = self.forms["login"]
        if credentials:
            form.update(credentials)
        return form.submit(self.store.login)

    def register(self, profile: dict[str, Any] | None = None) -> None:
        form = self.forms["register"]
        if profile:
            form.update(profile)
        form.submit(self.store.register)

    def submit(self) -> Optional[Session]:
        if self.mode == "login":
            return self.login()
        self.register()
        return None
