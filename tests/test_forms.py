"""
Tests for entity forms and declarative validation rules.

All date rules run against a fixed "today" of 2026-03-01.
"""

import unittest
from datetime import date

from enrolldesk.errors import ValidationError
from enrolldesk.forms import (
    COURSE_FORM,
    INSTRUCTOR_FORM,
    STUDENT_FORM,
    EntityForm,
)
from enrolldesk.validation import PASSWORD_RE, PHONE_RE, validate, years_ago

TODAY = date(2026, 3, 1)


def valid_course(**overrides):
    values = {
        "course_name": "Intro to Programming",
        "course_code": "CS101",
        "credits": "3",
        "max_capacity": "30",
        "start_date": "2026-03-10",
        "end_date": "2026-06-30",
    }
    values.update(overrides)
    return values


class TestRules(unittest.TestCase):
    def test_password_needs_three_character_classes(self) -> None:
        self.assertIsNotNone(PASSWORD_RE.search("Passw0rd"))
        self.assertIsNone(PASSWORD_RE.search("password1"))
        self.assertIsNone(PASSWORD_RE.search("PASSWORD1"))
        self.assertIsNone(PASSWORD_RE.search("Password"))

    def test_phone_pattern(self) -> None:
        self.assertIsNotNone(PHONE_RE.search("+15551234567"))
        self.assertIsNone(PHONE_RE.search("0123"))
        self.assertIsNone(PHONE_RE.search("555-1234"))

    def test_years_ago_handles_leap_day(self) -> None:
        self.assertEqual(years_ago(date(2024, 2, 29), 1), date(2023, 2, 28))

    def test_first_failure_only(self) -> None:
        errors = validate({"first_name": ""}, STUDENT_FORM.rules_for("create"), TODAY)
        self.assertEqual(errors["first_name"], "Please enter first name")
        errors = validate({"first_name": "A"}, STUDENT_FORM.rules_for("create"), TODAY)
        self.assertEqual(errors["first_name"], "First name must be between 2 and 50 characters")


class TestCourseForm(unittest.TestCase):
    def test_defaults_on_create(self) -> None:
        form = EntityForm(COURSE_FORM, today=TODAY)
        self.assertEqual(form.mode, "create")
        self.assertEqual(form.values["credits"], 3)
        self.assertEqual(form.values["max_capacity"], 30)

    def test_valid_course_payload(self) -> None:
        form = EntityForm(COURSE_FORM, today=TODAY)
        form.update(valid_course(course_code=" cs101 "))
        sent = []
        form.submit(sent.append)

        self.assertEqual(
            sent[0],
            {
                "course_name": "Intro to Programming",
                "course_code": "CS101",
                "credits": 3,
                "max_capacity": 30,
                "start_date": "2026-03-10",
                "end_date": "2026-06-30",
            },
        )
        self.assertTrue(form.closed)

    def test_end_date_must_follow_start_date(self) -> None:
        for end in ("2026-03-10", "2026-03-09"):
            with self.subTest(end=end):
                form = EntityForm(COURSE_FORM, today=TODAY)
                form.update(valid_course(end_date=end))
                with self.assertRaises(ValidationError) as ctx:
                    form.submit(lambda payload: self.fail("handler must not run"))
                self.assertEqual(ctx.exception.errors, {"end_date": "End date must be after start date"})

    def test_later_end_date_is_accepted(self) -> None:
        for start, end in (("2026-03-01", "2026-03-02"), ("2026-04-01", "2027-01-31")):
            with self.subTest(start=start, end=end):
                form = EntityForm(COURSE_FORM, today=TODAY)
                form.update(valid_course(start_date=start, end_date=end))
                self.assertEqual(form.validate(), {})

    def test_start_date_in_past_only_blocks_create(self) -> None:
        create = EntityForm(COURSE_FORM, today=TODAY)
        create.update(valid_course(start_date="2026-01-10"))
        self.assertEqual(create.validate(), {"start_date": "Start date cannot be in the past"})

        record = {"course_id": 4, "instructor_id": 5, **valid_course(start_date="2026-01-10")}
        edit = EntityForm(COURSE_FORM, record=record, today=TODAY)
        self.assertEqual(edit.mode, "edit")
        self.assertEqual(edit.validate(), {})

    def test_credit_and_capacity_ranges(self) -> None:
        form = EntityForm(COURSE_FORM, today=TODAY)
        form.update(valid_course(credits="11", max_capacity="0"))
        errors = form.validate()
        self.assertEqual(errors["credits"], "Credits must be between 1 and 10")
        self.assertEqual(errors["max_capacity"], "Maximum capacity must be between 1 and 500")

    def test_non_numeric_credits_are_reported(self) -> None:
        form = EntityForm(COURSE_FORM, today=TODAY)
        form.update(valid_course(credits="three"))
        self.assertEqual(form.validate(), {"credits": "Credits must be between 1 and 10"})

    def test_lowercase_code_is_uppercased(self) -> None:
        form = EntityForm(COURSE_FORM, today=TODAY)
        form.set("course_code", "ma201")
        self.assertEqual(form.values["course_code"], "MA201")


class TestStudentForm(unittest.TestCase):
    def base(self, **overrides):
        values = {
            "first_name": "Lin",
            "last_name": "Chen",
            "email": "lin@uni.edu",
            "date_of_birth": "2005-05-20",
        }
        values.update(overrides)
        return values

    def test_age_bounds(self) -> None:
        form = EntityForm(STUDENT_FORM, today=TODAY)
        form.update(self.base(date_of_birth="2010-03-02"))
        self.assertEqual(form.validate(), {"date_of_birth": "Student must be between 16 and 120 years old"})

        form.set("date_of_birth", "2010-03-01")
        self.assertEqual(form.validate(), {})

        form.set("date_of_birth", "1905-01-01")
        self.assertIn("date_of_birth", form.validate())

    def test_unparseable_date(self) -> None:
        form = EntityForm(STUDENT_FORM, today=TODAY)
        form.update(self.base(date_of_birth="20.05.2005"))
        self.assertEqual(form.validate(), {"date_of_birth": "Please enter a date as YYYY-MM-DD"})

    def test_optional_fields_skipped_on_create(self) -> None:
        form = EntityForm(STUDENT_FORM, today=TODAY)
        form.update(self.base(phone="  ", address=""))
        payload = form.submit(lambda p: p)
        self.assertNotIn("phone", payload)
        self.assertNotIn("address", payload)

    def test_cleared_field_is_sent_as_null_on_edit(self) -> None:
        record = {"student_id": 2, "phone": "+15550001", **self.base()}
        form = EntityForm(STUDENT_FORM, record=record, today=TODAY)
        self.assertEqual(form.values["date_of_birth"], date(2005, 5, 20))
        form.set("phone", "")
        payload = form.submit(lambda p: p)
        self.assertIsNone(payload["phone"])
        self.assertEqual(payload["date_of_birth"], "2005-05-20")

    def test_invalid_phone_and_email(self) -> None:
        form = EntityForm(STUDENT_FORM, today=TODAY)
        form.update(self.base(email="not-an-email", phone="12-34"))
        errors = form.validate()
        self.assertEqual(errors["email"], "Please enter a valid email")
        self.assertEqual(errors["phone"], "Please enter a valid phone number")

    def test_cancel_discards_edits(self) -> None:
        record = {"student_id": 2, **self.base()}
        form = EntityForm(STUDENT_FORM, record=record, today=TODAY)
        form.set("first_name", "Changed")
        form.cancel()
        self.assertEqual(form.values["first_name"], "Lin")
        self.assertTrue(form.closed)


class TestInstructorForm(unittest.TestCase):
    def base(self, **overrides):
        values = {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "email": "ada@uni.edu",
            "password": "Passw0rd",
            "department": "Mathematics",
        }
        values.update(overrides)
        return values

    def test_title_defaults_to_mr(self) -> None:
        form = EntityForm(INSTRUCTOR_FORM, today=TODAY)
        self.assertEqual(form.values["title"], "Mr.")

    def test_password_rules_on_create(self) -> None:
        form = EntityForm(INSTRUCTOR_FORM, today=TODAY)
        form.update(self.base(password="Pw1"))
        self.assertEqual(form.validate(), {"password": "Password must be at least 6 characters long"})
        form.set("password", "password1")
        self.assertEqual(
            form.validate(),
            {"password": "Password must contain at least one lowercase letter, one uppercase letter, and one number"},
        )

    def test_edit_has_no_password_field(self) -> None:
        record = {"instructor_id": 5, "title": "Dr.", **self.base()}
        record.pop("password")
        form = EntityForm(INSTRUCTOR_FORM, record=record, today=TODAY)
        self.assertNotIn("password", [f.name for f in form.fields])
        payload = form.submit(lambda p: p)
        self.assertNotIn("password", payload)
        self.assertEqual(payload["title"], "Dr.")

    def test_hire_date_not_in_future(self) -> None:
        form = EntityForm(INSTRUCTOR_FORM, today=TODAY)
        form.update(self.base(hire_date="2026-03-02"))
        self.assertEqual(form.validate(), {"hire_date": "Hire date cannot be in the future"})
        form.set("hire_date", "2026-03-01")
        self.assertEqual(form.validate(), {})

    def test_unknown_title(self) -> None:
        form = EntityForm(INSTRUCTOR_FORM, today=TODAY)
        form.update(self.base(title="Sir"))
        self.assertEqual(form.validate(), {"title": "Please choose a valid title"})


if __name__ == "__main__":
    unittest.main()
