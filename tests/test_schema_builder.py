import copy
import sys
import unittest
from pathlib import Path
from unittest import mock

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from formflow.models import (  # noqa: E402
    FieldDefinition,
    FieldPath,
    FormDefinition,
    PatternRule,
    RepeatableSectionDefinition,
    SelectedFile,
    StepDefinition,
    ValidationRule,
)
from formflow.schema_builder import (  # noqa: E402
    build_defaults,
    build_field_validator,
    build_form_validator,
    build_section_validator,
    build_step_validator,
)


def _field(**kwargs):
    return FieldDefinition(**{"name": "name", "label": "Name", **kwargs})


def _messages(result):
    return [failure.message for failure in result.failures]


JOBS = RepeatableSectionDefinition(
    name="jobs",
    label="Jobs",
    min_items=2,
    min_items_error="Add two jobs",
    fields=[
        FieldDefinition(name="company", required=True),
        FieldDefinition(name="current", kind="boolean"),
        FieldDefinition(name="until", kind="date", depends_on="current"),
    ],
    default_item={"company": "Acme"},
)

ABOUT = StepDefinition(
    id="about",
    fields=[
        FieldDefinition(name="first", label="First", required=True),
        FieldDefinition(name="email", validation=ValidationRule(email=True)),
        FieldDefinition(name="photo", kind="file", accept="image/*"),
    ],
    section=JOBS,
)

EXTRA = StepDefinition(id="extra", fields=[FieldDefinition(name="newsletter", kind="boolean")])


class FieldValidatorTests(unittest.TestCase):
    def test_required_empty_uses_configured_message(self):
        field = _field(validation=ValidationRule(required=True), error_messages={"required": "Name please"})
        result = build_field_validator(field)("")
        self.assertFalse(result.ok)
        self.assertEqual(_messages(result), ["Name please"])

    def test_required_empty_falls_back_to_generic_message(self):
        result = build_field_validator(_field(required=True))("")
        self.assertEqual(_messages(result), ["Name is required"])

    def test_required_missing_value_fails(self):
        result = build_field_validator(_field(required=True))(None)
        self.assertEqual(_messages(result), ["Name is required"])

    def test_optional_empty_passes_other_rules(self):
        field = _field(
            validation=ValidationRule(max_length=3, pattern=PatternRule(value="^x$"), email=True)
        )
        validator = build_field_validator(field)
        self.assertTrue(validator("").ok)
        self.assertTrue(validator(None).ok)

    def test_optional_with_min_length_rejects_empty(self):
        result = build_field_validator(_field(validation=ValidationRule(min_length=2)))("")
        self.assertEqual(_messages(result), ["Name must be at least 2 characters"])

    def test_checks_short_circuit_in_order(self):
        field = _field(
            validation=ValidationRule(required=True, min_length=5, pattern=PatternRule(value="^[a-z]+$")),
            error_messages={"pattern": "Lowercase only"},
        )
        validator = build_field_validator(field)
        self.assertEqual(_messages(validator("AB")), ["Name must be at least 5 characters"])
        self.assertEqual(_messages(validator("ABCDEF")), ["Lowercase only"])
        self.assertTrue(validator("abcdef").ok)

    def test_max_length(self):
        result = build_field_validator(_field(validation=ValidationRule(max_length=3)))("abcd")
        self.assertEqual(_messages(result), ["Name must be at most 3 characters"])

    def test_pattern_flags(self):
        field = _field(validation=ValidationRule(pattern=PatternRule(value="^abc$", flags="i")))
        self.assertTrue(build_field_validator(field)("ABC").ok)

    def test_pattern_searches_rather_than_matching_whole_value(self):
        field = _field(validation=ValidationRule(pattern=PatternRule(value="[0-9]")))
        self.assertTrue(build_field_validator(field)("abc1").ok)

    def test_end_anchor_rejects_trailing_newline(self):
        validator = build_field_validator(_field(validation=ValidationRule(pattern=PatternRule(value="^[0-9-]+$"))))
        self.assertTrue(validator("12345").ok)
        self.assertEqual(_messages(validator("12345\n")), ["Name is invalid"])

    def test_multiline_end_anchor_matches_before_newline(self):
        field = _field(validation=ValidationRule(pattern=PatternRule(value="^a$", flags="m")))
        self.assertTrue(build_field_validator(field)("a\nb").ok)

    def test_email_format(self):
        validator = build_field_validator(_field(validation=ValidationRule(required=True, email=True)))
        self.assertTrue(validator("ada@example.com").ok)
        self.assertEqual(_messages(validator("ada@")), ["Please enter a valid email address"])
        self.assertEqual(
            _messages(validator("Ada Lovelace <ada@example.com>")), ["Please enter a valid email address"]
        )

    def test_optional_url_skips_format_check_when_empty(self):
        validator = build_field_validator(_field(validation=ValidationRule(url=True)))
        with mock.patch("formflow.schema_builder._adapter_accepts") as accepts:
            self.assertTrue(validator("").ok)
            self.assertTrue(validator(None).ok)
        accepts.assert_not_called()

    def test_optional_url_checks_non_empty_values(self):
        field = _field(validation=ValidationRule(url=True), error_messages={"url": "Bad link"})
        validator = build_field_validator(field)
        self.assertTrue(validator("https://example.com/work").ok)
        self.assertEqual(_messages(validator("not a url")), ["Bad link"])

    def test_required_url_rejects_empty(self):
        validator = build_field_validator(_field(validation=ValidationRule(required=True, url=True)))
        self.assertFalse(validator("").ok)
        self.assertEqual(_messages(validator("nope")), ["Please enter a valid URL"])
        self.assertTrue(validator("https://example.com").ok)

    def test_boolean_ignores_string_rules(self):
        field = _field(kind="boolean", validation=ValidationRule(required=True, min_length=3))
        validator = build_field_validator(field)
        self.assertTrue(validator(True).ok)
        self.assertTrue(validator(False).ok)
        self.assertTrue(validator(None).ok)
        self.assertEqual(_messages(validator("yes")), ["Expected boolean"])

    def test_file_fields_are_always_optional(self):
        validator = build_field_validator(_field(kind="file", required=True))
        self.assertTrue(validator(None).ok)
        self.assertTrue(validator(SelectedFile(filename="cv.pdf")).ok)

    def test_malformed_value_is_reported_not_raised(self):
        result = build_field_validator(_field(required=True))(42)
        self.assertEqual(_messages(result), ["Expected string"])

    def test_failure_path_uses_given_location(self):
        at = FieldPath(step="about", field="name")
        result = build_field_validator(_field(required=True))("", at)
        self.assertEqual(result.failures[0].path, at)


class SectionValidatorTests(unittest.TestCase):
    def test_short_list_fails_on_section_as_whole(self):
        result = build_section_validator(JOBS)([{"company": "Acme", "current": False}])
        self.assertEqual(len(result.failures), 1)
        self.assertEqual(result.failures[0].path, FieldPath(section="jobs"))
        self.assertEqual(result.failures[0].message, "Add two jobs")

    def test_item_failures_are_collected(self):
        result = build_section_validator(JOBS)([{"company": ""}, {"company": ""}])
        self.assertEqual(
            [failure.path.dotted for failure in result.failures],
            ["jobs.0.company", "jobs.1.company"],
        )
        self.assertEqual(set(_messages(result)), {"Company is required"})

    def test_non_list_is_reported(self):
        result = build_section_validator(JOBS)("nope")
        self.assertEqual(_messages(result), ["Expected array"])

    def test_non_mapping_item_is_reported(self):
        result = build_section_validator(JOBS)(["x", {"company": "Acme"}])
        self.assertEqual(result.errors(), {"jobs.0": "Expected object"})


class StepAndFormValidatorTests(unittest.TestCase):
    def test_step_collects_all_failures(self):
        result = build_step_validator(ABOUT)({"first": "", "email": "bad", "jobs": []})
        self.assertFalse(result.ok)
        self.assertEqual(
            result.errors(),
            {
                "about.first": "First is required",
                "about.email": "Please enter a valid email address",
                "about.jobs": "Add two jobs",
            },
        )

    def test_form_validator_keys_by_step(self):
        form = FormDefinition(steps=[ABOUT, EXTRA])
        result = build_form_validator(form)({"extra": {"newsletter": "maybe"}})
        self.assertEqual(
            result.errors(),
            {"about": "Expected object", "extra.newsletter": "Expected boolean"},
        )

    def test_validation_never_mutates_input(self):
        record = {"about": {"first": "", "email": "", "jobs": [{"company": ""}]}}
        before = copy.deepcopy(record)
        build_form_validator(FormDefinition(steps=[ABOUT]))(record)
        self.assertEqual(record, before)


class DefaultsTests(unittest.TestCase):
    def test_defaults_follow_field_kinds(self):
        defaults = build_defaults(FormDefinition(steps=[ABOUT, EXTRA]))
        self.assertEqual(
            defaults,
            {
                "about": {
                    "first": "",
                    "email": "",
                    "photo": None,
                    "jobs": [{"company": "Acme", "current": False, "until": ""}],
                },
                "extra": {"newsletter": False},
            },
        )

    def test_sections_default_to_exactly_one_item(self):
        for min_items in (0, 1, 3):
            section = JOBS.model_copy(update={"min_items": min_items})
            step = ABOUT.model_copy(update={"section": section})
            defaults = build_defaults(FormDefinition(steps=[step]))
            self.assertEqual(len(defaults["about"]["jobs"]), 1)

    def test_defaults_are_fresh_objects(self):
        form = FormDefinition(steps=[ABOUT])
        first = build_defaults(form)
        first["about"]["jobs"][0]["company"] = "Changed"
        self.assertEqual(build_defaults(form)["about"]["jobs"][0]["company"], "Acme")
        self.assertEqual(JOBS.default_item, {"company": "Acme"})


if __name__ == "__main__":
    unittest.main()
