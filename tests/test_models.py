import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from formflow.models import (  # noqa: E402
    FieldDefinition,
    FieldPath,
    FormDefinition,
    PatternRule,
    RepeatableSectionDefinition,
    StepDefinition,
    SubmissionResult,
    ValidationRule,
)
from formflow.registration import REGISTRATION_FORM  # noqa: E402
from formflow.schema_builder import build_defaults  # noqa: E402


class ConfigurationValidationTests(unittest.TestCase):
    def test_duplicate_field_names_rejected(self):
        with self.assertRaises(ValidationError):
            StepDefinition(id="s", fields=[FieldDefinition(name="a"), FieldDefinition(name="a")])

    def test_section_name_may_not_clash_with_field(self):
        with self.assertRaises(ValidationError):
            StepDefinition(
                id="s",
                fields=[FieldDefinition(name="jobs")],
                section=RepeatableSectionDefinition(name="jobs"),
            )

    def test_dependency_must_name_a_sibling(self):
        with self.assertRaises(ValidationError):
            StepDefinition(id="s", fields=[FieldDefinition(name="end", depends_on="current")])
        with self.assertRaises(ValidationError):
            FieldDefinition(name="end", depends_on="end")

    def test_dependency_may_not_name_the_section(self):
        with self.assertRaises(ValidationError):
            StepDefinition(
                id="s",
                fields=[FieldDefinition(name="summary", depends_on="jobs")],
                section=RepeatableSectionDefinition(name="jobs"),
            )

    def test_default_item_must_match_fields(self):
        with self.assertRaises(ValidationError):
            RepeatableSectionDefinition(
                name="jobs", fields=[FieldDefinition(name="company")], default_item={"salary": 1}
            )

    def test_step_ids_unique(self):
        with self.assertRaises(ValidationError):
            FormDefinition(steps=[StepDefinition(id="a"), StepDefinition(id="a")])

    def test_form_needs_a_step(self):
        with self.assertRaises(ValidationError):
            FormDefinition(steps=[])

    def test_invalid_pattern_rejected(self):
        with self.assertRaises(ValidationError):
            ValidationRule(pattern=PatternRule(value="(unclosed"))
        with self.assertRaises(ValidationError):
            PatternRule(value="x", flags="g")

    def test_negative_min_items_rejected(self):
        with self.assertRaises(ValidationError):
            RepeatableSectionDefinition(name="jobs", min_items=-1)

    def test_definitions_are_immutable(self):
        field = FieldDefinition(name="a")
        with self.assertRaises(ValidationError):
            field.name = "b"

    def test_submission_result_contract(self):
        with self.assertRaises(ValidationError):
            SubmissionResult(success=True)
        with self.assertRaises(ValidationError):
            SubmissionResult(success=False)


class PatternRuleTests(unittest.TestCase):
    def test_end_anchor_is_strict_without_multiline(self):
        compiled = PatternRule(value="^[0-9]+$").compile()
        self.assertIsNotNone(compiled.search("123"))
        self.assertIsNone(compiled.search("123\n"))

    def test_escaped_and_bracketed_dollars_stay_literal(self):
        self.assertIsNotNone(PatternRule(value=r"^\$[0-9]+$").compile().search("$5"))
        self.assertIsNotNone(PatternRule(value="^[$]$").compile().search("$"))
        self.assertIsNotNone(PatternRule(value="[]$]x").compile().search("$x"))


class FieldPathTests(unittest.TestCase):
    def test_dotted(self):
        self.assertEqual(FieldPath(step="work", section="jobs", index=0, field="company").dotted, "work.jobs.0.company")
        self.assertEqual(FieldPath(step="work", field="title").dotted, "work.title")

    def test_within(self):
        path = FieldPath(step="work", section="jobs", index=2, field="company")
        self.assertTrue(path.within(FieldPath(step="work")))
        self.assertTrue(path.within(FieldPath(step="work", section="jobs")))
        self.assertFalse(path.within(FieldPath(step="about")))
        self.assertFalse(path.within(FieldPath(step="work", section="jobs", index=1)))

    def test_paths_are_hashable(self):
        paths = {FieldPath(step="a", field="b"), FieldPath(step="a", field="b")}
        self.assertEqual(len(paths), 1)


class RegistrationFormTests(unittest.TestCase):
    def test_registration_form_shape(self):
        self.assertEqual(REGISTRATION_FORM.total_steps, 5)
        self.assertEqual(REGISTRATION_FORM.step_labels[-1], "Review & Submit")
        defaults = build_defaults(REGISTRATION_FORM)
        self.assertEqual(defaults["personalDetails"]["profilePhoto"], None)
        self.assertEqual(defaults["projects"]["openToCollaboration"], False)
        self.assertEqual(defaults["professionalExperience"]["experiences"][0]["employmentType"], "full-time")
        self.assertEqual(len(defaults["projects"]["projects"]), 1)


if __name__ == "__main__":
    unittest.main()
