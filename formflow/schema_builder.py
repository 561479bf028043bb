"""Derive validators and default records from a FormDefinition.

Every builder here is a pure function of configuration. Validators never raise
for malformed values; they report failures in a ValidationResult instead.
"""

import copy
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, get_args

from email_validator import EmailNotValidError, validate_email
from pydantic import AnyUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from formflow.models import (
    STRING_KINDS,
    FieldDefinition,
    FieldKind,
    FieldPath,
    FormDefinition,
    RepeatableSectionDefinition,
    StepDefinition,
    ValidationFailure,
    ValidationResult,
)

logger = logging.getLogger(__name__)

Check = Callable[[Any, FieldPath], List[ValidationFailure]]

_URL_ADAPTER = TypeAdapter(AnyUrl)

EMAIL_FALLBACK = "Please enter a valid email address"
URL_FALLBACK = "Please enter a valid URL"


class Validator:
    """Callable wrapper around a check: ``validator(value, at=None) -> ValidationResult``."""

    def __init__(self, check: Check):
        self._check = check

    def __call__(self, value: Any, at: Optional[FieldPath] = None) -> ValidationResult:
        return ValidationResult.from_failures(self.failures(value, at or FieldPath()))

    def failures(self, value: Any, at: FieldPath) -> List[ValidationFailure]:
        return self._check(value, at)


def _adapter_accepts(adapter: TypeAdapter, value: str) -> bool:
    try:
        adapter.validate_python(value)
    except PydanticValidationError:
        return False
    return True


def _is_email_address(value: str) -> bool:
    """Accept a bare address only; "Name <addr>" forms are rejected."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _message(field: FieldDefinition, check: str, fallback: str) -> str:
    return field.error_messages.get(check) or fallback


def _fail(at: FieldPath, message: str) -> List[ValidationFailure]:
    return [ValidationFailure(path=at, message=message)]


def _boolean_check(field: FieldDefinition) -> Check:
    def check(value: Any, at: FieldPath) -> List[ValidationFailure]:
        # Missing booleans fall back to their default of False.
        if value is None or isinstance(value, bool):
            return []
        return _fail(at, _message(field, "type", "Expected boolean"))

    return check


def _file_check(field: FieldDefinition) -> Check:
    def check(value: Any, at: FieldPath) -> List[ValidationFailure]:
        return []

    return check


def _url_check(field: FieldDefinition) -> Check:
    required = field.is_required
    required_message = _message(field, "required", f"{field.display_label} is required")
    url_message = _message(field, "url", URL_FALLBACK)

    def check(value: Any, at: FieldPath) -> List[ValidationFailure]:
        if value is None or value == "":
            return _fail(at, required_message) if required else []
        if not isinstance(value, str):
            return _fail(at, _message(field, "type", "Expected string"))
        if not _adapter_accepts(_URL_ADAPTER, value):
            return _fail(at, url_message)
        return []

    return check


def _string_check(field: FieldDefinition) -> Check:
    rule = field.validation
    if rule.url:
        return _url_check(field)

    label = field.display_label
    required = field.is_required
    optional = not required and not rule.min_length
    pattern = rule.pattern.compile() if rule.pattern else None

    def check(value: Any, at: FieldPath) -> List[ValidationFailure]:
        if value is None:
            return [] if optional else _fail(at, _message(field, "required", f"{label} is required"))
        if not isinstance(value, str):
            return _fail(at, _message(field, "type", "Expected string"))
        if optional and value == "":
            return []
        if required and not value:
            return _fail(at, _message(field, "required", f"{label} is required"))
        if rule.min_length and len(value) < rule.min_length:
            return _fail(
                at,
                _message(field, "min_length", f"{label} must be at least {rule.min_length} characters"),
            )
        if rule.max_length is not None and len(value) > rule.max_length:
            return _fail(
                at,
                _message(field, "max_length", f"{label} must be at most {rule.max_length} characters"),
            )
        if pattern is not None and not pattern.search(value):
            return _fail(at, _message(field, "pattern", f"{label} is invalid"))
        if rule.email and not _is_email_address(value):
            return _fail(at, _message(field, "email", EMAIL_FALLBACK))
        return []

    return check


def _string_default(field: FieldDefinition) -> Any:
    return ""


def _boolean_default(field: FieldDefinition) -> Any:
    return False


def _file_default(field: FieldDefinition) -> Any:
    return None


_CHECK_BUILDERS: Dict[str, Callable[[FieldDefinition], Check]] = {
    **{kind: _string_check for kind in STRING_KINDS},
    "boolean": _boolean_check,
    "file": _file_check,
}

_DEFAULT_BUILDERS: Dict[str, Callable[[FieldDefinition], Any]] = {
    **{kind: _string_default for kind in STRING_KINDS},
    "boolean": _boolean_default,
    "file": _file_default,
}


def _ensure_exhaustive(table: Mapping[str, Any], table_name: str) -> None:
    missing = set(get_args(FieldKind)) - set(table)
    if missing:
        raise RuntimeError(f"{table_name} has no handler for field kinds: {sorted(missing)}")


_ensure_exhaustive(_CHECK_BUILDERS, "validator table")
_ensure_exhaustive(_DEFAULT_BUILDERS, "default table")


def build_field_validator(field: FieldDefinition) -> Validator:
    return Validator(_CHECK_BUILDERS[field.kind](field))


def _record_check(fields: List[FieldDefinition]) -> Check:
    """Check a mapping of field name -> value against the given field list."""
    checks = [(field.name, _CHECK_BUILDERS[field.kind](field)) for field in fields]

    def check(value: Any, at: FieldPath) -> List[ValidationFailure]:
        if not isinstance(value, Mapping):
            return _fail(at, "Expected object")
        failures: List[ValidationFailure] = []
        for name, field_check in checks:
            failures.extend(field_check(value.get(name), at.with_field(name)))
        return failures

    return check


def _section_check(section: RepeatableSectionDefinition) -> Check:
    item_check = _record_check(section.fields)
    too_short = section.min_items_error or (
        f"{section.display_label} requires at least {section.min_items} items"
    )

    def check(value: Any, at: FieldPath) -> List[ValidationFailure]:
        section_path = at.with_section(section.name)
        if not isinstance(value, list):
            return _fail(section_path, "Expected array")
        failures: List[ValidationFailure] = []
        for index, item in enumerate(value):
            failures.extend(item_check(item, section_path.with_index(index)))
        if len(value) < section.min_items:
            failures.extend(_fail(section_path, too_short))
        return failures

    return check


def build_section_validator(section: RepeatableSectionDefinition) -> Validator:
    return Validator(_section_check(section))


def _step_check(step: StepDefinition) -> Check:
    fields_check = _record_check(step.fields)
    section_check = _section_check(step.section) if step.section else None

    def check(value: Any, at: FieldPath) -> List[ValidationFailure]:
        step_path = at.with_step(step.id)
        failures = fields_check(value, step_path)
        if section_check is not None and isinstance(value, Mapping):
            failures.extend(section_check(value.get(step.section.name), step_path))
        return failures

    return check


def build_step_validator(step: StepDefinition) -> Validator:
    """Validator for one step's mapping (``record[step.id]``).

    Failure paths are rooted at the step id.
    """
    return Validator(_step_check(step))


def build_form_validator(form: FormDefinition) -> Validator:
    """Validator for a whole live record keyed by step id."""
    step_checks = [(step.id, _step_check(step)) for step in form.steps]

    def check(value: Any, at: FieldPath) -> List[ValidationFailure]:
        if not isinstance(value, Mapping):
            return _fail(at, "Expected object")
        failures: List[ValidationFailure] = []
        for step_id, step_check in step_checks:
            failures.extend(step_check(value.get(step_id), at))
        return failures

    return Validator(check)


def build_field_default(field: FieldDefinition) -> Any:
    return _DEFAULT_BUILDERS[field.kind](field)


def build_item_template(section: RepeatableSectionDefinition) -> Dict[str, Any]:
    """Kind defaults for every item field, overlaid by the section's default item."""
    template = {field.name: build_field_default(field) for field in section.fields}
    template.update(copy.deepcopy(section.default_item))
    return template


def build_step_defaults(step: StepDefinition) -> Dict[str, Any]:
    defaults = {field.name: build_field_default(field) for field in step.fields}
    if step.section is not None:
        # Always one editable item, whatever min_items says.
        defaults[step.section.name] = [build_item_template(step.section)]
    return defaults


def build_defaults(form: FormDefinition) -> Dict[str, Dict[str, Any]]:
    defaults = {step.id: build_step_defaults(step) for step in form.steps}
    logger.debug("Built default record for %d steps", len(defaults))
    return defaults
