"""Step-wizard state machine over a FormDefinition.

The controller owns the live record. Every mutation goes through it, and
validation, enablement and defaults are all derived from the form definition
it was constructed with.
"""

import asyncio
import copy
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from formflow.dependencies import DisabledValuePolicy, apply_disabled_policy, resolve_enabled
from formflow.errors import FormflowError, IllegalTransitionError, UnknownPathError
from formflow.models import (
    FieldDefinition,
    FieldPath,
    FieldState,
    FormDefinition,
    SelectedFile,
    SubmissionResult,
    ValidationFailure,
    ValidationResult,
)
from formflow.previews import Previewer, read_data_url
from formflow.schema_builder import build_defaults, build_step_validator
from formflow.sections import RepeatableSectionManager
from formflow.submission import Submitter, coerce_result

logger = logging.getLogger(__name__)


class WizardPhase(str, Enum):
    EDITING = "editing"
    SUBMITTING = "submitting"
    SUCCESS = "success"


class WizardProgress(BaseModel):
    step_index: int
    total_steps: int
    step_labels: List[str]
    is_review_step: bool


def public_value(value: Any) -> Any:
    if isinstance(value, SelectedFile):
        return value.describe()
    if isinstance(value, dict):
        return {key: public_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [public_value(item) for item in value]
    return value


def _shift_path(path: FieldPath, section_path: FieldPath, removed: int) -> Optional[FieldPath]:
    """Re-index ``path`` after item ``removed`` left the section; None drops it."""
    if path.index is None or not path.within(section_path):
        return path
    if path.index == removed:
        return None
    if path.index > removed:
        return path.with_index(path.index - 1)
    return path


class WizardController:
    def __init__(
        self,
        form: FormDefinition,
        submitter: Submitter,
        previewer: Previewer = read_data_url,
        policy: DisabledValuePolicy = DisabledValuePolicy.PASS_THROUGH,
    ):
        self.form = form
        self.policy = policy
        self._submitter = submitter
        self._previewer = previewer
        self._step_validators = [build_step_validator(step) for step in form.steps]

        self._record: Dict[str, Dict[str, Any]] = build_defaults(form)
        self._phase = WizardPhase.EDITING
        self._step_index = 0
        self._submission_id: Optional[str] = None
        self._submission_error: Optional[str] = None
        self._failures: List[ValidationFailure] = []
        self._file_names: Dict[FieldPath, str] = {}
        self._previews: Dict[FieldPath, str] = {}

    # ------------------------------------------------------------------ state

    @property
    def phase(self) -> WizardPhase:
        return self._phase

    @property
    def step_index(self) -> int:
        return self._step_index

    @property
    def total_steps(self) -> int:
        return self.form.total_steps

    @property
    def is_review_step(self) -> bool:
        return self._step_index == self.form.review_index

    @property
    def submission_id(self) -> Optional[str]:
        return self._submission_id

    @property
    def submission_error(self) -> Optional[str]:
        return self._submission_error

    @property
    def validation_result(self) -> ValidationResult:
        return ValidationResult.from_failures(self._failures)

    @property
    def record(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of the live record; editing it does not affect the wizard."""
        return copy.deepcopy(self._record)

    @property
    def progress(self) -> WizardProgress:
        return WizardProgress(
            step_index=self._step_index,
            total_steps=self.total_steps,
            step_labels=self.form.step_labels,
            is_review_step=self.is_review_step,
        )

    def snapshot(self) -> Dict[str, Any]:
        """JSON-friendly view of the wizard for hosts."""
        return {
            "phase": self._phase.value,
            "progress": self.progress.model_dump(),
            "record": public_value(self._record),
            "errors": self.validation_result.errors(),
            "submission_error": self._submission_error,
            "submission_id": self._submission_id,
        }

    def _require_editing(self, action: str) -> None:
        if self._phase is not WizardPhase.EDITING:
            raise IllegalTransitionError(f"cannot {action} while {self._phase.value}")

    # ----------------------------------------------------------------- lookup

    def _locate(self, path: FieldPath) -> Tuple[FieldDefinition, Dict[str, Any]]:
        """Return the field definition and the live mapping holding its value."""
        step = self.form.step(path.step) if path.step else None
        if step is None:
            raise UnknownPathError(f"unknown step in path {path.dotted!r}")
        if path.field is None:
            raise UnknownPathError(f"path {path.dotted!r} does not address a field")

        step_values = self._record[step.id]
        if path.section is None:
            field = step.field(path.field)
            if field is None or path.index is not None:
                raise UnknownPathError(f"unknown field path {path.dotted!r}")
            return field, step_values

        section = step.section
        if section is None or section.name != path.section:
            raise UnknownPathError(f"unknown section in path {path.dotted!r}")
        field = section.field(path.field)
        items = step_values[section.name]
        if field is None or path.index is None or path.index >= len(items):
            raise UnknownPathError(f"unknown field path {path.dotted!r}")
        return field, items[path.index]

    def get_field_value(self, path: FieldPath) -> Any:
        field, values = self._locate(path)
        return values.get(field.name)

    def is_enabled(self, path: FieldPath) -> bool:
        field, values = self._locate(path)
        return resolve_enabled(field, values.get)

    def errors_for(self, path: FieldPath) -> Optional[str]:
        for failure in self._failures:
            if failure.path == path:
                return failure.message
        return None

    def field_state(self, path: FieldPath) -> FieldState:
        field, values = self._locate(path)
        return FieldState(
            path=path,
            definition=field,
            value=values.get(field.name),
            enabled=resolve_enabled(field, values.get),
            error=self.errors_for(path),
            file_name=self._file_names.get(path),
            preview=self._previews.get(path),
        )

    def step_field_states(self, step_id: str) -> List[FieldState]:
        step = self.form.step(step_id)
        if step is None:
            raise UnknownPathError(f"unknown step {step_id!r}")
        base = FieldPath(step=step.id)
        states = [self.field_state(base.with_field(field.name)) for field in step.fields]
        if step.section is not None:
            section_path = base.with_section(step.section.name)
            for index in range(len(self._record[step.id][step.section.name])):
                item_path = section_path.with_index(index)
                states.extend(
                    self.field_state(item_path.with_field(field.name)) for field in step.section.fields
                )
        return states

    # -------------------------------------------------------------- mutation

    def set_field_value(self, path: FieldPath, value: Any) -> None:
        self._require_editing("edit fields")
        field, values = self._locate(path)
        values[field.name] = value
        if field.kind == "file" and not isinstance(value, SelectedFile):
            self._file_names.pop(path, None)
            self._previews.pop(path, None)

    async def choose_file(self, path: FieldPath, file: SelectedFile) -> Optional[str]:
        """Store ``file`` in a file field and, for image fields, build its preview.

        The preview lands on wherever the owning item sits once it is ready. It
        is discarded (and None returned) when the file was replaced or cleared,
        or the item was removed, in the meantime.
        """
        self._require_editing("choose files")
        field, values = self._locate(path)
        if field.kind != "file":
            raise FormflowError(f"{path.dotted} is not a file field")
        values[field.name] = file
        self._file_names[path] = file.filename
        self._previews.pop(path, None)
        if not (field.is_image and file.is_image):
            return None
        preview = await self._previewer(file)
        current = self._current_path(path, values)
        if current is None or values.get(field.name) is not file:
            logger.debug("Discarding stale preview for %s", path.dotted)
            return None
        self._previews[current] = preview
        return preview

    def _current_path(self, path: FieldPath, values: Dict[str, Any]) -> Optional[FieldPath]:
        """Where the mapping ``values`` lives now; None once it left the record."""
        step_values = self._record.get(path.step)
        if step_values is None:
            return None
        if path.section is None:
            return path if step_values is values else None
        for index, item in enumerate(step_values[path.section]):
            if item is values:
                return path.with_index(index)
        return None

    def _section_manager(self, step_id: str) -> RepeatableSectionManager:
        step = self.form.step(step_id)
        if step is None or step.section is None:
            raise UnknownPathError(f"step {step_id!r} has no repeatable section")
        return RepeatableSectionManager(step.section, self._record[step.id][step.section.name])

    def append_item(self, step_id: str) -> int:
        self._require_editing("add items")
        return self._section_manager(step_id).append()

    def remove_item(self, step_id: str, index: int) -> bool:
        self._require_editing("remove items")
        manager = self._section_manager(step_id)
        if not manager.remove(index):
            return False

        section_path = FieldPath(step=step_id, section=manager.section.name)
        failures = []
        for failure in self._failures:
            shifted = _shift_path(failure.path, section_path, index)
            if shifted is not None:
                failures.append(failure.model_copy(update={"path": shifted}))
        self._failures = failures
        for attachments in (self._file_names, self._previews):
            moved = {}
            for path, value in attachments.items():
                shifted = _shift_path(path, section_path, index)
                if shifted is not None:
                    moved[shifted] = value
            attachments.clear()
            attachments.update(moved)
        return True

    def _restore_defaults(self) -> None:
        self._record = build_defaults(self.form)
        self._step_index = 0
        self._failures = []
        self._file_names.clear()
        self._previews.clear()
        self._submission_error = None

    def reset(self) -> None:
        self._require_editing("reset")
        self._restore_defaults()
        logger.info("Wizard reset to defaults")

    # ------------------------------------------------------------ navigation

    def advance(self) -> ValidationResult:
        self._require_editing("advance")
        if self.is_review_step:
            raise IllegalTransitionError("cannot advance past the review step; submit instead")

        step = self.form.steps[self._step_index]
        result = self._step_validators[self._step_index](self._record.get(step.id))
        step_path = FieldPath(step=step.id)
        others = [failure for failure in self._failures if not failure.path.within(step_path)]

        if result.ok:
            self._failures = others
            self._step_index += 1
            logger.info("Advanced from step %s to index %d", step.id, self._step_index)
        else:
            self._failures = others + list(result.failures)
            logger.info("Step %s blocked by %d validation errors", step.id, len(result.failures))
        return result

    def retreat(self) -> None:
        self._require_editing("go back")
        if self._step_index == 0:
            raise IllegalTransitionError("already at the first step")
        self._step_index -= 1
        self._submission_error = None

    async def submit(self) -> Optional[SubmissionResult]:
        if self._phase is WizardPhase.SUBMITTING:
            logger.warning("Ignoring submit while a submission is already pending")
            return None
        self._require_editing("submit")
        if not self.is_review_step:
            raise IllegalTransitionError("submit is only available from the review step")

        self._phase = WizardPhase.SUBMITTING
        self._submission_error = None
        payload = apply_disabled_policy(self.form, self._record, self.policy)

        try:
            result = coerce_result(await self._submitter(payload))
        except asyncio.CancelledError:
            self._phase = WizardPhase.EDITING
            raise
        except Exception:
            logger.exception("Submission call failed")
            self._phase = WizardPhase.EDITING
            self._submission_error = self.form.labels.submit_error_fallback
            return SubmissionResult(success=False, message=self._submission_error)

        if result.success:
            self._phase = WizardPhase.SUCCESS
            self._submission_id = result.id
            logger.info("Submission accepted with id %s", result.id)
        else:
            self._phase = WizardPhase.EDITING
            self._submission_error = result.message
            logger.warning("Submission rejected: %s", result.message)
        return result

    def register_new(self) -> None:
        if self._phase is not WizardPhase.SUCCESS:
            raise IllegalTransitionError("register_new is only available after a successful submission")
        self._restore_defaults()
        self._phase = WizardPhase.EDITING
        self._submission_id = None
        logger.info("Started a new registration")
