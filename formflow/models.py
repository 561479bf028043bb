import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

FieldKind = Literal[
    "short_text",
    "email",
    "phone",
    "date",
    "long_text",
    "single_select",
    "single_choice_set",
    "boolean",
    "file",
]

STRING_KINDS = frozenset(
    {"short_text", "email", "phone", "date", "long_text", "single_select", "single_choice_set"}
)

_PATTERN_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class SelectOption(_Frozen):
    value: str
    label: str


class PatternRule(_Frozen):
    value: str
    flags: str = ""

    @field_validator("flags")
    @classmethod
    def validate_known_flags(cls, flags: str) -> str:
        unknown = set(flags) - set(_PATTERN_FLAGS)
        if unknown:
            raise ValueError(f"unsupported pattern flags: {''.join(sorted(unknown))}")
        return flags

    @model_validator(mode="after")
    def validate_compiles(self):
        try:
            self.compile()
        except re.error as exc:
            raise ValueError(f"invalid pattern {self.value!r}: {exc}") from exc
        return self

    def compile(self) -> "re.Pattern[str]":
        flags = 0
        for flag in self.flags:
            flags |= _PATTERN_FLAGS[flag]
        source = self.value if "m" in self.flags else _strict_end_anchors(self.value)
        return re.compile(source, flags)


def _strict_end_anchors(pattern: str) -> str:
    """Rewrite ``$`` outside character classes as ``\\Z``.

    Without the multiline flag, ``$`` should match only at the very end of the
    value, never before a trailing newline.
    """
    out: List[str] = []
    in_class = False
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            out.append(pattern[i : i + 2])
            i += 2
            continue
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
            # "[]..." and "[^]..." start with a literal bracket
            j = i + 1
            if j < len(pattern) and pattern[j] == "^":
                j += 1
            if j < len(pattern) and pattern[j] == "]":
                out.append(pattern[i : j + 1])
                i = j + 1
                continue
        elif char == "$":
            out.append(r"\Z")
            i += 1
            continue
        out.append(char)
        i += 1
    return "".join(out)


class ValidationRule(_Frozen):
    required: bool = False
    min_length: Optional[int] = Field(default=None, ge=0)
    max_length: Optional[int] = Field(default=None, ge=0)
    pattern: Optional[PatternRule] = None
    email: bool = False
    url: bool = False


class FieldDefinition(_Frozen):
    name: str = Field(..., min_length=1)
    label: str = ""
    kind: FieldKind = "short_text"
    required: bool = False
    validation: ValidationRule = Field(default_factory=ValidationRule)
    error_messages: Dict[str, str] = Field(default_factory=dict)
    placeholder: Optional[str] = None
    helper_text: Optional[str] = None
    grid_cols: int = Field(default=12, ge=1, le=12)
    options: List[SelectOption] = Field(default_factory=list)
    accept: Optional[str] = None
    rows: Optional[int] = None
    icon: Optional[str] = None
    depends_on: Optional[str] = None
    depends_on_reverse: bool = False

    @model_validator(mode="after")
    def validate_no_self_dependency(self):
        if self.depends_on == self.name:
            raise ValueError(f"field {self.name!r} cannot depend on itself")
        return self

    @property
    def is_required(self) -> bool:
        return self.required or self.validation.required

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()

    @property
    def is_image(self) -> bool:
        return self.kind == "file" and "image" in (self.accept or "")


def _check_siblings(owner: str, fields: List[FieldDefinition], extra_names: List[str] = ()) -> None:
    seen: set[str] = set()
    for name in [field.name for field in fields] + list(extra_names):
        if name in seen:
            raise ValueError(f"duplicate name {name!r} in {owner}")
        seen.add(name)
    # Only sibling fields can drive enablement; a section name never can.
    field_names = {field.name for field in fields}
    for field in fields:
        if field.depends_on and field.depends_on not in field_names:
            raise ValueError(
                f"field {field.name!r} in {owner} depends on unknown sibling {field.depends_on!r}"
            )


class RepeatableSectionDefinition(_Frozen):
    name: str = Field(..., min_length=1)
    label: str = ""
    add_button_label: str = "Add"
    item_label: str = "Item"
    min_items: int = Field(default=0, ge=0)
    min_items_error: Optional[str] = None
    icon: Optional[str] = None
    fields: List[FieldDefinition] = Field(default_factory=list)
    default_item: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_consistent_shape(self):
        _check_siblings(f"section {self.name!r}", self.fields)
        names = {field.name for field in self.fields}
        unknown = sorted(set(self.default_item) - names)
        if unknown:
            raise ValueError(f"default item of section {self.name!r} has unknown keys: {unknown}")
        return self

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()

    def field(self, name: str) -> Optional[FieldDefinition]:
        for field in self.fields:
            if field.name == name:
                return field
        return None


class StepDefinition(_Frozen):
    id: str = Field(..., min_length=1)
    label: str = ""
    title: str = ""
    subtitle: Optional[str] = None
    icon: Optional[str] = None
    fields: List[FieldDefinition] = Field(default_factory=list)
    section: Optional[RepeatableSectionDefinition] = None

    @model_validator(mode="after")
    def validate_unique_names(self):
        extra = [self.section.name] if self.section is not None else []
        _check_siblings(f"step {self.id!r}", self.fields, extra)
        return self

    def field(self, name: str) -> Optional[FieldDefinition]:
        for field in self.fields:
            if field.name == name:
                return field
        return None


class UILabels(_Frozen):
    form_title: str = "Registration"
    back_button: str = "Back"
    continue_button: str = "Continue"
    submit_button: str = "Submit"
    submitting_button: str = "Submitting..."
    success_title: str = "Submission Complete!"
    success_message: str = "Your submission has been received."
    id_label: str = "Reference ID"
    register_new_button: str = "Start Over"
    submit_error_fallback: str = "An unexpected error occurred. Please try again."
    review_step_title: str = "Review & Submit"
    review_step_subtitle: str = "Please review your information before submitting."


class FormDefinition(_Frozen):
    title: str = ""
    steps: List[StepDefinition] = Field(..., min_length=1)
    labels: UILabels = Field(default_factory=UILabels)

    @model_validator(mode="after")
    def validate_unique_step_ids(self):
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"duplicate step id {step.id!r}")
            seen.add(step.id)
        return self

    def step(self, step_id: str) -> Optional[StepDefinition]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None

    @property
    def total_steps(self) -> int:
        return len(self.steps) + 1

    @property
    def review_index(self) -> int:
        return len(self.steps)

    @property
    def step_labels(self) -> List[str]:
        return [step.label or step.title or step.id for step in self.steps] + [
            self.labels.review_step_title
        ]


class FieldPath(_Frozen):
    """Structural address of a value inside the live record.

    ``FieldPath(step="contact")`` addresses a whole step,
    ``FieldPath(step="contact", field="email")`` a step-level field,
    ``FieldPath(step="work", section="jobs")`` a repeatable section and
    ``FieldPath(step="work", section="jobs", index=0, field="company")`` a field
    of one section item.
    """

    step: Optional[str] = None
    section: Optional[str] = None
    index: Optional[int] = Field(default=None, ge=0)
    field: Optional[str] = None

    def with_step(self, step_id: str) -> "FieldPath":
        return self.model_copy(update={"step": step_id})

    def with_section(self, name: str) -> "FieldPath":
        return self.model_copy(update={"section": name})

    def with_index(self, index: int) -> "FieldPath":
        return self.model_copy(update={"index": index})

    def with_field(self, name: str) -> "FieldPath":
        return self.model_copy(update={"field": name})

    def within(self, other: "FieldPath") -> bool:
        """Return True when this path equals ``other`` or lies underneath it."""
        for attr in ("step", "section", "index", "field"):
            expected = getattr(other, attr)
            if expected is not None and getattr(self, attr) != expected:
                return False
        return True

    @property
    def dotted(self) -> str:
        parts = [self.step, self.section, self.index, self.field]
        return ".".join(str(part) for part in parts if part is not None)


class ValidationFailure(_Frozen):
    path: FieldPath
    message: str


class ValidationResult(_Frozen):
    ok: bool = True
    failures: List[ValidationFailure] = Field(default_factory=list)

    @classmethod
    def from_failures(cls, failures: List[ValidationFailure]) -> "ValidationResult":
        return cls(ok=not failures, failures=list(failures))

    def errors(self) -> Dict[str, str]:
        """Map each failing dotted path to its first message."""
        errors: Dict[str, str] = {}
        for failure in self.failures:
            errors.setdefault(failure.path.dotted, failure.message)
        return errors


class SubmissionResult(BaseModel):
    success: bool
    id: Optional[str] = None
    message: Optional[str] = None

    @model_validator(mode="after")
    def validate_contract(self):
        if self.success and not self.id:
            raise ValueError("successful submission must carry an id")
        if not self.success and not self.message:
            raise ValueError("failed submission must carry a message")
        return self


class SelectedFile(BaseModel):
    filename: str
    content_type: str = "application/octet-stream"
    data: bytes = b""

    @property
    def is_image(self) -> bool:
        return self.content_type.startswith("image/")

    def describe(self) -> Dict[str, Any]:
        return {"filename": self.filename, "content_type": self.content_type, "size": len(self.data)}


class FieldState(BaseModel):
    path: FieldPath
    definition: FieldDefinition
    value: Any = None
    enabled: bool = True
    error: Optional[str] = None
    file_name: Optional[str] = None
    preview: Optional[str] = None
