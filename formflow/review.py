from typing import Any, Collection, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from formflow.models import FieldDefinition, FormDefinition, SelectedFile, StepDefinition

EMPTY_DISPLAY = "—"
COMMA_LIST_FIELDS = frozenset({"skills", "technologies"})


class ReviewRow(BaseModel):
    label: str
    value: str
    items: List[str] = Field(default_factory=list)


class ReviewItem(BaseModel):
    title: str
    rows: List[ReviewRow] = Field(default_factory=list)


class ReviewSection(BaseModel):
    step_id: str
    title: str
    icon: Optional[str] = None
    rows: List[ReviewRow] = Field(default_factory=list)
    items: List[ReviewItem] = Field(default_factory=list)


class Review(BaseModel):
    title: str
    subtitle: str
    sections: List[ReviewSection] = Field(default_factory=list)


def format_value(value: Any) -> str:
    if value is None or value == "":
        return EMPTY_DISPLAY
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, SelectedFile):
        return value.filename
    if isinstance(value, str):
        return value[:1].upper() + value[1:].replace("-", " ")
    return str(value)


def split_list(value: Any) -> List[str]:
    return [part.strip() for part in str(value or "").split(",") if part.strip()]


def _value_row(field: FieldDefinition, value: Any, comma_fields: Collection[str]) -> ReviewRow:
    if field.name in comma_fields:
        return ReviewRow(label=field.display_label, value=str(value), items=split_list(value))
    return ReviewRow(label=field.display_label, value=format_value(value))


def _shows_value(field: FieldDefinition) -> bool:
    return field.kind not in ("file", "boolean")


def _step_rows(step: StepDefinition, data: Mapping[str, Any], comma_fields: Collection[str]) -> List[ReviewRow]:
    rows = [
        _value_row(field, data.get(field.name), comma_fields)
        for field in step.fields
        if _shows_value(field) and data.get(field.name)
    ]
    rows.extend(
        ReviewRow(label=field.display_label, value=format_value(bool(data.get(field.name))))
        for field in step.fields
        if field.kind == "boolean"
    )
    return rows


def _section_items(step: StepDefinition, data: Mapping[str, Any], comma_fields: Collection[str]) -> List[ReviewItem]:
    section = step.section
    if section is None:
        return []
    items: List[ReviewItem] = []
    for index, item in enumerate(data.get(section.name) or []):
        if not isinstance(item, Mapping):
            continue
        rows = [
            _value_row(field, item.get(field.name), comma_fields)
            for field in section.fields
            if _shows_value(field) and item.get(field.name) not in (None, "")
        ]
        # Checked boxes only; an unchecked box says nothing worth reviewing.
        rows.extend(
            ReviewRow(label=field.display_label, value=format_value(True))
            for field in section.fields
            if field.kind == "boolean" and item.get(field.name)
        )
        items.append(ReviewItem(title=f"{section.item_label} {index + 1}", rows=rows))
    return items


def build_review(
    form: FormDefinition,
    record: Mapping[str, Any],
    comma_fields: Collection[str] = COMMA_LIST_FIELDS,
) -> Review:
    """Summarise the live record step by step for the review page."""
    sections: List[ReviewSection] = []
    for step in form.steps:
        data: Dict[str, Any] = record.get(step.id) or {}
        sections.append(
            ReviewSection(
                step_id=step.id,
                title=step.title or step.label or step.id,
                icon=step.icon,
                rows=_step_rows(step, data, comma_fields),
                items=_section_items(step, data, comma_fields),
            )
        )
    return Review(
        title=form.labels.review_step_title,
        subtitle=form.labels.review_step_subtitle,
        sections=sections,
    )
