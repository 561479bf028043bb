import copy
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping

from formflow.models import FieldDefinition, FormDefinition

logger = logging.getLogger(__name__)

SiblingLookup = Callable[[str], Any]


class DisabledValuePolicy(str, Enum):
    PASS_THROUGH = "pass_through"
    EXCLUDE = "exclude"


def resolve_enabled(field: FieldDefinition, lookup: SiblingLookup) -> bool:
    """Return whether ``field`` is editable given its siblings' current values.

    ``lookup`` is called on every resolution; nothing is cached.
    """
    if not field.depends_on:
        return True
    sibling_value = lookup(field.depends_on)
    if field.depends_on_reverse:
        return bool(sibling_value)
    return not bool(sibling_value)


def _strip_disabled(fields: List[FieldDefinition], values: Dict[str, Any]) -> None:
    disabled = [field.name for field in fields if not resolve_enabled(field, values.get)]
    for name in disabled:
        values.pop(name, None)


def apply_disabled_policy(
    form: FormDefinition,
    record: Mapping[str, Any],
    policy: DisabledValuePolicy = DisabledValuePolicy.PASS_THROUGH,
) -> Dict[str, Any]:
    """Return a deep copy of ``record`` prepared for submission under ``policy``."""
    prepared = copy.deepcopy(dict(record))
    if policy is DisabledValuePolicy.PASS_THROUGH:
        return prepared

    for step in form.steps:
        step_values = prepared.get(step.id)
        if not isinstance(step_values, dict):
            continue
        _strip_disabled(step.fields, step_values)
        if step.section is None:
            continue
        for item in step_values.get(step.section.name) or []:
            if isinstance(item, dict):
                _strip_disabled(step.section.fields, item)
    logger.debug("Applied %s policy to disabled fields", policy.value)
    return prepared
