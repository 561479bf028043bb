import logging
from typing import Any, Dict, List

from formflow.models import RepeatableSectionDefinition
from formflow.schema_builder import build_item_template

logger = logging.getLogger(__name__)

MIN_EDITABLE_ITEMS = 1


class RepeatableSectionManager:
    """Append/remove operations over the live item list of one repeatable section.

    The manager works on the list it is given in place, so the caller's record
    sees every change. ``min_items`` is a validation concern and is not enforced
    here; removal only keeps a single editable item around.
    """

    def __init__(self, section: RepeatableSectionDefinition, items: List[Dict[str, Any]]):
        self.section = section
        self._items = items

    @property
    def items(self) -> List[Dict[str, Any]]:
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    @property
    def can_remove(self) -> bool:
        return len(self._items) > MIN_EDITABLE_ITEMS

    def append(self) -> int:
        self._items.append(build_item_template(self.section))
        index = len(self._items) - 1
        logger.debug("Appended item %d to section %s", index, self.section.name)
        return index

    def remove(self, index: int) -> bool:
        if not 0 <= index < len(self._items):
            raise IndexError(
                f"section {self.section.name!r} has no item {index} (length {len(self._items)})"
            )
        if not self.can_remove:
            logger.debug("Refusing to remove last item of section %s", self.section.name)
            return False
        del self._items[index]
        return True
