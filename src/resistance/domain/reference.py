"""Id-to-name lookups over the reference catalogs."""
import logging
from typing import Dict, Iterable, Optional, Set

logger = logging.getLogger(__name__)


def placeholder_name(entity_id) -> str:
    return f"Unknown (ID: {entity_id})"


class NameResolver:
    """
    Read-through id -> name map built from a full catalog listing.

    Lookups of ids the catalog does not know return a placeholder so that no
    aggregated row is dropped for a missing join.
    """

    def __init__(self, entries: Iterable, kind: str = "entity"):
        self.kind = kind
        self._names: Dict[int, str] = {entry.id: entry.name for entry in entries}
        self._reported: Set = set()

    def __len__(self):
        return len(self._names)

    def get(self, entity_id) -> Optional[str]:
        return self._names.get(entity_id)

    def name_for(self, entity_id) -> str:
        name = self._names.get(entity_id)
        if name is not None:
            return name
        if entity_id not in self._reported:
            self._reported.add(entity_id)
            logger.warning(f"No {self.kind} catalog entry for id {entity_id}, using placeholder name")
        return placeholder_name(entity_id)
