"""Instance classifier: which instances belong to the exported control sequence."""

from __future__ import annotations

import logging
from enum import Enum

from cdlx.config import DEFAULT_MARKER_PREFIX, DEFAULT_QUALIFIED_PREFIX
from cdlx.model.instances import Instance

from ._tree import InstanceIndex

logger = logging.getLogger(__name__)


class Classification(str, Enum):
    QUALIFIED = "qualified"
    NOT_QUALIFIED = "not_qualified"


class InstanceClassifier:
    """Classifies an instance from its own class path and annotations only.

    An instance is qualified when its class path starts with one of
    *prefixes*, or when one of its annotations starts with *marker*.
    Prefix matching is cached per class path.
    """

    def __init__(
        self,
        prefixes: list[str] | tuple[str, ...] = (DEFAULT_QUALIFIED_PREFIX,),
        marker: str = DEFAULT_MARKER_PREFIX,
    ) -> None:
        self.prefixes = tuple(prefixes)
        self.marker = marker
        self._by_class: dict[str, bool] = {}

    def classify(self, instance: Instance) -> Classification:
        if self._class_matches(instance.class_path):
            return Classification.QUALIFIED
        if any(a.startswith(self.marker) for a in instance.annotations):
            return Classification.QUALIFIED
        return Classification.NOT_QUALIFIED

    def classify_tree(self, index: InstanceIndex) -> dict[str, Classification]:
        """Classification of every instance, keyed by path, in tree order."""
        result = {path: self.classify(node) for path, node in index.items()}
        logger.debug(
            "Classified %d instances, %d qualified",
            len(result),
            sum(c == Classification.QUALIFIED for c in result.values()),
        )
        return result

    def _class_matches(self, class_path: str) -> bool:
        cached = self._by_class.get(class_path)
        if cached is None:
            cached = class_path.startswith(self.prefixes)
            self._by_class[class_path] = cached
        return cached
