"""The set of flows loaded at startup."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from m7m.flows.loader import load_flows
from m7m.flows.models import FlowDefinition

logger = logging.getLogger(__name__)


class FlowRegistry:
    """Ordered collection of flow definitions from one or more files."""

    def __init__(self, flows: Iterable[FlowDefinition] = ()) -> None:
        self._flows: list[FlowDefinition] = list(flows)

    @classmethod
    def from_paths(cls, paths: Iterable[Path | str]) -> FlowRegistry:
        """Load every flow of every file, keeping file and document order.

        Raises:
            FlowDefinitionError: On the first file that fails to load.
        """
        flows: list[FlowDefinition] = []
        for path in paths:
            flows.extend(load_flows(Path(path)))
        return cls(flows)

    def __iter__(self) -> Iterator[FlowDefinition]:
        return iter(self._flows)

    def __len__(self) -> int:
        return len(self._flows)

    def select(self, names: Iterable[str] = ()) -> list[FlowDefinition]:
        """Return the flows to run.

        With no names every flow is returned; otherwise only flows whose name is
        listed (unnamed flows never match a filter).
        """
        wanted = {n for n in names if n}
        if not wanted:
            return list(self._flows)

        selected = [f for f in self._flows if f.name is not None and f.name in wanted]
        missing = wanted - {f.name for f in selected}
        if missing:
            logger.warning("Requested flows not found", extra={"names": sorted(missing)})
        return selected
