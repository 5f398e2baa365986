"""
Layout orchestration: external solver first, local engine as fallback.

A solver failure only degrades layout quality, so it is logged as a
warning and never reaches the caller. :class:`LayoutSession` adds
supersede semantics for callers that re-request layouts while a slow
solver call is still in flight.
"""

from __future__ import annotations

import logging
from typing import Optional

from arch_layout.layout_engine import LayoutEngineConfig, layout_tidy
from arch_layout.models import Graph
from arch_layout.solver import LayoutSolver, LayoutSolverError, try_external_layout

logger = logging.getLogger("arch-layout.service")


async def auto_layout(
    graph: Graph,
    solver: Optional[LayoutSolver] = None,
    config: Optional[LayoutEngineConfig] = None,
) -> Graph:
    """Lay out *graph*, preferring *solver* and falling back to ``layout_tidy``.

    There is no retry: a single solver failure triggers the fallback.
    """
    if not graph.nodes:
        return graph
    cfg = config or LayoutEngineConfig()

    if solver is not None:
        try:
            return await try_external_layout(graph, solver, cfg)
        except LayoutSolverError as exc:
            logger.warning("External layout failed, using fallback layout: %s", exc.message)

    return layout_tidy(graph, cfg)


class LayoutSession:
    """Applies only the newest of several overlapping layout requests.

    Every :meth:`request` takes a generation token. If another request
    (or :meth:`supersede`) bumps the generation before the layout
    finishes, the finished result is stale and is discarded.
    """

    def __init__(
        self,
        solver: Optional[LayoutSolver] = None,
        config: Optional[LayoutEngineConfig] = None,
    ) -> None:
        self.solver = solver
        self.config = config or LayoutEngineConfig()
        self.latest: Optional[Graph] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def supersede(self) -> int:
        """Invalidate every in-flight request and return the new generation."""
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    async def request(self, graph: Graph) -> Optional[Graph]:
        """Lay out *graph*; return None if a newer request superseded it."""
        token = self.supersede()
        result = await auto_layout(graph, self.solver, self.config)
        if not self.is_current(token):
            logger.info("Discarding stale layout for generation %d", token)
            return None
        self.latest = result
        return result
