"""Test doubles for the external layout solver."""

import asyncio

from arch_layout.solver import SolverRequest, SolverResponse


class FakeSolver:
    """In-memory solver returning canned positions."""

    def __init__(
        self,
        positions: dict[str, tuple[float, float]] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
    ) -> None:
        self.positions = positions or {}
        self.error = error
        self.delay = delay
        self.requests: list[SolverRequest] = []

    async def layout(self, request: SolverRequest) -> SolverResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SolverResponse(positions=dict(self.positions))
