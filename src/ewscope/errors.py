from __future__ import annotations


class EwscopeError(Exception):
    """Base class for ewscope errors."""


class DirectionUnknownError(EwscopeError, RuntimeError):
    """A direction-dependent query was made on a scenario without a direction."""

    def __init__(self, scenario_id: str):
        super().__init__(
            f"Cannot determine direction: scenario '{scenario_id}' has no swings and no explicit direction set"
        )
        self.scenario_id = scenario_id


class AnalysisError(EwscopeError, RuntimeError):
    """Multi-degree analysis could not produce the base degree result."""
