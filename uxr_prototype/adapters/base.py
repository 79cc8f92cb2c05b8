"""Base interface for the static data files the prototype reads."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..core.models import ParticipantPayload


class DataSource(ABC):
    """Abstract source of the bundled CSV, participant and scenario files."""

    @abstractmethod
    async def fetch_csv(self) -> str:
        """Return the bundled ``organizations.csv`` text."""

    @abstractmethod
    async def fetch_participant(self, participant_id: str) -> ParticipantPayload:
        """Return the participant payload stored under ``participant_id``."""

    @abstractmethod
    async def fetch_scenario(self, scenario_name: str) -> ParticipantPayload:
        """Return the canned scenario payload named ``scenario_name``."""
