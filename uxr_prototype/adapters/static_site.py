"""Data source backed by the prototype's static site.

The source uses :mod:`httpx` to fetch files published next to the prototype
(``data/organizations.csv``, ``data/participants/<id>.json`` and
``data/scenarios/<name>.json``). Every transport or decoding problem is
raised as :class:`~uxr_prototype.errors.FetchFailure` so callers only need to
handle one error type.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from ..core.models import ParticipantPayload
from ..errors import FetchFailure
from .base import DataSource

log = logging.getLogger("uxr.static_site")

KNOWN_SCENARIOS = ("enterprise", "startup", "agency")


class StaticSiteSource(DataSource):
    """Fetch prototype data files relative to ``base_url``."""

    csv_path = "data/organizations.csv"
    participants_path = "data/participants"
    scenarios_path = "data/scenarios"

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        """Store the site root and optional HTTP ``client``."""
        self.base_url = httpx.URL(base_url if base_url.endswith("/") else base_url + "/")
        self.client = client or httpx.AsyncClient()

    # ------------------------------------------------------------------
    async def _get(self, relative: str) -> httpx.Response:
        url = self.base_url.join(relative)
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise FetchFailure(f"Failed to fetch {url}: {exc}") from exc
        return response

    async def _get_payload(self, relative: str) -> ParticipantPayload:
        response = await self._get(relative)
        try:
            return ParticipantPayload.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise FetchFailure(f"Invalid payload at {response.url}: {exc}") from exc

    # ------------------------------------------------------------------
    async def fetch_csv(self) -> str:
        response = await self._get(self.csv_path)
        return response.text

    async def fetch_participant(self, participant_id: str) -> ParticipantPayload:
        """Fetch ``data/participants/<participant_id>.json``.

        Parameters
        ----------
        participant_id:
            Opaque identifier produced by the sharing exporter.

        """
        payload = await self._get_payload(
            f"{self.participants_path}/{quote(participant_id, safe='')}.json"
        )
        log.info("Loaded participant data: %s", payload.organization_name)
        return payload

    async def fetch_scenario(self, scenario_name: str) -> ParticipantPayload:
        payload = await self._get_payload(
            f"{self.scenarios_path}/{quote(scenario_name, safe='')}.json"
        )
        log.info("Loaded scenario: %s", scenario_name)
        return payload

    async def available_scenarios(self) -> list[dict[str, Any]]:
        """Describe the canned scenarios that can currently be fetched."""
        scenarios = []
        for scenario in KNOWN_SCENARIOS:
            try:
                payload = await self.fetch_scenario(scenario)
            except FetchFailure:
                log.warning("Could not load scenario: %s", scenario)
                continue
            scenarios.append(
                {
                    "id": scenario,
                    "name": payload.scenario_name or scenario,
                    "description": payload.metadata.description or f"{scenario} scenario",
                }
            )
        return scenarios

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
