"""Seed the data store from a participant or scenario file."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum

from pydantic import ValidationError

from ..adapters.base import DataSource
from ..core.models import ParticipantPayload
from ..core.storage import KeyValueStorage
from ..data.store import OrganizationStore, demo_organization
from ..errors import FetchFailure
from .mode import (
    SESSION_DATA_ID_KEY,
    SESSION_KEYS,
    SESSION_MODE_KEY,
    SESSION_PAYLOAD_KEY,
    SESSION_SCENARIO_KEY,
    ById,
    ByScenario,
    Cached,
    Participant,
    ParticipantSource,
    Researcher,
    is_fresh,
    resolve_mode,
)

log = logging.getLogger("uxr.bridge")


class BridgeState(Enum):
    RESEARCHER = "researcher"
    PENDING_PARTICIPANT_LOAD = "pending_participant_load"
    PARTICIPANT_ACTIVE = "participant_active"


class ParticipantBridge:
    """Switch the store into participant mode when the page asks for it.

    Participant data never merges with locally stored organizations: once a
    payload is loaded it replaces them for the rest of the session. The
    payload is mirrored into ``session`` so later page loads in the same
    session do not hit the network again.
    """

    def __init__(
        self,
        store: OrganizationStore,
        session: KeyValueStorage,
        source: DataSource,
        default_scenario: str = "enterprise",
    ) -> None:
        self.store = store
        self.session = session
        self.source = source
        self.default_scenario = default_scenario
        self.state = BridgeState.RESEARCHER
        self.payload: ParticipantPayload | None = None

    @property
    def is_participant(self) -> bool:
        return self.state is BridgeState.PARTICIPANT_ACTIVE

    def session_flags(self) -> dict[str, str]:
        flags = {}
        for key in SESSION_KEYS:
            value = self._session_get(key)
            if value is not None:
                flags[key] = value
        return flags

    # ------------------------------------------------------------------
    # Session storage helpers
    # ------------------------------------------------------------------
    def _session_get(self, key: str) -> str | None:
        try:
            return self.session.get(key)
        except OSError:
            log.exception("Failed to read %s from session storage", key)
            return None

    def _session_set(self, key: str, value: str) -> None:
        try:
            self.session.set(key, value)
        except OSError:
            log.exception("Failed to write %s to session storage", key)

    def _session_remove(self, *keys: str) -> None:
        for key in keys:
            try:
                self.session.remove(key)
            except OSError:
                log.exception("Failed to remove %s from session storage", key)

    def _clear_all(self) -> None:
        for storage in (self.store.storage, self.session):
            try:
                storage.clear()
            except OSError:
                log.exception("Could not clear cached data")

    def _remember(self, mode: Participant) -> None:
        self._session_set(SESSION_MODE_KEY, "true")
        if not mode.from_url:
            return
        if isinstance(mode.source, ById):
            self._session_set(SESSION_DATA_ID_KEY, mode.source.participant_id)
            self._session_remove(SESSION_SCENARIO_KEY, SESSION_PAYLOAD_KEY)
        elif isinstance(mode.source, ByScenario):
            self._session_set(SESSION_SCENARIO_KEY, mode.source.scenario)
            self._session_remove(SESSION_DATA_ID_KEY, SESSION_PAYLOAD_KEY)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    async def run(self, url_params: Mapping[str, str]) -> BridgeState:
        """Evaluate ``url_params`` and the session, loading participant data if needed.

        Call after :meth:`OrganizationStore.initialize`. With ``fresh=true``
        all local and session storage is cleared and the store re-initialised
        before the mode is resolved.
        """
        if is_fresh(url_params):
            log.info("Fresh mode: clearing cached data")
            self._clear_all()
            await self.store.initialize()

        mode = resolve_mode(url_params, self.session_flags())
        if isinstance(mode, Researcher):
            self.state = BridgeState.RESEARCHER
            return self.state

        self.state = BridgeState.PENDING_PARTICIPANT_LOAD
        self._remember(mode)
        payload = await self._load(mode.source)

        self.store.load_participant_payload(payload)
        self._session_set(SESSION_PAYLOAD_KEY, payload.to_json())
        self.payload = payload
        self.state = BridgeState.PARTICIPANT_ACTIVE
        log.info("Participant mode: loaded %s data", payload.organization_name)
        return self.state

    async def _load(self, source: ParticipantSource) -> ParticipantPayload:
        if isinstance(source, Cached):
            try:
                return ParticipantPayload.model_validate_json(source.payload_json)
            except ValidationError:
                log.warning("Failed to restore participant data from session, fetching instead")
                self._session_remove(SESSION_PAYLOAD_KEY)
                mode = resolve_mode({}, self.session_flags())
                source = mode.source if isinstance(mode, Participant) else None

        if isinstance(source, ById):
            try:
                return await self.source.fetch_participant(source.participant_id)
            except FetchFailure as exc:
                log.error("Error loading participant data: %s", exc)
                log.info("Falling back to %s scenario", self.default_scenario)
                return await self._load_scenario(self.default_scenario)
        if isinstance(source, ByScenario):
            return await self._load_scenario(source.scenario)
        return await self._load_scenario(self.default_scenario)

    async def _load_scenario(self, scenario: str) -> ParticipantPayload:
        try:
            return await self.source.fetch_scenario(scenario)
        except FetchFailure as exc:
            log.error("Error loading scenario %s: %s", scenario, exc)
        if scenario != self.default_scenario:
            return await self._load_scenario(self.default_scenario)
        return self._default_payload()

    def _default_payload(self) -> ParticipantPayload:
        """Payload built from the store's current organization, or the demo one."""
        organization = self.store.current_organization
        if organization is None:
            return ParticipantPayload.from_organization(
                demo_organization(), scenario="demo", description="Demo data for testing"
            )
        return ParticipantPayload.from_organization(
            organization,
            scenario="default",
            description="Default organization data",
        ).model_copy(update={"scenario_name": "Default"})
