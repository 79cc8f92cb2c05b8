"""Decide between researcher and participant mode.

Everything here is a pure function of the URL query parameters and the
session-scoped flags, so the decision can be tested without storage or
network access.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

SESSION_MODE_KEY = "participant_mode"
SESSION_DATA_ID_KEY = "participant_data_id"
SESSION_SCENARIO_KEY = "participant_scenario"
SESSION_PAYLOAD_KEY = "participant_organization_data"
SESSION_SHARED_KEY = "loaded_shared_data"

SESSION_KEYS = (
    SESSION_MODE_KEY,
    SESSION_DATA_ID_KEY,
    SESSION_SCENARIO_KEY,
    SESSION_PAYLOAD_KEY,
    SESSION_SHARED_KEY,
)


@dataclass(frozen=True)
class ById:
    participant_id: str


@dataclass(frozen=True)
class ByScenario:
    scenario: str


@dataclass(frozen=True)
class Cached:
    payload_json: str


@dataclass(frozen=True)
class DefaultScenario:
    pass


ParticipantSource = Union[ById, ByScenario, Cached, DefaultScenario]


@dataclass(frozen=True)
class Researcher:
    pass


@dataclass(frozen=True)
class Participant:
    source: ParticipantSource
    from_url: bool = False


Mode = Union[Researcher, Participant]


def parse_query(url: str) -> dict[str, str]:
    """Return the query parameters of ``url`` (or of a bare query string)."""
    query = urlsplit(url).query if ("?" in url or "://" in url) else url.lstrip("?")
    return dict(parse_qsl(query, keep_blank_values=True))


def is_fresh(url_params: Mapping[str, str]) -> bool:
    return url_params.get("fresh") == "true"


def _url_signal(url_params: Mapping[str, str]) -> bool:
    return url_params.get("mode") == "participant" or "share" in url_params


def _session_signal(session_flags: Mapping[str, str]) -> bool:
    return (
        session_flags.get(SESSION_MODE_KEY) == "true"
        or session_flags.get(SESSION_SHARED_KEY) == "true"
    )


def resolve_mode(url_params: Mapping[str, str], session_flags: Mapping[str, str]) -> Mode:
    """Work out which mode the page is in and where participant data comes from.

    A ``data`` or ``scenario`` parameter only counts when the URL also signals
    participant mode. Without URL identifiers the session is consulted: the
    cached payload first, then the remembered data id or scenario.
    """
    from_url = _url_signal(url_params)
    if not from_url and not _session_signal(session_flags):
        return Researcher()

    if from_url:
        if url_params.get("data"):
            return Participant(ById(url_params["data"]), from_url=True)
        if url_params.get("scenario"):
            return Participant(ByScenario(url_params["scenario"]), from_url=True)

    if session_flags.get(SESSION_PAYLOAD_KEY):
        return Participant(Cached(session_flags[SESSION_PAYLOAD_KEY]), from_url=from_url)
    if session_flags.get(SESSION_DATA_ID_KEY):
        return Participant(ById(session_flags[SESSION_DATA_ID_KEY]), from_url=from_url)
    if session_flags.get(SESSION_SCENARIO_KEY):
        return Participant(ByScenario(session_flags[SESSION_SCENARIO_KEY]), from_url=from_url)
    return Participant(DefaultScenario(), from_url=from_url)


def participant_query(url_params: Mapping[str, str], session_flags: Mapping[str, str]) -> str:
    """Query string that carries participant context onto another page."""
    params: dict[str, str] = {}
    if url_params.get("mode") == "participant":
        params["mode"] = "participant"
        for key in ("data", "scenario"):
            if url_params.get(key):
                params[key] = url_params[key]
    elif session_flags.get(SESSION_MODE_KEY) == "true":
        params["mode"] = "participant"
        if session_flags.get(SESSION_DATA_ID_KEY):
            params["data"] = session_flags[SESSION_DATA_ID_KEY]
        elif session_flags.get(SESSION_SCENARIO_KEY):
            params["scenario"] = session_flags[SESSION_SCENARIO_KEY]
    return urlencode(params)


_SKIPPED_SCHEMES = ("javascript:", "mailto:", "tel:")


def with_participant_params(url: str, query: str, origin: str | None = None) -> str:
    """Merge participant ``query`` into ``url`` when it is an internal link.

    Links that already carry participant mode, non-navigational schemes and
    absolute links to another origin are returned unchanged.
    """
    if not query or "mode=participant" in url or url.startswith(_SKIPPED_SCHEMES):
        return url
    parts = urlsplit(url)
    if parts.scheme and (origin is None or not url.startswith(origin)):
        return url

    params = dict(parse_qsl(parts.query, keep_blank_values=True))
    params.update(parse_qsl(query))
    return urlunsplit(parts._replace(query=urlencode(params)))
