"""Exception hierarchy shared by the prototype data layer."""

from __future__ import annotations


class UXRError(Exception):
    """Base class for errors surfaced to the researcher or participant UI."""


class MalformedInput(UXRError):
    """CSV or payload content that cannot be turned into organizations."""


class DuplicateName(UXRError):
    """An organization with the same name already exists."""


class NotFound(UXRError):
    """A referenced organization, account or group does not exist."""


class MembershipConflict(UXRError):
    """An account is already claimed by another resource sharing group."""


class FetchFailure(UXRError):
    """A static data file could not be fetched or decoded."""


__all__ = [
    "UXRError",
    "MalformedInput",
    "DuplicateName",
    "NotFound",
    "MembershipConflict",
    "FetchFailure",
]
