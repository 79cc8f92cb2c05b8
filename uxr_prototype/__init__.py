"""Core package for the account group UX research prototype.

This module exposes the data models, the storage layer and the data store so
that consumers of the package can simply import them from ``uxr_prototype``.
Rendering and the control panel UI live in the browser prototype; this
package owns the data those views read.
"""

from .core.models import Account, AccountGroup, Organization, ParticipantPayload
from .core.storage import JSONFileStorage, MemoryStorage
from .data.store import OrganizationStore

__all__ = [
    "Account",
    "AccountGroup",
    "Organization",
    "ParticipantPayload",
    "JSONFileStorage",
    "MemoryStorage",
    "OrganizationStore",
]
