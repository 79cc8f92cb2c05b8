"""Data models for the prototype's organizations, accounts and groups.

The models are implemented using :mod:`pydantic` so that they provide
runtime validation and convenient serialisation to and from dictionaries.
Field names are snake_case in Python and camelCase on the wire, which keeps
stored snapshots and participant files readable by the browser prototype.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from datetime import UTC
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AGGREGATE_ACCOUNT_ID = "all_accounts"
AGGREGATE_ACCOUNT_TYPE = "Aggregate view"
ACCOUNT_TYPE = "Account"


def utc_now_iso() -> str:
    """Return the current UTC time formatted like ``Date.toISOString``."""
    now = datetime.datetime.now(tz=UTC)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        """Serialise to the JSON shape used in storage and static files."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Account(CamelModel):
    """A named sub-entity of an organization.

    Attributes
    ----------
    id:
        Identifier, unique within the owning organization.
    name:
        Display name. Duplicate names are allowed.
    original_name:
        The name as it appeared in the source CSV.
    type:
        ``"Account"`` for real accounts, ``"Aggregate view"`` for the rollup.
    is_aggregate:
        ``True`` only for the synthesised rollup account.
    color:
        Hex color; required for every non-aggregate account once stored.

    """

    id: str
    name: str
    original_name: str | None = None
    type: Literal["Account", "Aggregate view"] = ACCOUNT_TYPE
    is_aggregate: bool = False
    color: str | None = None


def make_aggregate_account(organization_name: str) -> Account:
    return Account(
        id=AGGREGATE_ACCOUNT_ID,
        name=organization_name,
        type=AGGREGATE_ACCOUNT_TYPE,
        is_aggregate=True,
    )


class Organization(CamelModel):
    """Top-level named dataset grouping accounts."""

    name: str
    accounts: list[Account] = Field(default_factory=list)

    def aggregate_account(self) -> Account | None:
        return next((a for a in self.accounts if a.is_aggregate), None)

    def member_accounts(self) -> list[Account]:
        """Return the real (non-aggregate) accounts in list order."""
        return [a for a in self.accounts if not a.is_aggregate]

    def find_account(self, account_id: str) -> Account | None:
        return next((a for a in self.accounts if a.id == account_id), None)


class GroupType(str, Enum):
    ACCOUNTS = "accounts"
    RESOURCE_SHARING = "resource_sharing"


@dataclass(frozen=True)
class GroupTypeInfo:
    id: GroupType
    name: str
    description: str
    allow_multiple_membership: bool


GROUP_TYPES: dict[GroupType, GroupTypeInfo] = {
    GroupType.ACCOUNTS: GroupTypeInfo(
        id=GroupType.ACCOUNTS,
        name="Accounts",
        description="Flexible account groupings for filtering and organization",
        allow_multiple_membership=True,
    ),
    GroupType.RESOURCE_SHARING: GroupTypeInfo(
        id=GroupType.RESOURCE_SHARING,
        name="Resource sharing",
        description="Exclusive groups for resource access and permissions",
        allow_multiple_membership=False,
    ),
}


class AccountGroup(CamelModel):
    """A user-defined subset of an organization's accounts."""

    id: str
    name: str
    type: GroupType
    account_ids: list[str] = Field(default_factory=list)
    description: str = ""
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str | None = None


class PayloadMetadata(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow", frozen=True
    )

    created_at: str = Field(default_factory=utc_now_iso)
    scenario: str = "custom"
    description: str = ""
    participant_id: str | None = None
    participant_file: bool | None = None
    generated_from: str | None = None


class ParticipantPayload(CamelModel):
    """Immutable snapshot used to seed a participant session."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    scenario_name: str
    organization_name: str
    accounts: tuple[Account, ...] = ()
    metadata: PayloadMetadata = Field(default_factory=PayloadMetadata)

    @classmethod
    def from_organization(
        cls, organization: Organization, **metadata: Any
    ) -> ParticipantPayload:
        return cls(
            scenario_name=organization.name,
            organization_name=organization.name,
            accounts=tuple(a.model_copy(deep=True) for a in organization.accounts),
            metadata=PayloadMetadata(**metadata),
        )

    def to_organization(self) -> Organization:
        return Organization(
            name=self.organization_name,
            accounts=[a.model_copy(deep=True) for a in self.accounts],
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class StoreState(BaseModel):
    """Snapshot of the data store returned by every mutation."""

    model_config = ConfigDict(frozen=True)

    organizations: tuple[Organization, ...] = ()
    current_organization: Organization | None = None
    current_sub_account: Account | None = None
    account_groups: tuple[AccountGroup, ...] = ()
    group_order: tuple[str, ...] = ()

    def group(self, group_id: str) -> AccountGroup | None:
        return next((g for g in self.account_groups if g.id == group_id), None)

    def group_named(self, name: str) -> AccountGroup | None:
        return next((g for g in self.account_groups if g.name == name), None)
