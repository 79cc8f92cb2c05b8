"""Organization, selection and account group state for the prototype."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from ..adapters.base import DataSource
from ..core.models import (
    AGGREGATE_ACCOUNT_ID,
    Account,
    AccountGroup,
    GroupType,
    Organization,
    ParticipantPayload,
    StoreState,
    make_aggregate_account,
    utc_now_iso,
)
from ..core.storage import KeyValueStorage
from ..errors import (
    DuplicateName,
    FetchFailure,
    MalformedInput,
    MembershipConflict,
    NotFound,
)
from .csv_parser import SAMPLE_CSV, export_csv, generate_account_color, parse

log = logging.getLogger("uxr.store")

ORGANIZATIONS_KEY = "uxr_organizations_data"
CSV_KEY = "uxr_csv_data"
CURRENT_ORGANIZATION_KEY = "uxr_current_organization"
CURRENT_ACCOUNT_KEY = "uxr_current_sub_account"
GROUPS_KEY_PREFIX = "uxr_account_groups_"
GROUP_ORDER_KEY_PREFIX = "customGroupOrder_"
LEGACY_GROUPS_KEY = "accountGroups"


def demo_organization() -> Organization:
    """Hard-coded organization used when no other data can be loaded."""
    return Organization(
        name="Demo Company",
        accounts=[
            make_aggregate_account("Demo Company"),
            Account(id="demo_account_1", name="Main Account", color="#3B82F6"),
            Account(id="demo_account_2", name="Test Account", color="#10B981"),
        ],
    )


def normalize_organization(organization: Organization) -> Organization:
    """Ensure the aggregate account leads the list and every account has a color."""
    aggregate = organization.aggregate_account()
    members = organization.member_accounts()
    for account in members:
        if not account.color:
            account.color = generate_account_color(account.name, account.id)
    organization.accounts = [aggregate or make_aggregate_account(organization.name), *members]
    return organization


def check_account_ids(organization: Organization) -> None:
    """Raise :class:`MalformedInput` unless member account ids are unique.

    The aggregate id is reserved and may not be used by a member account.
    """
    seen: set[str] = set()
    for account in organization.member_accounts():
        if account.id == AGGREGATE_ACCOUNT_ID:
            raise MalformedInput(
                f"Account id '{AGGREGATE_ACCOUNT_ID}' is reserved for the aggregate view"
            )
        if account.id in seen:
            raise MalformedInput(f"Duplicate account id '{account.id}' in {organization.name}")
        seen.add(account.id)


class OrganizationStore:
    """Owns organizations, the current selection and account groups.

    All state is persisted through the injected :class:`KeyValueStorage`.
    Storage failures are logged and otherwise ignored; the in-memory state
    stays authoritative for the rest of the session.
    """

    def __init__(self, storage: KeyValueStorage, source: DataSource | None = None) -> None:
        self.storage = storage
        self.source = source
        self.organizations: list[Organization] = []
        self.current_organization: Organization | None = None
        self.current_sub_account: Account | None = None
        self.account_groups: list[AccountGroup] = []
        self.is_ready = False

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------
    def _read(self, key: str) -> str | None:
        try:
            return self.storage.get(key)
        except OSError:
            log.exception("Failed to read %s from storage", key)
            return None

    def _read_json(self, key: str) -> Any:
        raw = self._read(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.warning("Stored value for %s is not valid JSON, ignoring it", key)
            return None

    def _write(self, key: str, value: str) -> None:
        try:
            self.storage.set(key, value)
        except OSError:
            log.exception("Failed to persist %s", key)

    def _remove(self, key: str) -> None:
        try:
            self.storage.remove(key)
        except OSError:
            log.exception("Failed to remove %s from storage", key)

    def _save_organizations(self) -> None:
        self._write(ORGANIZATIONS_KEY, json.dumps([o.dump() for o in self.organizations]))

    def _groups_key(self) -> str | None:
        if self.current_organization is None:
            return None
        return GROUPS_KEY_PREFIX + self.current_organization.name

    def _load_account_groups(self) -> None:
        key = self._groups_key()
        data = self._read_json(key) if key else None
        try:
            self.account_groups = [AccountGroup.model_validate(g) for g in data or []]
        except (ValidationError, TypeError):
            log.warning("Stored account groups under %s are corrupt, starting empty", key)
            self.account_groups = []

    def _save_account_groups(self) -> None:
        key = self._groups_key()
        if key:
            self._write(key, json.dumps([g.dump() for g in self.account_groups]))

    def _remove_all_groups(self) -> None:
        """Drop the stored groups and group order of every organization."""
        try:
            keys = self.storage.keys()
        except OSError:
            log.exception("Failed to list storage keys")
            keys = []
        for key in keys:
            if key == LEGACY_GROUPS_KEY or key.startswith(
                (GROUPS_KEY_PREFIX, GROUP_ORDER_KEY_PREFIX)
            ):
                self._remove(key)

    @property
    def state(self) -> StoreState:
        """Return an immutable snapshot of the current state."""
        return StoreState(
            organizations=tuple(o.model_copy(deep=True) for o in self.organizations),
            current_organization=(
                self.current_organization.model_copy(deep=True)
                if self.current_organization
                else None
            ),
            current_sub_account=(
                self.current_sub_account.model_copy(deep=True)
                if self.current_sub_account
                else None
            ),
            account_groups=tuple(g.model_copy(deep=True) for g in self.account_groups),
            group_order=tuple(self.custom_group_order()),
        )

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------
    async def initialize(self) -> StoreState:
        """Restore persisted state or fall back to the bundled defaults.

        Precedence: stored organizations snapshot (with colors), then the
        stored raw CSV, then the site's ``organizations.csv``, then the
        embedded sample CSV.
        """
        # Read the selection before set_current_organization overwrites it.
        saved_org_name = self._read(CURRENT_ORGANIZATION_KEY)
        saved_account_id = self._read(CURRENT_ACCOUNT_KEY)

        organizations = self._restore_organizations()
        if not organizations:
            organizations = await self._default_organizations()
        self.organizations = [normalize_organization(o) for o in organizations]
        self._save_organizations()

        org = (self.find_organization(saved_org_name) if saved_org_name else None) or (
            self.organizations[0]
        )
        self.set_current_organization(org)
        account = org.find_account(saved_account_id) if saved_account_id else None
        if account is not None:
            self.set_current_sub_account(account)
        self.is_ready = True
        return self.state

    def _restore_organizations(self) -> list[Organization]:
        data = self._read_json(ORGANIZATIONS_KEY)
        if data is not None:
            try:
                organizations = [Organization.model_validate(o) for o in data]
            except (ValidationError, TypeError):
                log.warning("Failed to load saved organizations data, trying CSV fallback")
            else:
                if organizations:
                    return organizations

        csv_text = self._read(CSV_KEY)
        if csv_text:
            try:
                return parse(csv_text)
            except MalformedInput as exc:
                log.warning("Failed to load saved CSV data, using defaults: %s", exc)
        return []

    async def _default_organizations(self) -> list[Organization]:
        if self.source is not None:
            try:
                organizations = parse(await self.source.fetch_csv())
            except (FetchFailure, MalformedInput) as exc:
                log.warning("Could not load repository CSV, using sample data: %s", exc)
            else:
                if organizations:
                    log.info("Loaded organizations.csv from repository")
                    return organizations
        return parse(SAMPLE_CSV) or [demo_organization()]

    # ------------------------------------------------------------------
    # CSV operations
    # ------------------------------------------------------------------
    def load_from_csv(self, csv_text: str) -> StoreState:
        """Replace every organization with the contents of ``csv_text``."""
        organizations = parse(csv_text)
        if not organizations:
            raise MalformedInput("CSV did not contain any valid data rows")
        self.organizations = [normalize_organization(o) for o in organizations]
        self._save_organizations()
        self._write(CSV_KEY, csv_text)
        self._remove_all_groups()

        self.set_current_organization(self.organizations[0])
        self.account_groups = []
        self._save_account_groups()
        log.info("Loaded %d organizations from CSV", len(self.organizations))
        return self.state

    def export_csv(self) -> str:
        return export_csv(self.organizations)

    @staticmethod
    def sample_csv() -> str:
        return SAMPLE_CSV

    # ------------------------------------------------------------------
    # Organization operations
    # ------------------------------------------------------------------
    def organization_names(self) -> list[str]:
        return [o.name for o in self.organizations]

    def find_organization(self, name: str) -> Organization | None:
        return next((o for o in self.organizations if o.name == name), None)

    def get_organization(self, name: str) -> Organization:
        org = self.find_organization(name)
        if org is None:
            available = ", ".join(self.organization_names()) or "None"
            raise NotFound(f"Organization '{name}' not found. Available: {available}")
        return org

    def add_organization(self, organization: Organization) -> StoreState:
        if self.find_organization(organization.name) is not None:
            raise DuplicateName(f'Organization "{organization.name}" already exists')
        check_account_ids(organization)
        self.organizations.append(normalize_organization(organization.model_copy(deep=True)))
        self._save_organizations()
        return self.state

    def set_current_organization(self, organization: Organization) -> StoreState:
        """Select ``organization`` and reset to its aggregate account."""
        org = self.get_organization(organization.name)
        self.current_organization = org
        self._write(CURRENT_ORGANIZATION_KEY, org.name)
        self._load_account_groups()

        aggregate = org.aggregate_account()
        if aggregate is not None:
            return self.set_current_sub_account(aggregate)
        return self.state

    def load_participant_payload(self, payload: ParticipantPayload) -> StoreState:
        """Replace all organizations with the one described by ``payload``.

        Locally persisted organizations and selection are discarded rather
        than merged.
        """
        organization = normalize_organization(payload.to_organization())
        for key in (ORGANIZATIONS_KEY, CURRENT_ORGANIZATION_KEY, CURRENT_ACCOUNT_KEY):
            self._remove(key)
        self.organizations = [organization]
        return self.set_current_organization(organization)

    # ------------------------------------------------------------------
    # Sub-account operations
    # ------------------------------------------------------------------
    def sub_accounts(self) -> list[Account]:
        return list(self.current_organization.accounts) if self.current_organization else []

    def find_sub_account(self, account_id: str) -> Account | None:
        if self.current_organization is None:
            return None
        return self.current_organization.find_account(account_id)

    def set_current_sub_account(self, account: Account) -> StoreState:
        target = self.find_sub_account(account.id)
        if target is None:
            raise NotFound(f"Account '{account.id}' is not part of the current organization")
        self.current_sub_account = target
        self._write(CURRENT_ACCOUNT_KEY, target.id)
        return self.state

    def switch_to_sub_account(self, account_id: str) -> StoreState:
        account = self.find_sub_account(account_id)
        if account is None:
            raise NotFound(f"Account '{account_id}' not found")
        return self.set_current_sub_account(account)

    def account_switcher_data(self) -> dict[str, Any]:
        """Accounts for the switcher menu with the current one listed first."""
        org, current = self.current_organization, self.current_sub_account
        if org is None or current is None:
            return {"current_account": None, "accounts": []}

        def entry(account: Account) -> dict[str, Any]:
            return {
                "id": account.id,
                "name": account.name,
                "type": "Organization" if account.is_aggregate else org.name,
                "is_aggregate": account.is_aggregate,
                "color": account.color,
            }

        accounts = [a for a in org.accounts if a.id == current.id]
        accounts += [a for a in org.accounts if a.id != current.id]
        return {"current_account": entry(current), "accounts": [entry(a) for a in accounts]}

    # ------------------------------------------------------------------
    # Account group operations
    # ------------------------------------------------------------------
    def _require_organization(self) -> Organization:
        if self.current_organization is None:
            raise NotFound("No organization is selected")
        return self.current_organization

    def get_account_group(self, group_id: str) -> AccountGroup:
        group = next((g for g in self.account_groups if g.id == group_id), None)
        if group is None:
            raise NotFound(f"Account group '{group_id}' not found")
        return group

    def account_groups_by_type(self, group_type: GroupType | str) -> list[AccountGroup]:
        gtype = self._group_type(group_type)
        return [g for g in self.account_groups if g.type is gtype]

    def get_eligible_accounts(
        self, group_type: GroupType | str, exclude_group_id: str | None = None
    ) -> list[Account]:
        """Accounts that may join a group of ``group_type``.

        Resource sharing groups are exclusive, so accounts already claimed by
        another resource sharing group (other than ``exclude_group_id``) are
        left out. The aggregate account is never eligible.
        """
        accounts = (
            self.current_organization.member_accounts() if self.current_organization else []
        )
        if self._group_type(group_type) is GroupType.RESOURCE_SHARING:
            used: set[str] = set()
            for group in self.account_groups_by_type(GroupType.RESOURCE_SHARING):
                if group.id != exclude_group_id:
                    used.update(group.account_ids)
            accounts = [a for a in accounts if a.id not in used]
        return accounts

    def _check_members(
        self, group_type: GroupType, account_ids: Iterable[str], group_id: str | None
    ) -> list[str]:
        org = self._require_organization()
        known = {a.id for a in org.member_accounts()}
        eligible = {a.id for a in self.get_eligible_accounts(group_type, group_id)}
        checked: list[str] = []
        for account_id in account_ids:
            if account_id in checked:
                continue
            if account_id not in known:
                raise NotFound(f"Account '{account_id}' is not part of {org.name}")
            if account_id not in eligible:
                raise MembershipConflict(
                    f"Account '{account_id}' already belongs to another resource sharing group"
                )
            checked.append(account_id)
        return checked

    @staticmethod
    def _group_type(value: GroupType | str) -> GroupType:
        try:
            return GroupType(value)
        except ValueError:
            raise MalformedInput(f"Unknown group type: {value!r}") from None

    def create_account_group(
        self,
        name: str,
        group_type: GroupType | str,
        account_ids: Iterable[str] = (),
        description: str = "",
    ) -> StoreState:
        if not name.strip():
            raise MalformedInput("Group name must not be empty")
        gtype = self._group_type(group_type)
        members = self._check_members(gtype, account_ids, None)
        group = AccountGroup(
            id=f"group_{uuid.uuid4().hex[:12]}",
            name=name.strip(),
            type=gtype,
            account_ids=members,
            description=description,
            created_at=utc_now_iso(),
        )
        self.account_groups.append(group)
        self._save_account_groups()
        return self.state

    def update_account_group(
        self,
        group_id: str,
        *,
        name: str | None = None,
        group_type: GroupType | str | None = None,
        account_ids: Iterable[str] | None = None,
        description: str | None = None,
    ) -> StoreState:
        current = self.get_account_group(group_id)
        gtype = self._group_type(group_type) if group_type is not None else current.type
        members = self._check_members(
            gtype, current.account_ids if account_ids is None else account_ids, group_id
        )
        updates: dict[str, Any] = {
            "type": gtype,
            "account_ids": members,
            "updated_at": utc_now_iso(),
        }
        if name is not None:
            if not name.strip():
                raise MalformedInput("Group name must not be empty")
            updates["name"] = name.strip()
        if description is not None:
            updates["description"] = description

        index = self.account_groups.index(current)
        self.account_groups[index] = current.model_copy(update=updates)
        self._save_account_groups()
        return self.state

    def delete_account_group(self, group_id: str) -> StoreState:
        group = self.get_account_group(group_id)
        self.account_groups.remove(group)
        self._save_account_groups()
        order = self.custom_group_order()
        if group_id in order:
            self.set_custom_group_order([g for g in order if g != group_id])
        return self.state

    def can_add_account_to_group(self, account_id: str, group_id: str) -> bool:
        group = next((g for g in self.account_groups if g.id == group_id), None)
        if group is None:
            return False
        return any(a.id == account_id for a in self.get_eligible_accounts(group.type, group_id))

    def accounts_in_group(self, group_id: str) -> list[Account]:
        group = self.get_account_group(group_id)
        return [a for a in self.sub_accounts() if a.id in group.account_ids]

    def groups_for_account(self, account_id: str) -> list[AccountGroup]:
        return [g for g in self.account_groups if account_id in g.account_ids]

    def grouping_insights(self) -> dict[str, Any]:
        groups = self.account_groups
        grouped = {aid for g in groups for aid in g.account_ids}
        members = self.current_organization.member_accounts() if self.current_organization else []
        return {
            "total_groups": len(groups),
            "groups_by_type": {t.value: len(self.account_groups_by_type(t)) for t in GroupType},
            "average_accounts_per_group": (
                sum(len(g.account_ids) for g in groups) / len(groups) if groups else 0
            ),
            "ungrouped_accounts": sum(1 for a in members if a.id not in grouped),
        }

    # ------------------------------------------------------------------
    # Custom group ordering
    # ------------------------------------------------------------------
    def _order_key(self) -> str | None:
        if self.current_organization is None:
            return None
        return GROUP_ORDER_KEY_PREFIX + self.current_organization.name

    def custom_group_order(self) -> list[str]:
        key = self._order_key()
        data = self._read_json(key) if key else None
        if not isinstance(data, list):
            return []
        return [str(group_id) for group_id in data]

    def set_custom_group_order(self, group_ids: Iterable[str]) -> StoreState:
        key = self._order_key()
        if key is None:
            raise NotFound("No organization is selected")
        self._write(key, json.dumps(list(group_ids)))
        return self.state

    def clear_custom_group_order(self) -> StoreState:
        key = self._order_key()
        if key is not None:
            self._remove(key)
        return self.state

    def ordered_account_groups(self) -> list[AccountGroup]:
        """Groups in custom order; groups missing from the order keep creation order."""
        position = {gid: i for i, gid in enumerate(self.custom_group_order())}
        return sorted(
            self.account_groups, key=lambda g: position.get(g.id, len(position))
        )

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------
    async def reset_all_data(self) -> StoreState:
        """Forget every persisted key and reload the bundled defaults."""
        for key in (
            CURRENT_ORGANIZATION_KEY,
            CURRENT_ACCOUNT_KEY,
            CSV_KEY,
            ORGANIZATIONS_KEY,
        ):
            self._remove(key)
        self._remove_all_groups()

        self.organizations = []
        self.current_organization = None
        self.current_sub_account = None
        self.account_groups = []
        self.is_ready = False
        log.info("All prototype data reset")
        return await self.initialize()
