"""Tests for core Pydantic models."""

import pytest
from pydantic import ValidationError

from uxr_prototype.core.models import (
    AGGREGATE_ACCOUNT_ID,
    Account,
    AccountGroup,
    GroupType,
    Organization,
    ParticipantPayload,
    make_aggregate_account,
)


def test_account_defaults() -> None:
    """Unspecified fields on ``Account`` use sensible defaults."""
    account = Account(id="a1", name="Sales")
    assert account.type == "Account"
    assert account.is_aggregate is False
    assert account.color is None
    assert account.original_name is None


def test_aggregate_account() -> None:
    aggregate = make_aggregate_account("Acme")
    assert aggregate.id == AGGREGATE_ACCOUNT_ID
    assert aggregate.name == "Acme"
    assert aggregate.type == "Aggregate view"
    assert aggregate.is_aggregate


def test_dump_uses_camel_case_keys() -> None:
    account = Account(id="a1", name="Sales", original_name="Sales", color="#3B82F6")
    assert account.dump() == {
        "id": "a1",
        "name": "Sales",
        "originalName": "Sales",
        "type": "Account",
        "isAggregate": False,
        "color": "#3B82F6",
    }
    loaded = Account.model_validate({"id": "x", "name": "X", "isAggregate": True})
    assert loaded.is_aggregate


def test_organization_helpers() -> None:
    org = Organization(
        name="Acme",
        accounts=[make_aggregate_account("Acme"), Account(id="a1", name="Sales")],
    )
    assert org.aggregate_account().id == AGGREGATE_ACCOUNT_ID
    assert [a.id for a in org.member_accounts()] == ["a1"]
    assert org.find_account("a1").name == "Sales"
    assert org.find_account("missing") is None


def test_account_group_serialises_type_value() -> None:
    group = AccountGroup(id="g1", name="Team", type="resource_sharing", account_ids=["a1"])
    data = group.dump()
    assert data["type"] == "resource_sharing"
    assert data["accountIds"] == ["a1"]
    assert "createdAt" in data
    assert group.type is GroupType.RESOURCE_SHARING


def test_participant_payload_is_immutable_snapshot() -> None:
    org = Organization(
        name="Acme",
        accounts=[make_aggregate_account("Acme"), Account(id="a1", name="Sales")],
    )
    payload = ParticipantPayload.from_organization(org, scenario="custom")
    org.accounts[1].name = "Renamed"

    assert payload.accounts[1].name == "Sales"
    assert payload.scenario_name == payload.organization_name == "Acme"
    with pytest.raises(ValidationError):
        payload.organization_name = "Other"


def test_participant_payload_reads_wire_format() -> None:
    payload = ParticipantPayload.model_validate(
        {
            "scenarioName": "Enterprise",
            "organizationName": "Enterprise Co",
            "accounts": [{"id": "all_accounts", "name": "Enterprise Co", "isAggregate": True}],
            "metadata": {"createdAt": "2024-01-01T00:00:00.000Z", "scenario": "enterprise"},
        }
    )
    org = payload.to_organization()
    assert org.name == "Enterprise Co"
    assert org.aggregate_account() is not None
    assert payload.metadata.scenario == "enterprise"
