import random

import pytest

from uxr_prototype.data.csv_parser import ACCOUNT_COLORS
from uxr_prototype.data.generator import generate_account_names, generate_organization
from uxr_prototype.errors import MalformedInput


def test_generated_organization_shape():
    org = generate_organization("Northwind Traders", count=6, seed=7)
    assert org.name == "Northwind Traders"
    assert org.accounts[0].is_aggregate
    members = org.member_accounts()
    assert len(members) == 6
    assert [a.id for a in members] == [f"northwind_traders_{i}" for i in range(1, 7)]
    assert all(a.color in ACCOUNT_COLORS for a in members)
    assert len({a.name for a in members}) == 6


def test_seed_makes_generation_reproducible():
    first = generate_organization("Acme", count=4, seed="study-1")
    second = generate_organization("Acme", count=4, seed="study-1")
    assert first == second


def test_names_stay_unique_when_vocabulary_runs_out():
    names = generate_account_names("Acme", 60, random.Random(1))
    assert len(names) == 60
    assert len(set(names)) == 60


def test_invalid_input():
    with pytest.raises(MalformedInput):
        generate_organization("   ")
    with pytest.raises(MalformedInput):
        generate_organization("Acme", count=0)
