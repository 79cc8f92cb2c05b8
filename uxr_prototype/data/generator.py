"""Procedural organizations for quick prototype sessions."""

from __future__ import annotations

import random
import re

from ..core.models import ACCOUNT_TYPE, Account, Organization, make_aggregate_account
from ..errors import MalformedInput
from .csv_parser import generate_account_color

ADJECTIVES = ("strategic", "digital", "global", "premier", "agile", "northern", "core")
NOUNS = ("solutions", "partners", "platform", "ventures", "operations", "labs", "services")
PERSONALITIES = ("alpha", "apex", "prime", "nexus", "summit", "vanguard")
STRUCTURES = ("division", "group", "team", "unit", "hub", "studio")
REGIONS = ("Americas", "EMEA", "APAC", "Nordic", "Pacific", "Atlantic")

_MAX_ATTEMPTS = 20


def _title(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split())


def _candidate(org_words: list[str], rng: random.Random) -> str:
    strategy = rng.randrange(4)
    if strategy == 0:
        return _title(f"{rng.choice(ADJECTIVES)} {rng.choice(NOUNS)}")
    if strategy == 1:
        return _title(f"{rng.choice(PERSONALITIES)} {rng.choice(STRUCTURES)}")
    if strategy == 2 and org_words:
        return _title(f"{rng.choice(org_words)} {rng.choice(NOUNS)}")
    return f"{rng.choice(REGIONS)} {_title(rng.choice(NOUNS))}"


def generate_account_names(
    org_name: str, count: int, rng: random.Random | None = None
) -> list[str]:
    """Return ``count`` distinct templated account names for ``org_name``."""
    rng = rng or random.Random()
    org_words = [w for w in org_name.split() if len(w) > 3]
    names: list[str] = []
    seen: set[str] = set()
    for index in range(count):
        name = _candidate(org_words, rng)
        attempts = 1
        while name in seen and attempts < _MAX_ATTEMPTS:
            name = _candidate(org_words, rng)
            attempts += 1
        if name in seen:
            name = f"{name} {index + 1}"
        seen.add(name)
        names.append(name)
    return names


def generate_organization(
    org_name: str, count: int = 5, seed: int | str | None = None
) -> Organization:
    """Build an organization with ``count`` generated accounts.

    Passing ``seed`` makes the generated names reproducible; without it every
    call produces a fresh set, which is what the "refresh" action relies on.
    """
    org_name = org_name.strip()
    if not org_name:
        raise MalformedInput("Please enter an organization name")
    if count < 1:
        raise MalformedInput("An organization needs at least one account")

    rng = random.Random(seed) if seed is not None else random.Random()
    prefix = re.sub(r"\s+", "_", org_name.lower())
    accounts = [make_aggregate_account(org_name)]
    for index, name in enumerate(generate_account_names(org_name, count, rng)):
        account_id = f"{prefix}_{index + 1}"
        accounts.append(
            Account(
                id=account_id,
                name=name,
                type=ACCOUNT_TYPE,
                color=generate_account_color(name, account_id),
            )
        )
    return Organization(name=org_name, accounts=accounts)
