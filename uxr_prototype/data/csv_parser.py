"""Turn ``Organization,Account Name`` CSV text into organizations.

Account IDs and colors are pure functions of their inputs so that the same
CSV always renders with the same colors, across reloads and machines.
"""

from __future__ import annotations

import csv
import io
import re
from collections.abc import Iterable

from ..core.models import ACCOUNT_TYPE, Account, Organization, make_aggregate_account
from ..errors import MalformedInput

ACCOUNT_COLORS = (
    "#3B82F6",  # blue-500
    "#8B5CF6",  # violet-500
    "#10B981",  # emerald-500
    "#F59E0B",  # amber-500
    "#EF4444",  # red-500
    "#EC4899",  # pink-500
    "#06B6D4",  # cyan-500
    "#84CC16",  # lime-500
    "#F97316",  # orange-500
    "#6366F1",  # indigo-500
    "#14B8A6",  # teal-500
    "#F87171",  # red-400
    "#A78BFA",  # violet-400
    "#34D399",  # emerald-400
    "#FBBF24",  # amber-400
)

CSV_HEADER = ("Organization", "Account Name")

SAMPLE_CSV = """Organization,Account Name
TechSaaS Corp,Mobile App
TechSaaS Corp,Web Platform
TechSaaS Corp,API Services
TechSaaS Corp,Mobile App
TechSaaS Corp,Analytics Dashboard
TechSaaS Corp,Development Environment
TechSaaS Corp,Staging Environment
TechSaaS Corp,Production Environment
GlobalCommerce Ltd,North America B2B
GlobalCommerce Ltd,North America B2C
GlobalCommerce Ltd,Europe B2B
GlobalCommerce Ltd,Europe B2C
GlobalCommerce Ltd,North America B2B
GlobalCommerce Ltd,Marketplace Platform
GlobalCommerce Ltd,Payment Processing
FinanceFirst Bank,Personal Banking
FinanceFirst Bank,Commercial Banking
FinanceFirst Bank,Investment & Wealth
FinanceFirst Bank,Digital Banking
FinanceFirst Bank,Personal Banking"""

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_EDGE_QUOTES = re.compile(r"^[\"']|[\"']$")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _code_units(text: str) -> list[int]:
    """UTF-16 code units of ``text``, as the browser's ``charCodeAt`` sees them."""
    data = text.encode("utf-16-le")
    return [int.from_bytes(data[i : i + 2], "little") for i in range(0, len(data), 2)]


def string_hash(text: str) -> int:
    """32-bit signed ``hash * 31 + char`` over ``text``."""
    value = 0
    for unit in _code_units(text):
        value = _to_int32((value << 5) - value + unit)
    return value


def color_hash(text: str) -> int:
    """Like :func:`string_hash` but only the shifted term wraps to 32 bits.

    The accumulator itself is left unbounded, which is how the prototype's
    page computes account colors.
    """
    value = 0
    for unit in _code_units(text):
        value = unit + (_to_int32(_to_int32(value) << 5) - value)
    return value


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _slug(text: str, length: int) -> str:
    return _NON_ALNUM.sub("", text.lower())[:length]


def generate_account_id(org_name: str, account_name: str, occurrence: int = 1) -> str:
    """Return a reproducible account ID.

    ``occurrence`` counts how many times ``account_name`` has been seen in
    ``org_name`` so far; it feeds the hash and, past the first occurrence,
    is appended literally so duplicate names never share an ID.
    """
    digest = _base36(abs(string_hash(f"{org_name}_{account_name}_{occurrence}")))[:6]
    suffix = f"_{occurrence}" if occurrence > 1 else ""
    return f"{_slug(org_name, 4)}_{_slug(account_name, 8)}_{digest}{suffix}"


def generate_account_color(account_name: str, account_id: str) -> str:
    index = abs(color_hash(f"{account_name}_{account_id}")) % len(ACCOUNT_COLORS)
    return ACCOUNT_COLORS[index]


def _clean(cell: str) -> str:
    return _EDGE_QUOTES.sub("", cell.strip()).strip()


def _read_rows(csv_text: str) -> list[list[str]]:
    reader = csv.reader(io.StringIO(csv_text), skipinitialspace=True)
    rows = []
    for row in reader:
        cells = [_clean(cell) for cell in row]
        if any(cells):
            rows.append(cells)
    return rows


def _check_header(header: list[str]) -> None:
    lowered = [cell.lower() for cell in header]
    has_org = any(cell.startswith("org") for cell in lowered)
    has_account = any("account" in cell for cell in lowered)
    if not (has_org and has_account):
        raise MalformedInput(
            'CSV must have "Organization" and "Account Name" columns'
        )


def parse(csv_text: str) -> list[Organization]:
    """Parse CSV text into organizations in first-seen order.

    Each organization starts with its aggregate account followed by one
    account per data row. Rows without both an organization and an account
    name are skipped.
    """
    rows = _read_rows(csv_text)
    if len(rows) < 2:
        raise MalformedInput("CSV must have at least a header row and one data row")
    _check_header(rows[0])

    organizations: dict[str, Organization] = {}
    occurrences: dict[tuple[str, str], int] = {}
    for row in rows[1:]:
        if len(row) < 2 or not row[0] or not row[1]:
            continue
        org_name, account_name = row[0], row[1]
        count = occurrences.get((org_name, account_name), 0) + 1
        occurrences[(org_name, account_name)] = count

        org = organizations.get(org_name)
        if org is None:
            org = Organization(name=org_name, accounts=[make_aggregate_account(org_name)])
            organizations[org_name] = org

        account_id = generate_account_id(org_name, account_name, count)
        org.accounts.append(
            Account(
                id=account_id,
                name=account_name,
                original_name=account_name,
                type=ACCOUNT_TYPE,
                color=generate_account_color(account_name, account_id),
            )
        )
    return list(organizations.values())


def export_csv(organizations: Iterable[Organization]) -> str:
    """Render organizations back to CSV, leaving out aggregate accounts."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for org in organizations:
        for account in org.member_accounts():
            writer.writerow((org.name, account.name))
    return buffer.getvalue()
