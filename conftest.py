"""Test configuration: package imports and a fake static site."""

import json
import os
import sys

import httpx
import pytest

# Add the repository root (the directory containing this file) to ``sys.path``
# if it is not already present.  This mirrors the behaviour of running the
# tests via ``python -m pytest`` where the working directory is automatically on
# the import path.
ROOT_DIR = os.path.abspath(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from uxr_prototype.adapters.static_site import StaticSiteSource  # noqa: E402
from uxr_prototype.core.storage import MemoryStorage  # noqa: E402

SITE_URL = "http://prototype.test/account-group-uxr/"
SITE_PREFIX = "/account-group-uxr/"


class StaticSite:
    """Files served under ``SITE_URL`` through :class:`httpx.MockTransport`."""

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.requests: list[str] = []

    def add_text(self, path: str, text: str) -> None:
        self.files[path] = text

    def add_json(self, path: str, data: object) -> None:
        self.files[path] = json.dumps(data)

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix(SITE_PREFIX)
        self.requests.append(path)
        if path not in self.files:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=self.files[path])


@pytest.fixture()
def site() -> StaticSite:
    return StaticSite()


@pytest.fixture()
def source(site: StaticSite) -> StaticSiteSource:
    client = httpx.AsyncClient(transport=httpx.MockTransport(site.handler))
    return StaticSiteSource(SITE_URL, client=client)


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def session() -> MemoryStorage:
    return MemoryStorage()
