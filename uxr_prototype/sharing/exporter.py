"""Package an organization so a study participant can load it."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
import string
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

from ..core.models import Organization, ParticipantPayload
from ..core.storage import atomic_write_text
from ..data.csv_parser import parse

log = logging.getLogger("uxr.exporter")

_ID_CHARS = string.ascii_lowercase + string.digits


def generate_participant_id() -> str:
    """Return ``participant-<epoch ms>-<6 random base36 chars>``."""
    suffix = "".join(random.choice(_ID_CHARS) for _ in range(6))
    return f"participant-{int(time.time() * 1000)}-{suffix}"


@dataclass(frozen=True)
class ExportResult:
    id: str
    url: str
    payload: ParticipantPayload
    path: Path


class SharingExporter:
    """Write participant files and build the links that reference them.

    Files land in ``output_dir`` as ``<participant id>.json``; they are meant
    to be published under ``data/participants/`` on the prototype's site.
    """

    def __init__(
        self,
        output_dir: Path | str,
        origin: str,
        app_path: str = "/",
        id_factory: Callable[[], str] = generate_participant_id,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.origin = origin.rstrip("/")
        self.app_path = app_path if app_path.startswith("/") else "/" + app_path
        self.id_factory = id_factory
        self.last_result: ExportResult | None = None
        self._in_flight: asyncio.Task[ExportResult] | None = None

    def share_url(self, participant_id: str) -> str:
        return (
            f"{self.origin}{self.app_path}"
            f"?data={quote(participant_id, safe='')}&mode=participant"
        )

    async def _write_artifact(self, participant_id: str, payload: ParticipantPayload) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{participant_id}.json"
        text = json.dumps(payload.dump(), indent=2, ensure_ascii=False)
        await asyncio.to_thread(atomic_write_text, path, text)
        return path

    async def _package(self, organization: Organization, **metadata: Any) -> ExportResult:
        participant_id = self.id_factory()
        payload = ParticipantPayload.from_organization(
            organization, participant_id=participant_id, **metadata
        )
        path = await self._write_artifact(participant_id, payload)
        log.info("Generated participant file: %s", path)
        return ExportResult(
            id=participant_id, url=self.share_url(participant_id), payload=payload, path=path
        )

    async def _export(self, organization: Organization) -> ExportResult:
        result = await self._package(
            organization,
            scenario="custom",
            description=f"Custom participant data for {organization.name}",
        )
        self.last_result = result
        return result

    async def export_participant_package(self, organization: Organization) -> ExportResult:
        """Snapshot ``organization`` into a participant file and share link.

        A second call made while an export is still in flight gets the same
        result back instead of producing another file.
        """
        if self._in_flight is not None and not self._in_flight.done():
            log.warning("Export already in progress, returning the pending result")
            return await asyncio.shield(self._in_flight)
        self._in_flight = asyncio.create_task(self._export(organization.model_copy(deep=True)))
        return await asyncio.shield(self._in_flight)

    async def generate_participant_files(
        self, csv_text: str, skip: Iterable[str] = ()
    ) -> list[ExportResult]:
        """Write one participant file per organization found in ``csv_text``."""
        skipped = set(skip)
        results = []
        for organization in parse(csv_text):
            if organization.name in skipped:
                log.info("Skipping existing participant file for %s", organization.name)
                continue
            slug = re.sub(r"[^a-z0-9]", "-", organization.name.lower())
            results.append(
                await self._package(
                    organization,
                    scenario=f"csv-{slug}",
                    description=f"CSV-generated participant data for {organization.name}",
                    participant_file=True,
                    generated_from="csv-upload-script",
                )
            )
        return results
