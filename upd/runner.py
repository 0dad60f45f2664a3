"""Run orchestration: read -> parse -> select -> resolve -> merge -> patch -> write."""

from __future__ import annotations

from dataclasses import dataclass, field

import httpx
import structlog

from upd.config import UpdateConfig
from upd.manifest import parser
from upd.manifest.models import DependencyEntry, EntryState, ManifestDocument
from upd.manifest.patcher import apply_updates
from upd.planner import planner
from upd.registry.client import RegistryClient
from upd.registry.npmrc import NpmConfig, default_npmrc_paths
from upd.registry.resolver import VersionResolver

log = structlog.get_logger("upd")


@dataclass(frozen=True)
class ReportRow:
    name: str
    section: str
    old_specifier: str
    new_specifier: str
    state: EntryState


@dataclass
class UpdateReport:
    """What a run did (or, on a dry run, would have done)."""

    rows: list[ReportRow] = field(default_factory=list)
    updates: bool = False
    written: bool = False


def build_report(document: ManifestDocument, show_all: bool) -> list[ReportRow]:
    """Rows for every considered entry; only ``updated`` ones unless *show_all*."""
    rows = []
    for entry in document.entries:
        if entry.state is EntryState.IGNORED:
            continue
        if not show_all and entry.state is not EntryState.UPDATED:
            continue
        rows.append(_row(entry))
    return rows


def _row(entry: DependencyEntry) -> ReportRow:
    return ReportRow(
        name=entry.name,
        section=entry.section,
        old_specifier=entry.original_specifier,
        new_specifier=entry.new_specifier,
        state=entry.state,
    )


async def run(
    config: UpdateConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UpdateReport:
    """Execute one upgrade run. Any error aborts before the manifest is written."""
    text = parser.read_manifest(config.file)
    document = parser.parse(text)

    planner.select(document, config.patterns)
    planner.classify(document)

    names = document.names_to_check()
    structlog.contextvars.bind_contextvars(manifest=str(config.file))
    try:
        if names:
            npm_paths = config.npmrc_paths
            if npm_paths is None:
                npm_paths = default_npmrc_paths(config.file)
            npm_config = NpmConfig.load(npm_paths)
            async with RegistryClient(npm_config, config.timeout, transport) as client:
                resolver = VersionResolver(client, config.concurrency, config.mode)
                results = await resolver.resolve(names)
        else:
            results = {}

        # Sequential from here on: merge needs the complete result set.
        updates = planner.merge(document, results)
        new_text = apply_updates(document) if updates else text

        written = False
        if updates and not config.dry_run:
            parser.write_manifest(config.file, new_text)
            written = True
            log.info("runner.written", updated=len(document.in_state(EntryState.UPDATED)))
    finally:
        structlog.contextvars.unbind_contextvars("manifest")

    return UpdateReport(
        rows=build_report(document, config.show_all),
        updates=updates,
        written=written,
    )
