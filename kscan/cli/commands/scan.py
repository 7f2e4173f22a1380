"""Scan command: run the configured scanner against one workload."""

import asyncio
import sys
from typing import Annotated

import cyclopts

from kscan.application.di import create_container
from kscan.cli.console import get_console
from kscan.domain.report.model.value import Report
from kscan.domain.report.port.repository import ReportReadWriter
from kscan.domain.scan.service.orchestrator import ScanOrchestrator
from kscan.domain.shared.error import KscanError, ScanError
from kscan.domain.workload.model.value import ObjectRef
from kscan.util.di.scope import Scope

app = cyclopts.App(name="scan", help="Scan a workload and store its reports")


async def _scan(ref: ObjectRef, write: bool) -> list[Report]:
    container = create_container()
    try:
        async with container(scope=Scope.UOW) as scope:
            orchestrator = await scope.get(ScanOrchestrator)
            reports = await orchestrator.scan(ref)
            if write:
                writer = await scope.get(ReportReadWriter)
                await writer.write(reports)
            return reports
    finally:
        await container.close()


@app.default
def scan(
    workload: str,
    /,
    namespace: Annotated[str, cyclopts.Parameter(name=["--namespace", "-n"])] = "default",
    *,
    dry_run: bool = False,
) -> None:
    """Scan a workload with the configured scanner.

    Args:
        workload: KIND/NAME of the workload, e.g. deployment/web.
        namespace: Namespace of the workload.
        dry_run: Print the reports without storing them.
    """
    console = get_console()
    try:
        ref = ObjectRef.parse(workload, namespace)
        with console.status(f"Scanning {ref.kind}/{ref.name}..."):
            reports = asyncio.run(_scan(ref, write=not dry_run))
    except ScanError as e:
        console.error(f"Scan failed while {e.stage}: {e.cause.message}")
        sys.exit(1)
    except KscanError as e:
        console.error(e.message)
        sys.exit(1)

    console.reports(reports, title=f"{ref.kind}/{ref.name}")
    if not dry_run:
        console.success(f"Stored {len(reports)} report{'s' if len(reports) != 1 else ''}")
