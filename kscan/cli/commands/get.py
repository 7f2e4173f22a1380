"""Get command: show the stored reports of a workload."""

import asyncio
import sys
from typing import Annotated

import cyclopts

from kscan.application.di import create_container
from kscan.cli.console import get_console
from kscan.domain.report.model.value import Report
from kscan.domain.report.port.repository import ReportReadWriter
from kscan.domain.shared.error import KscanError
from kscan.domain.workload.model.value import ObjectRef
from kscan.util.di.scope import Scope

app = cyclopts.App(name="get", help="Show stored reports")


async def _find(ref: ObjectRef) -> list[Report]:
    container = create_container()
    try:
        async with container(scope=Scope.UOW) as scope:
            store = await scope.get(ReportReadWriter)
            return await store.find_by_owner_in_hierarchy(ref)
    finally:
        await container.close()


@app.default
def get(
    workload: str,
    /,
    namespace: Annotated[str, cyclopts.Parameter(name=["--namespace", "-n"])] = "default",
) -> None:
    """Show the reports of a workload.

    Deployments and pods without reports of their own fall back to the
    reports of their active replica set.

    Args:
        workload: KIND/NAME of the workload, e.g. deployment/web.
        namespace: Namespace of the workload.
    """
    console = get_console()
    try:
        ref = ObjectRef.parse(workload, namespace)
        reports = asyncio.run(_find(ref))
    except KscanError as e:
        console.error(e.message)
        sys.exit(1)

    console.reports(reports, title=f"{ref.kind}/{ref.name}")
