"""Reconcile command: adopt or delete scan secrets left without an owner."""

import asyncio
import sys
from typing import Annotated

import cyclopts

from kscan.application.di import create_container
from kscan.cli.console import get_console
from kscan.config import Config
from kscan.domain.shared.error import KscanError
from kscan.infrastructure.k8s.reconcile import ReconcileResult, SecretReconciler
from kscan.util.di.scope import Scope

app = cyclopts.App(name="reconcile", help="Clean up orphaned scan secrets")


async def _reconcile(namespace: str | None) -> ReconcileResult:
    config = Config()
    container = create_container(config)
    try:
        async with container(scope=Scope.UOW) as scope:
            reconciler = await scope.get(SecretReconciler)
            return await reconciler.reconcile(namespace or config.scan.namespace)
    finally:
        await container.close()


@app.default
def reconcile(
    *,
    namespace: Annotated[str | None, cyclopts.Parameter(name=["--namespace", "-n"])] = None,
) -> None:
    """Adopt or delete secrets whose ownership handover never finished.

    Args:
        namespace: Namespace of the scan jobs. Defaults to the configured one.
    """
    console = get_console()
    try:
        result = asyncio.run(_reconcile(namespace))
    except KscanError as e:
        console.error(e.message)
        sys.exit(1)

    for name in result.adopted:
        console.info(f"adopted {name}")
    for name in result.deleted:
        console.info(f"deleted {name}")
    console.success(f"{len(result.adopted)} adopted, {len(result.deleted)} deleted")
