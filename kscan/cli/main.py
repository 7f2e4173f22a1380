"""Main CLI application using Cyclopts."""

from typing import Annotated

import cyclopts

from kscan.cli.commands import get, reconcile, scan
from kscan.config import Config, configure_logging

app = cyclopts.App(
    name="kscan",
    help="kscan - run security scanners against Kubernetes workloads",
)

app.command(scan.app, name="scan")
app.command(get.app, name="get")
app.command(reconcile.app, name="reconcile")


@app.meta.default
def main(
    *tokens: Annotated[str, cyclopts.Parameter(show=False, allow_leading_hyphen=True)],
) -> None:
    configure_logging(Config().logging)
    app(tokens)


def run() -> None:
    app.meta()
