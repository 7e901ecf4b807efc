"""Deploy commands for the debug pod CLI."""

from __future__ import annotations

from typing import Optional

import click
from rich.markup import escape
from rich.table import Table

from ..config import DebugPodSettings
from ..deployer import Deployer, DeployResult, describe, parse_overrides
from ..errors import DebugPodError
from ..manifest import TemplateCatalog
from .common import (
    build_client,
    console,
    context_option,
    err_console,
    fail,
    namespace_option,
    prepare,
    verbose_option,
)


def print_images(settings: DebugPodSettings) -> None:
    """Print one `<purpose>\\t<image>` line per available template."""
    catalog = TemplateCatalog(settings.templates_dir)
    purposes = catalog.list_purposes()
    if not purposes:
        err_console.print(f"[yellow]No pod templates found in {settings.templates_dir}[/yellow]")
        return

    for purpose in purposes:
        try:
            image = catalog.load(purpose).image
        except DebugPodError as exc:
            err_console.print(f"[yellow]{escape(str(exc))}[/yellow]", soft_wrap=True)
            image = f"{settings.image_reference(purpose)} (invalid template)"
        click.echo(f"{purpose}\t{image}")


@click.command(name="deploy")
@context_option
@namespace_option
@click.option("--memory", "-m", default=None, help="Memory request/limit, e.g. 512Mi.")
@click.option(
    "--ephemeral-storage",
    "-e",
    "ephemeral_storage",
    default=None,
    help="Ephemeral storage request/limit, e.g. 2Gi.",
)
@click.option("--cpu", default=None, help="CPU request/limit, e.g. 250m.")
@click.option(
    "--timeout",
    "timeout",
    type=int,
    default=None,
    help="Seconds to wait for the pod to become Ready when attaching.",
)
@click.option(
    "--auto",
    "attach",
    is_flag=True,
    default=False,
    help="Wait for the pod and attach an interactive shell.",
)
@click.option(
    "--list-images",
    is_flag=True,
    default=False,
    help="List the available pod types and their images, then exit.",
)
@verbose_option
@click.argument("pod_type", required=False)
def deploy(
    context: Optional[str],
    namespace: Optional[str],
    memory: Optional[str],
    ephemeral_storage: Optional[str],
    cpu: Optional[str],
    timeout: Optional[int],
    attach: bool,
    list_images: bool,
    verbose: bool,
    pod_type: Optional[str],
):
    """Deploy a debug pod of POD_TYPE."""
    settings = prepare(
        verbose,
        context=context,
        namespace=namespace,
        ready_timeout_seconds=timeout,
    )
    if list_images:
        print_images(settings)
        return
    if not pod_type:
        raise click.UsageError("Missing argument 'POD_TYPE' (see --list-images).")

    deployer = Deployer(
        TemplateCatalog(settings.templates_dir),
        build_client(settings),
        ready_timeout_seconds=settings.ready_timeout_seconds,
        shell=settings.shell,
    )
    try:
        overrides = parse_overrides(
            memory=memory,
            ephemeral_storage=ephemeral_storage,
            cpu=cpu,
        )
        result = deployer.deploy(
            pod_type,
            overrides,
            attach=attach,
            on_submitted=lambda submitted: _announce(submitted, waiting=attach),
        )
    except DebugPodError as exc:
        fail(exc)

    if result.attached:
        if result.session_exit_code:
            console.print(f"Shell session exited with code {result.session_exit_code}.")
        return
    console.print(
        f"\nAttach with: kubectl{_context_flag(result.context)} -n {result.namespace} "
        f"exec -it {result.pod_name} -- {settings.shell}",
        markup=False,
        soft_wrap=True,
    )


@click.command(name="list-images")
@verbose_option
def list_images(verbose: bool):
    """List the available pod types and their images."""
    print_images(prepare(verbose))


def _announce(result: DeployResult, *, waiting: bool) -> None:
    table = Table(title="Debug pod created", show_header=False)
    table.add_column("field", style="bold")
    table.add_column("value")
    for key, value in describe(result).items():
        table.add_row(key, escape(value))
    console.print(table)
    if waiting:
        console.print("Waiting for the pod to become Ready...")


def _context_flag(context: Optional[str]) -> str:
    if context:
        return f" --context={context}"
    return ""
