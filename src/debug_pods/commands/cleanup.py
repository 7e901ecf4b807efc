"""Cleanup command for the debug pod CLI."""

from __future__ import annotations

from typing import Optional

import click
from rich.markup import escape

from ..cleanup import Cleanup, CleanupReport
from ..errors import DebugPodError, DeleteError
from ..manifest import is_valid_purpose
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


def _validate_purpose(
    _ctx: click.Context, _param: click.Parameter, value: Optional[str]
) -> Optional[str]:
    if value is not None and not is_valid_purpose(value):
        raise click.BadParameter(
            f"'{value}' is not a pod type (lowercase letters, digits and dashes)."
        )
    return value


@click.command(name="cleanup")
@context_option
@namespace_option
@click.option(
    "--all",
    "all_pods",
    is_flag=True,
    default=False,
    help="Delete every debug pod (label app=debug-pod).",
)
@click.option(
    "--type",
    "pod_type",
    default=None,
    metavar="PURPOSE",
    callback=_validate_purpose,
    help="Delete only debug pods of one type (label type=PURPOSE).",
)
@click.option("--dry-run", is_flag=True, default=False, help="Only list matching pods.")
@verbose_option
def cleanup(
    context: Optional[str],
    namespace: Optional[str],
    all_pods: bool,
    pod_type: Optional[str],
    dry_run: bool,
    verbose: bool,
):
    """Delete debug pods from a namespace."""
    if all_pods == bool(pod_type):
        raise click.UsageError("Pass exactly one of --all or --type PURPOSE.")

    settings = prepare(verbose, context=context, namespace=namespace)
    try:
        report = Cleanup(build_client(settings)).run(pod_type, dry_run=dry_run)
    except DebugPodError as exc:
        fail(exc)

    _print_report(report)
    if report.failures:
        raise click.exceptions.Exit(DeleteError.exit_code)


def _print_report(report: CleanupReport) -> None:
    if not report.matched:
        console.print(f"No debug pods match {report.selector} in {report.namespace}.")
        return

    verb = "would delete" if report.dry_run else "deleted"
    for pod_name in report.deleted if not report.dry_run else report.matched:
        console.print(f"  {verb} {pod_name}", markup=False, soft_wrap=True)
    for failure in report.failures:
        err_console.print(f"  [red]failed[/red] {escape(str(failure))}", soft_wrap=True)

    style = "green" if report.ok else "yellow"
    console.print(f"[{style}]{escape(report.summary())}[/{style}]")
