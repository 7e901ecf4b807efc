"""Helpers shared by the debug pod commands."""

from __future__ import annotations

import logging
from typing import Any, NoReturn

import click
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from ..config import DebugPodSettings, load_settings
from ..errors import DebugPodError
from ..kubectl import KubectlClient
from ..logging_config import configure_logging

LOGGER = logging.getLogger("debug_pods.cli")

console = Console()
err_console = Console(stderr=True)

CONFIG_EXIT_CODE = 2


def context_option(function: Any) -> Any:
    return click.option(
        "--context",
        "-c",
        "context",
        default=None,
        help="kubeconfig context (defaults to kubectl's current context).",
    )(function)


def namespace_option(function: Any) -> Any:
    return click.option(
        "--namespace",
        "-n",
        "namespace",
        default=None,
        help="Target namespace (defaults to the configured namespace).",
    )(function)


def verbose_option(function: Any) -> Any:
    return click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Log debug output to stderr.",
    )(function)


def prepare(verbose: bool = False, **overrides: Any) -> DebugPodSettings:
    """Load settings with CLI overrides applied and configure logging."""
    try:
        settings = load_settings(**overrides)
    except (ValidationError, yaml.YAMLError, OSError) as exc:
        err_console.print(f"[red]Invalid configuration:[/red] {escape(str(exc))}", soft_wrap=True)
        raise click.exceptions.Exit(CONFIG_EXIT_CODE) from exc
    configure_logging(
        "DEBUG" if verbose else settings.log_level,
        log_file=settings.log_file,
        stream=err_console.file,
    )
    return settings


def build_client(settings: DebugPodSettings) -> KubectlClient:
    return KubectlClient(
        namespace=settings.namespace,
        context=settings.context,
        binary=settings.kubectl_binary,
    )


def fail(exc: DebugPodError) -> NoReturn:
    LOGGER.debug("command failed error=%s", type(exc).__name__, exc_info=True)
    err_console.print(f"[red]Error:[/red] {escape(str(exc))}", soft_wrap=True)
    raise click.exceptions.Exit(exc.exit_code) from exc
