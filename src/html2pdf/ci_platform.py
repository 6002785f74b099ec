#!/usr/bin/env python3
"""
CI Platform Bridge

Reports outputs, failures and log annotations through GitHub Actions
workflow commands when running inside a workflow, and through plain
stdout/stderr otherwise.
"""

import logging
import os
from typing import Mapping, Optional

import click


def in_github_actions(environ: Optional[Mapping[str, str]] = None) -> bool:
    """Check if running inside a GitHub Actions job"""
    environ = os.environ if environ is None else environ
    return environ.get('GITHUB_ACTIONS') == 'true'


def escape_data(value: str) -> str:
    """Escape a workflow command message."""
    return value.replace('%', '%25').replace('\r', '%0D').replace('\n', '%0A')


def set_output(name: str, value: str, environ: Optional[Mapping[str, str]] = None) -> None:
    """
    Publish an output value

    The value is always printed to stdout as name=value, and additionally
    appended to the $GITHUB_OUTPUT file when one is configured.
    """
    environ = os.environ if environ is None else environ
    output_file = environ.get('GITHUB_OUTPUT')

    if output_file:
        with open(output_file, 'a', encoding='utf-8') as f:
            if '\n' in value:
                delimiter = f'ghadelimiter_{os.getpid()}'
                f.write(f'{name}<<{delimiter}\n{value}\n{delimiter}\n')
            else:
                f.write(f'{name}={value}\n')
    click.echo(f"{name}={value}")


def set_failed(message: str, environ: Optional[Mapping[str, str]] = None) -> None:
    """Report a failure; the caller is responsible for the exit code."""
    if in_github_actions(environ):
        click.echo(f"::error::{escape_data(message)}")
    else:
        click.echo(f"❌ {message}", err=True)


class WorkflowCommandHandler(logging.Handler):
    """Mirrors warning and error records as GitHub Actions annotations"""

    def __init__(self, level: int = logging.WARNING):
        super().__init__(level)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            command = 'error' if record.levelno >= logging.ERROR else 'warning'
            click.echo(f"::{command}::{escape_data(record.getMessage())}")
        except Exception:
            self.handleError(record)
