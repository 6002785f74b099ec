#!/usr/bin/env python3
"""
Base Conversion Strategy
"""

import logging
import os
import signal
import socket
import subprocess
import time
import traceback
from abc import ABC, abstractmethod
from typing import NamedTuple, Optional, Tuple

from ..exceptions import StrategyFailure
from ..options import RenderRequest
from ..source import Source

logger = logging.getLogger(__name__)

PDF_MAGIC = b'%PDF-'
PROCESS_STOP_GRACE_SECONDS = 5.0

# Child processes get their own session so the whole tree can be killed at once
NEW_SESSION_KWARGS = {} if os.name == 'nt' else {'start_new_session': True}


class ConversionOutcome(NamedTuple):
    """Result of a conversion attempt"""
    success: bool
    strategy: str
    output_path: Optional[str] = None
    failure: Optional[StrategyFailure] = None
    elapsed: float = 0.0
    diagnostics: Tuple[StrategyFailure, ...] = ()

    @classmethod
    def succeeded(cls, strategy: str, output_path: str, elapsed: float = 0.0) -> 'ConversionOutcome':
        return cls(True, strategy, output_path=output_path, elapsed=elapsed)

    @classmethod
    def failed(cls, failure: StrategyFailure, elapsed: float = 0.0) -> 'ConversionOutcome':
        return cls(False, failure.strategy, failure=failure, elapsed=elapsed)


def is_timeout_error(error: BaseException) -> bool:
    """Classify an exception raised by a renderer as a timeout."""
    if isinstance(error, StrategyFailure):
        return error.timed_out
    if isinstance(error, (TimeoutError, socket.timeout, subprocess.TimeoutExpired)):
        return True
    # Playwright and Selenium each define their own TimeoutError/TimeoutException
    if 'timeout' in type(error).__name__.lower():
        return True
    message = str(error).lower()
    return 'timed out' in message or 'timeout' in message


def validate_pdf(path: str) -> None:
    """Raise ValueError unless path holds a non-empty PDF."""
    if not os.path.isfile(path):
        raise ValueError(f"no PDF was written to {path}")
    if os.path.getsize(path) == 0:
        raise ValueError(f"PDF written to {path} is empty")
    with open(path, 'rb') as f:
        if f.read(len(PDF_MAGIC)) != PDF_MAGIC:
            raise ValueError(f"file written to {path} is not a PDF")


def terminate_process_group(process: Optional[subprocess.Popen],
                            grace: float = PROCESS_STOP_GRACE_SECONDS) -> None:
    """
    Stop a child process together with everything it spawned

    Sends SIGTERM to the process group, then SIGKILL if it is still running
    after grace seconds. The process must have been started with
    NEW_SESSION_KWARGS.
    """
    if process is None or process.poll() is not None:
        return

    if os.name == 'nt':
        process.kill()
        process.wait(timeout=grace)
        return

    try:
        os.killpg(process.pid, signal.SIGTERM)
    except ProcessLookupError:
        return
    try:
        process.wait(timeout=grace)
        return
    except subprocess.TimeoutExpired:
        logger.warning(f"Process {process.pid} ignored SIGTERM; killing it")

    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        return
    process.wait(timeout=grace)


class ConversionStrategy(ABC):
    """Abstract base class for one self-contained way of producing a PDF"""

    name = 'strategy'
    guaranteed = False

    def is_available(self) -> bool:
        """
        Check if the strategy can run in this environment

        Unavailable strategies are skipped, not counted as failures.
        """
        return True

    @abstractmethod
    def convert(self, source: Source, request: RenderRequest, target: str) -> None:
        """
        Render the source into a PDF at target

        Args:
            source: Classified HTML source
            request: Normalized rendering options
            target: Path the PDF must be written to

        Raises:
            Any exception on failure; attempt() converts it to a StrategyFailure
        """
        pass

    def cancel(self) -> None:
        """
        Abort an in-flight convert() from another thread

        Called by the pipeline when the overall deadline passes. Implementations
        kill whatever browser or converter process they started so the
        blocked convert() call fails promptly.
        """
        pass

    def attempt(self, source: Source, request: RenderRequest, target: str) -> ConversionOutcome:
        """Run convert() once, never letting an exception escape."""
        start = time.monotonic()
        try:
            self.convert(source, request, target)
            validate_pdf(target)
        except Exception as e:
            elapsed = time.monotonic() - start
            if isinstance(e, StrategyFailure):
                failure = e
                if failure.details is None:
                    failure.details = traceback.format_exc()
            else:
                failure = StrategyFailure(
                    self.name,
                    str(e) or type(e).__name__,
                    timed_out=is_timeout_error(e),
                    details=traceback.format_exc(),
                )
            kind = "timed out" if failure.timed_out else "failed"
            logger.warning(f"Strategy '{self.name}' {kind} after {elapsed:.1f}s: {failure.message}")
            logger.info(f"Strategy '{self.name}' traceback:\n{failure.details}")
            return ConversionOutcome.failed(failure, elapsed)

        elapsed = time.monotonic() - start
        logger.info(f"Strategy '{self.name}' produced PDF in {elapsed:.1f}s")
        return ConversionOutcome.succeeded(self.name, target, elapsed)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r}>"
