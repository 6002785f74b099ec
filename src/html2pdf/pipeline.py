#!/usr/bin/env python3
"""
Fallback Pipeline

Runs conversion strategies strictly in priority order and stops at the
first success. Each attempt writes into a private staging directory; only
the winning file is moved onto the requested output path.
"""

import logging
import os
import shutil
import tempfile
import threading
import time
from typing import List, Optional, Sequence

from .exceptions import PipelineExhausted, StrategyFailure
from .locator import ExecutableLocator
from .options import RenderRequest
from .source import Source
from .strategies import (
    ConversionOutcome,
    ConversionStrategy,
    FallbackStrategy,
    PlaywrightStrategy,
    SeleniumStrategy,
    WkhtmltopdfStrategy,
)

logger = logging.getLogger(__name__)

CANCEL_GRACE_SECONDS = 15.0


def build_strategies(locator: Optional[ExecutableLocator] = None,
                     headless: bool = True) -> List[ConversionStrategy]:
    """Canonical strategy order: Playwright, Selenium, wkhtmltopdf, fallback."""
    locator = locator or ExecutableLocator()
    return [
        PlaywrightStrategy(headless=headless),
        SeleniumStrategy(browser_path=locator.find_browser(), headless=headless),
        WkhtmltopdfStrategy(binary=locator.find_converter()),
        FallbackStrategy(),
    ]


class FallbackPipeline:
    """Tries each strategy once, in order, until one produces a PDF"""

    def __init__(self, strategies: Sequence[ConversionStrategy],
                 cancel_grace: float = CANCEL_GRACE_SECONDS):
        self.strategies = list(strategies)
        self.cancel_grace = cancel_grace

    def _attempt_with_deadline(self, strategy: ConversionStrategy, source: Source,
                               request: RenderRequest, target: str,
                               remaining: float) -> ConversionOutcome:
        """
        Run an attempt in a worker thread, cancelling it once remaining seconds pass

        The worker is always joined before returning so attempts never overlap;
        a strategy that ignores cancellation is abandoned after cancel_grace.
        """
        result = {}

        def run_attempt():
            result['outcome'] = strategy.attempt(source, request, target)

        thread = threading.Thread(target=run_attempt, name=f"html2pdf-{strategy.name}", daemon=True)
        thread.start()
        thread.join(remaining)

        if not thread.is_alive():
            return result['outcome']

        logger.error(f"Strategy '{strategy.name}' exceeded the overall deadline; cancelling it")
        try:
            strategy.cancel()
        except Exception as e:
            logger.warning(f"Cancelling strategy '{strategy.name}' failed: {e}")
        thread.join(self.cancel_grace)
        if thread.is_alive():
            logger.error(f"Strategy '{strategy.name}' did not stop within {self.cancel_grace:.0f}s "
                         "of cancellation; abandoning it")

        failure = StrategyFailure(
            strategy.name,
            f"overall deadline of {request.deadline}ms exceeded",
            timed_out=True,
        )
        return ConversionOutcome.failed(failure, remaining)

    def run(self, source: Source, request: RenderRequest) -> ConversionOutcome:
        """
        Convert source to a PDF at request.output

        Returns:
            Successful ConversionOutcome, with earlier failures in diagnostics

        Raises:
            PipelineExhausted: if every available strategy failed
        """
        output_dir = os.path.dirname(os.path.abspath(request.output))
        os.makedirs(output_dir, exist_ok=True)

        failures: List[StrategyFailure] = []
        deadline_at = time.monotonic() + request.deadline / 1000.0
        staging_dir = tempfile.mkdtemp(prefix='.html2pdf-', dir=output_dir)

        try:
            for index, strategy in enumerate(self.strategies):
                if not strategy.is_available():
                    logger.info(f"Skipping unavailable strategy '{strategy.name}'")
                    continue

                target = os.path.join(staging_dir, f"{index}-{strategy.name}.pdf")
                logger.info(f"Attempting strategy '{strategy.name}' ({index + 1}/{len(self.strategies)})")

                if strategy.guaranteed:
                    outcome = strategy.attempt(source, request, target)
                else:
                    remaining = deadline_at - time.monotonic()
                    if remaining <= 0:
                        failure = StrategyFailure(strategy.name, "not attempted: overall deadline exceeded",
                                                  timed_out=True)
                        logger.warning(str(failure))
                        failures.append(failure)
                        continue
                    outcome = self._attempt_with_deadline(strategy, source, request, target, remaining)

                if outcome.success:
                    os.replace(target, request.output)
                    logger.info(f"PDF generated successfully with '{strategy.name}': {request.output}")
                    return outcome._replace(output_path=request.output, diagnostics=tuple(failures))

                failures.append(outcome.failure)
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

        raise PipelineExhausted(failures)
