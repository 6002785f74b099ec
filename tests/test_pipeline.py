"""
Tests for the fallback pipeline
"""
import os
import time
from unittest.mock import patch

import pytest
import requests

from html2pdf.exceptions import PipelineExhausted
from html2pdf.locator import ExecutableLocator
from html2pdf.options import RenderRequest
from html2pdf.pipeline import FallbackPipeline, build_strategies
from html2pdf.source import resolve
from html2pdf.strategies import (
    FallbackStrategy, PlaywrightStrategy, SeleniumStrategy, WkhtmltopdfStrategy,
)


def read_magic(path):
    with open(path, 'rb') as f:
        return f.read(5)


class TestPipelineOrder:
    """Test strict priority order and short-circuiting"""

    def test_first_success_stops_chain(self, fake_strategy, render_request, sample_html):
        a, b, c, d = (fake_strategy('a'), fake_strategy('b'), fake_strategy('c'),
                      fake_strategy('d', guaranteed=True))

        outcome = FallbackPipeline([a, b, c, d]).run(resolve(sample_html), render_request)

        assert outcome.success
        assert outcome.strategy == 'a'
        assert outcome.output_path == render_request.output
        assert (a.calls, b.calls, c.calls, d.calls) == (1, 0, 0, 0)
        assert outcome.diagnostics == ()

    def test_failures_fall_through_to_guaranteed(self, fake_strategy, render_request, sample_html):
        a = fake_strategy('a', error=RuntimeError('launch failed'))
        b = fake_strategy('b', error=RuntimeError('no chrome'))
        c = fake_strategy('c', available=False)
        d = FallbackStrategy()

        outcome = FallbackPipeline([a, b, c, d]).run(resolve(sample_html), render_request)

        assert outcome.strategy == 'fallback'
        assert (a.calls, b.calls, c.calls) == (1, 1, 0)
        assert [f.strategy for f in outcome.diagnostics] == ['a', 'b']
        assert os.path.getsize(render_request.output) > 0
        assert read_magic(render_request.output) == b'%PDF-'

    def test_each_strategy_attempted_once(self, fake_strategy, render_request, sample_html):
        a = fake_strategy('a', error=RuntimeError('boom'))
        b = fake_strategy('b')

        FallbackPipeline([a, b]).run(resolve(sample_html), render_request)

        assert (a.calls, b.calls) == (1, 1)

    def test_exhausted_raises_with_all_failures(self, fake_strategy, render_request, sample_html):
        a = fake_strategy('a', error=RuntimeError('one'))
        b = fake_strategy('b', error=TimeoutError('two'))

        with pytest.raises(PipelineExhausted) as exc_info:
            FallbackPipeline([a, b]).run(resolve(sample_html), render_request)

        failures = exc_info.value.failures
        assert [f.strategy for f in failures] == ['a', 'b']
        assert failures[1].timed_out
        assert not os.path.exists(render_request.output)


class TestOutputPath:
    """Test that only the winning strategy writes the output path"""

    def test_partial_write_never_reaches_output(self, fake_strategy, fake_pdf, render_request, sample_html):
        class PartialWriter(fake_strategy):
            def convert(self, source, request, target):
                with open(target, 'wb') as f:
                    f.write(b'%PDF-1.4 truncated')
                raise RuntimeError('crashed mid-write')

        partial = PartialWriter('partial')
        b = fake_strategy('b', payload=fake_pdf + b'% from b\n')

        FallbackPipeline([partial, b]).run(resolve(sample_html), render_request)

        with open(render_request.output, 'rb') as f:
            assert f.read().endswith(b'% from b\n')

    def test_attempts_use_distinct_staging_paths(self, fake_strategy, render_request, sample_html):
        a = fake_strategy('a', error=RuntimeError('x'))
        b = fake_strategy('b')

        FallbackPipeline([a, b]).run(resolve(sample_html), render_request)

        assert a.targets[0] != b.targets[0]
        assert a.targets[0] != render_request.output

    def test_staging_directory_removed(self, fake_strategy, render_request, sample_html):
        a = fake_strategy('a', error=RuntimeError('x'))
        b = fake_strategy('b')

        FallbackPipeline([a, b]).run(resolve(sample_html), render_request)

        output_dir = os.path.dirname(render_request.output)
        assert os.listdir(output_dir) == ['result.pdf']
        assert not os.path.exists(os.path.dirname(a.targets[0]))

    def test_existing_output_untouched_on_failure(self, fake_strategy, temp_dir, sample_html):
        output = temp_dir / 'keep.pdf'
        output.write_bytes(b'previous')
        request = RenderRequest(output=str(output))

        with pytest.raises(PipelineExhausted):
            FallbackPipeline([fake_strategy('a', error=RuntimeError('x'))]).run(resolve(sample_html), request)

        assert output.read_bytes() == b'previous'


class TestDeadline:
    """Test the overall deadline for non-guaranteed strategies"""

    def test_hung_strategy_is_cancelled_before_next_runs(self, fake_strategy, temp_dir, sample_html):
        output_dir = temp_dir / 'out'
        request = RenderRequest(output=str(output_dir / 'result.pdf'), deadline=200)
        hung = fake_strategy('playwright', delay=5.0)
        fallback = fake_strategy('last', guaranteed=True)

        start = time.monotonic()
        outcome = FallbackPipeline([hung, fallback]).run(resolve(sample_html), request)

        assert time.monotonic() - start < 4.0
        assert hung.cancelled.is_set()
        assert fallback.live_workers == []
        assert outcome.strategy == 'last'
        assert outcome.diagnostics[0].strategy == 'playwright'
        assert outcome.diagnostics[0].timed_out
        assert 'overall deadline' in outcome.diagnostics[0].message
        assert os.listdir(output_dir) == ['result.pdf']

    def test_strategy_ignoring_cancel_is_abandoned(self, fake_strategy, temp_dir, sample_html):
        class Stubborn(fake_strategy):
            def cancel(self):
                pass

        request = RenderRequest(output=str(temp_dir / 'out.pdf'), deadline=100)
        stubborn = Stubborn('stubborn', delay=1.0)
        fallback = fake_strategy('last', guaranteed=True)

        outcome = FallbackPipeline([stubborn, fallback], cancel_grace=0.1).run(resolve(sample_html), request)

        assert outcome.strategy == 'last'
        assert outcome.diagnostics[0].timed_out

    def test_cancel_errors_do_not_abort_pipeline(self, fake_strategy, temp_dir, sample_html):
        class BrokenCancel(fake_strategy):
            def cancel(self):
                super().cancel()
                raise OSError('no such process')

        request = RenderRequest(output=str(temp_dir / 'out.pdf'), deadline=100)
        broken = BrokenCancel('broken', delay=5.0)
        fallback = fake_strategy('last', guaranteed=True)

        outcome = FallbackPipeline([broken, fallback]).run(resolve(sample_html), request)

        assert outcome.strategy == 'last'
        assert fallback.live_workers == []

    def test_guaranteed_strategy_runs_after_deadline(self, fake_strategy, temp_dir, sample_html):
        request = RenderRequest(output=str(temp_dir / 'out.pdf'), deadline=1)
        slow = fake_strategy('slow', delay=0.2)
        skipped = fake_strategy('skipped')
        fallback = FallbackStrategy()

        outcome = FallbackPipeline([slow, skipped, fallback]).run(resolve(sample_html), request)

        assert outcome.strategy == 'fallback'
        assert skipped.calls == 0
        assert all(f.timed_out for f in outcome.diagnostics)


class TestEndToEnd:
    """Test the real strategy chain with browsers and converters missing"""

    def test_file_source_with_defaults(self, fake_strategy, html_file, render_request):
        a = fake_strategy('playwright', error=RuntimeError("Executable doesn't exist"))
        b = fake_strategy('selenium', error=RuntimeError('cannot find Chrome binary'))

        outcome = FallbackPipeline([a, b, WkhtmltopdfStrategy(None), FallbackStrategy()]).run(
            resolve(str(html_file)), render_request)

        assert outcome.success
        assert os.path.getsize(render_request.output) > 0
        assert read_magic(render_request.output) == b'%PDF-'

    def test_unreachable_url_timeouts_still_succeed(self, fake_strategy, render_request):
        a = fake_strategy('playwright', error=TimeoutError('Timeout 30000ms exceeded'))
        b = fake_strategy('selenium', error=TimeoutError('Timed out receiving message'))

        with patch('html2pdf.strategies.fallback_strategy.requests.get',
                   side_effect=requests.ConnectTimeout('unreachable')):
            outcome = FallbackPipeline([a, b, WkhtmltopdfStrategy(None), FallbackStrategy()]).run(
                resolve('https://unreachable.invalid/page'), render_request)

        assert outcome.strategy == 'fallback'
        assert all(f.timed_out for f in outcome.diagnostics)
        assert read_magic(render_request.output) == b'%PDF-'


class TestBuildStrategies:
    """Test the canonical strategy chain"""

    def test_order_and_discovery(self):
        locator = ExecutableLocator(
            environ={},
            which=lambda command: {'chromium': '/usr/bin/chromium'}.get(command),
            is_executable=lambda path: False,
        )

        strategies = build_strategies(locator)

        assert [type(s) for s in strategies] == [
            PlaywrightStrategy, SeleniumStrategy, WkhtmltopdfStrategy, FallbackStrategy,
        ]
        assert strategies[1].browser_path == '/usr/bin/chromium'
        assert not strategies[2].is_available()
        assert strategies[3].guaranteed
