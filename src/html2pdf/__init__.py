#!/usr/bin/env python3
"""
html2pdf
========

Convert an HTML file, URL or inline markup into a PDF, degrading through
Playwright, Selenium, wkhtmltopdf and a synthetic text PDF until one
succeeds.

Usage:
    from html2pdf import FallbackPipeline, build_strategies, normalize, resolve

    request = normalize({'output': 'out.pdf', 'margin': '10'})
    outcome = FallbackPipeline(build_strategies()).run(resolve('page.html'), request)
"""

from .exceptions import ConfigError, CookieParseError, Html2PdfError, PipelineExhausted, StrategyFailure
from .options import RenderRequest, normalize
from .pipeline import FallbackPipeline, build_strategies
from .source import Source, SourceKind, resolve

__version__ = "1.0.0"

__all__ = [
    'ConfigError',
    'CookieParseError',
    'Html2PdfError',
    'PipelineExhausted',
    'StrategyFailure',
    'RenderRequest',
    'normalize',
    'FallbackPipeline',
    'build_strategies',
    'Source',
    'SourceKind',
    'resolve'
]
