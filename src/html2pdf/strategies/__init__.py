#!/usr/bin/env python3
"""
Conversion Strategies Package
"""

from .base import ConversionOutcome, ConversionStrategy
from .fallback_strategy import FallbackStrategy
from .playwright_strategy import PlaywrightStrategy
from .selenium_strategy import SeleniumStrategy
from .wkhtmltopdf_strategy import WkhtmltopdfStrategy

__all__ = [
    'ConversionOutcome',
    'ConversionStrategy',
    'PlaywrightStrategy',
    'SeleniumStrategy',
    'WkhtmltopdfStrategy',
    'FallbackStrategy'
]
