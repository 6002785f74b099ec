#!/usr/bin/env python3
"""
Conversion Exception Classes
"""

from typing import List, Optional


class Html2PdfError(Exception):
    """Base exception for html2pdf errors"""
    pass


class ConfigError(Html2PdfError):
    """Raised when an option is malformed; aborts before any conversion"""
    pass


class CookieParseError(ConfigError):
    """Raised when the cookies option is not a usable JSON array"""
    pass


class StrategyFailure(Html2PdfError):
    """Raised (or returned) when a single conversion strategy fails"""

    def __init__(self, strategy: str, message: str, timed_out: bool = False,
                 details: Optional[str] = None):
        super().__init__(f"{strategy}: {message}")
        self.strategy = strategy
        self.message = message
        self.timed_out = timed_out
        self.details = details


class PipelineExhausted(Html2PdfError):
    """Raised when every conversion strategy has failed"""

    def __init__(self, failures: List[StrategyFailure]):
        summary = "; ".join(str(failure) for failure in failures) or "no strategies available"
        super().__init__(f"All conversion strategies failed: {summary}")
        self.failures = list(failures)
