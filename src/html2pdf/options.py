#!/usr/bin/env python3
"""
Rendering Options
=================

Parses raw string options (from CI inputs, CLI flags, environment or the
YAML config file) into an immutable ``RenderRequest`` shared by every
conversion strategy.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, NamedTuple, Optional, Tuple
from urllib.parse import urlparse

from .exceptions import ConfigError, CookieParseError

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = 'A4'
DEFAULT_MARGIN = '10,10,10,10'
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_SCALE = 1.0
DEFAULT_DEADLINE_MS = 180000

# Paper sizes in inches (width, height), portrait
PAPER_FORMATS = {
    'letter': (8.5, 11.0),
    'legal': (8.5, 14.0),
    'tabloid': (11.0, 17.0),
    'ledger': (17.0, 11.0),
    'a0': (33.1, 46.8),
    'a1': (23.4, 33.1),
    'a2': (16.54, 23.4),
    'a3': (11.7, 16.54),
    'a4': (8.27, 11.7),
    'a5': (5.83, 8.27),
    'a6': (4.13, 5.83),
}


class Orientation(Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class Margins(NamedTuple):
    """Page margins in millimetres"""
    top: int
    right: int
    bottom: int
    left: int

    def as_css(self) -> Dict[str, str]:
        return {side: f"{value}mm" for side, value in self._asdict().items()}


class Cookie(NamedTuple):
    """Cookie record; domain/path default to the source URL when omitted"""
    name: str
    value: str
    domain: Optional[str] = None
    path: Optional[str] = None


@dataclass(frozen=True)
class RenderRequest:
    """Normalized, validated set of PDF generation options."""
    output: str
    format: str = DEFAULT_FORMAT
    margin: Margins = Margins(10, 10, 10, 10)
    orientation: Orientation = Orientation.PORTRAIT
    header_template: Optional[str] = None
    footer_template: Optional[str] = None
    timeout: int = DEFAULT_TIMEOUT_MS
    scale: float = DEFAULT_SCALE
    custom_css: Optional[str] = None
    cookies: Tuple[Cookie, ...] = field(default_factory=tuple)
    user_agent: Optional[str] = None
    print_background: bool = True
    wait_for: Optional[str] = None
    deadline: int = DEFAULT_DEADLINE_MS

    @property
    def landscape(self) -> bool:
        return self.orientation is Orientation.LANDSCAPE

    @property
    def has_header_footer(self) -> bool:
        return bool(self.header_template or self.footer_template)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0

    def paper_size(self) -> Optional[Tuple[float, float]]:
        """Paper (width, height) in inches for known formats, else None."""
        return PAPER_FORMATS.get(self.format.lower())


def parse_margins(margin_str: str) -> Margins:
    """
    Parse a margin string into four sides.

    Args:
        margin_str: "10" for all sides or "top,right,bottom,left"

    Returns:
        Margins in millimetres

    Raises:
        ConfigError: if the string is not 1 or 4 non-negative integers
    """
    parts = [part.strip() for part in str(margin_str).split(',')]
    try:
        values = [int(part) for part in parts]
    except ValueError:
        raise ConfigError(
            f"Invalid margin '{margin_str}': margins must be integers in format "
            "top,right,bottom,left or a single value for all sides"
        )

    if any(value < 0 for value in values):
        raise ConfigError(f"Invalid margin '{margin_str}': margins must not be negative")

    if len(values) == 1:
        return Margins(values[0], values[0], values[0], values[0])
    if len(values) == 4:
        return Margins(*values)
    raise ConfigError(
        f"Invalid margin '{margin_str}': margins must be in format "
        "top,right,bottom,left or a single value for all sides"
    )


def parse_cookies(cookies_str: Any) -> Tuple[Cookie, ...]:
    """
    Parse a JSON array of cookie objects.

    Raises:
        CookieParseError: if the value is not valid JSON or not an array
    """
    if isinstance(cookies_str, list):
        # Already decoded by the YAML config loader
        data = cookies_str
    elif cookies_str is None or not str(cookies_str).strip():
        return ()
    else:
        try:
            data = json.loads(cookies_str)
        except (TypeError, ValueError) as e:
            raise CookieParseError(f"Failed to parse cookies: {e}")

    if not isinstance(data, list):
        raise CookieParseError("Failed to parse cookies: expected a JSON array of objects")

    cookies = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning(f"Skipping cookie #{index}: not an object")
            continue
        name = item.get('name')
        value = item.get('value')
        if not isinstance(name, str) or not name or not isinstance(value, str):
            logger.warning(f"Skipping cookie #{index}: 'name' and 'value' must be strings")
            continue
        cookies.append(Cookie(
            name=name,
            value=value,
            domain=item.get('domain') or None,
            path=item.get('path') or None,
        ))
    return tuple(cookies)


def cookies_for_url(cookies: Tuple[Cookie, ...], url: str) -> Tuple[Cookie, ...]:
    """Fill in omitted cookie domain/path from the source URL."""
    host = urlparse(url).hostname or ''
    return tuple(
        Cookie(
            name=cookie.name,
            value=cookie.value,
            domain=cookie.domain or host,
            path=cookie.path or '/',
        )
        for cookie in cookies
    )


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _parse_number(name: str, value: Any, default, converter, minimum, inclusive: bool):
    if _blank(value):
        return default
    try:
        number = converter(str(value).strip())
    except (ValueError, OverflowError):
        raise ConfigError(f"Invalid {name} '{value}': must be a number")
    if not math.isfinite(number):
        raise ConfigError(f"Invalid {name} '{value}': must be a finite number")
    if number < minimum or (not inclusive and number == minimum):
        bound = f">= {minimum}" if inclusive else f"> {minimum}"
        raise ConfigError(f"Invalid {name} '{value}': must be {bound}")
    return number


def _parse_bool_default_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if _blank(value):
        return True
    return str(value).strip().lower() != 'false'


def _optional(value: Any) -> Optional[str]:
    return None if _blank(value) else str(value)


def normalize(raw: Mapping[str, Any]) -> RenderRequest:
    """
    Validate raw configuration into a RenderRequest.

    Args:
        raw: Option name -> raw value (usually strings, None when unset)

    Returns:
        Immutable RenderRequest

    Raises:
        ConfigError: on malformed options (cookie errors are recovered)
    """
    output = _optional(raw.get('output'))
    if not output:
        raise ConfigError("Input 'output' is required")

    margin = parse_margins(raw.get('margin') if not _blank(raw.get('margin')) else DEFAULT_MARGIN)

    orientation_str = str(raw.get('orientation') or Orientation.PORTRAIT.value).strip().lower()
    try:
        orientation = Orientation(orientation_str)
    except ValueError:
        raise ConfigError(f"Invalid orientation '{raw.get('orientation')}': use portrait or landscape")

    timeout = _parse_number('timeout', raw.get('timeout'), DEFAULT_TIMEOUT_MS,
                            lambda v: int(float(v)), 0, inclusive=False)
    scale = _parse_number('scale', raw.get('scale'), DEFAULT_SCALE, float, 0, inclusive=False)
    deadline = _parse_number('deadline', raw.get('deadline'), DEFAULT_DEADLINE_MS,
                             lambda v: int(float(v)), 0, inclusive=False)

    try:
        cookies = parse_cookies(raw.get('cookies'))
    except CookieParseError as e:
        logger.warning(f"{e} - continuing without cookies")
        cookies = ()

    format_token = str(raw.get('format') or DEFAULT_FORMAT).strip()
    if format_token.lower() not in PAPER_FORMATS:
        logger.warning(f"Unknown paper format '{format_token}', passing it to the renderer as-is")

    return RenderRequest(
        output=output,
        format=format_token,
        margin=margin,
        orientation=orientation,
        header_template=_optional(raw.get('header_template')),
        footer_template=_optional(raw.get('footer_template')),
        timeout=timeout,
        scale=scale,
        custom_css=_optional(raw.get('custom_css')),
        cookies=cookies,
        user_agent=_optional(raw.get('user_agent')),
        print_background=_parse_bool_default_true(raw.get('print_background')),
        wait_for=_optional(raw.get('wait_for')),
        deadline=deadline,
    )
