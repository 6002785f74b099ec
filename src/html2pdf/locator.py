#!/usr/bin/env python3
"""
Executable Locator

Finds a Chrome/Chromium browser and the wkhtmltopdf converter using a fixed
search order: explicit path, environment variables, PATH lookup, then
well-known install locations.
"""

import logging
import os
import shutil
from typing import Callable, Iterable, List, Mapping, Optional

logger = logging.getLogger(__name__)

BROWSER_ENV_VARS = ['CHROME_PATH', 'PUPPETEER_EXECUTABLE_PATH']
BROWSER_COMMANDS = ['google-chrome', 'google-chrome-stable', 'chromium', 'chromium-browser', 'chrome']
BROWSER_PATHS = [
    '/usr/bin/google-chrome',
    '/usr/bin/google-chrome-stable',
    '/usr/bin/chromium',
    '/usr/bin/chromium-browser',
    '/opt/google/chrome/chrome',
    '/Applications/Google Chrome.app/Contents/MacOS/Google Chrome',
    r'C:\Program Files\Google\Chrome\Application\chrome.exe',
    r'C:\Program Files (x86)\Google\Chrome\Application\chrome.exe',
    # Portable/extracted Chrome
    '/tmp/chrome_extracted/opt/google/chrome/chrome',
    '/tmp/chrome/chrome',
    './chrome/chrome',
]

CONVERTER_ENV_VARS = ['WKHTMLTOPDF_PATH', 'WKHTMLTOPDF_EXE']
CONVERTER_COMMANDS = ['wkhtmltopdf']
CONVERTER_PATHS = [
    '/usr/local/bin/wkhtmltopdf',
    '/usr/bin/wkhtmltopdf',
    r'C:\Program Files\wkhtmltopdf\bin\wkhtmltopdf.exe',
    r'C:\Program Files (x86)\wkhtmltopdf\bin\wkhtmltopdf.exe',
]


def _is_executable(path: str) -> bool:
    return os.path.isfile(path) and os.access(path, os.X_OK)


class ExecutableLocator:
    """
    Locates renderer executables in a deterministic order.

    Every OS lookup goes through the injected ``which`` and ``is_executable``
    callables so tests can substitute a fake filesystem.
    """

    def __init__(self,
                 browser_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None,
                 which: Callable[[str], Optional[str]] = shutil.which,
                 is_executable: Callable[[str], bool] = _is_executable):
        self.browser_path = browser_path
        self.environ = os.environ if environ is None else environ
        self.which = which
        self.is_executable = is_executable

    def _search(self, label: str, explicit: Optional[str], env_vars: Iterable[str],
                commands: Iterable[str], paths: Iterable[str]) -> Optional[str]:
        candidates: List[str] = []
        if explicit:
            candidates.append(explicit)
        for var in env_vars:
            value = self.environ.get(var)
            if value:
                candidates.append(value)

        for candidate in candidates:
            if self.is_executable(candidate):
                logger.debug(f"Found {label} (configured): {candidate}")
                return candidate
            logger.warning(f"Configured {label} path is not executable: {candidate}")

        for command in commands:
            found = self.which(command)
            if found:
                logger.debug(f"Found {label} on PATH: {found}")
                return found

        for path in paths:
            if self.is_executable(path):
                logger.debug(f"Found {label} at well-known location: {path}")
                return path

        logger.debug(f"No {label} found")
        return None

    def find_browser(self) -> Optional[str]:
        """Locate a Chrome/Chromium executable."""
        return self._search('browser', self.browser_path, BROWSER_ENV_VARS,
                            BROWSER_COMMANDS, BROWSER_PATHS)

    def find_converter(self) -> Optional[str]:
        """Locate the wkhtmltopdf executable."""
        return self._search('wkhtmltopdf', None, CONVERTER_ENV_VARS,
                            CONVERTER_COMMANDS, CONVERTER_PATHS)
