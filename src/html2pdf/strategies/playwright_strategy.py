#!/usr/bin/env python3
"""
Playwright Strategy

Full-fidelity rendering in a disposable headless Chromium driven through
Playwright. Supports client-rendered pages, web fonts and print CSS because
it drives a real browser engine.

Chromium is started as our own child process (in its own session) and
Playwright attaches over the DevTools protocol, so cancel() can kill the
browser from another thread when the overall deadline passes.
"""

import logging
import os
import shutil
import subprocess
import tempfile
import threading
import time
from typing import Any, Dict, Optional

from playwright.sync_api import sync_playwright

from ..exceptions import StrategyFailure
from ..options import RenderRequest, cookies_for_url
from ..source import Source
from .base import NEW_SESSION_KWARGS, ConversionStrategy, terminate_process_group

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-accelerated-2d-canvas',
    '--disable-gpu',
    '--font-render-hinting=none',
    '--no-first-run',
    '--no-default-browser-check',
]

# Chromium writes "<port>\n<browser ws path>" here once DevTools is listening
DEVTOOLS_PORT_FILE = 'DevToolsActivePort'
ENDPOINT_POLL_SECONDS = 0.1

# Chromium prints its own default header/footer when one side is missing
EMPTY_TEMPLATE = '<span></span>'


def build_pdf_options(request: RenderRequest, target: str) -> Dict[str, Any]:
    """Translate a RenderRequest into page.pdf() keyword arguments."""
    options: Dict[str, Any] = {
        'path': target,
        'format': request.format,
        'landscape': request.landscape,
        'margin': request.margin.as_css(),
        'print_background': request.print_background,
        'scale': request.scale,
        'display_header_footer': request.has_header_footer,
    }
    if request.has_header_footer:
        options['header_template'] = request.header_template or EMPTY_TEMPLATE
        options['footer_template'] = request.footer_template or EMPTY_TEMPLATE
    return options


class PlaywrightStrategy(ConversionStrategy):
    """Renders with Playwright attached to a Chromium it launched itself"""

    name = 'playwright'

    def __init__(self, executable_path: Optional[str] = None, headless: bool = True):
        self.executable_path = executable_path
        self.headless = headless
        self._process: Optional[subprocess.Popen] = None
        self._cancelled = threading.Event()

    def _launch_browser_process(self, executable: str, profile_dir: str) -> subprocess.Popen:
        """Start Chromium with DevTools on a free port"""
        cmd = [
            executable,
            '--remote-debugging-port=0',
            f'--user-data-dir={profile_dir}',
            *LAUNCH_ARGS,
        ]
        if self.headless:
            cmd.append('--headless=new')
        cmd.append('about:blank')

        logger.debug(f"Command: {' '.join(cmd)}")
        return subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            **NEW_SESSION_KWARGS,
        )

    def _wait_for_endpoint(self, process: subprocess.Popen, profile_dir: str, timeout: float) -> str:
        """
        Wait for Chromium to publish its DevTools endpoint

        Returns:
            Browser WebSocket URL for connect_over_cdp()
        """
        port_file = os.path.join(profile_dir, DEVTOOLS_PORT_FILE)
        deadline = time.monotonic() + timeout

        while time.monotonic() < deadline:
            if self._cancelled.is_set():
                raise StrategyFailure(self.name, "cancelled while Chromium was starting", timed_out=True)
            if process.poll() is not None:
                raise StrategyFailure(self.name, f"Chromium exited with code {process.returncode} during startup")
            try:
                with open(port_file, 'r', encoding='utf-8') as f:
                    lines = f.read().splitlines()
            except OSError:
                lines = []
            if len(lines) >= 2 and lines[0].isdigit():
                return f"ws://127.0.0.1:{lines[0]}{lines[1]}"
            time.sleep(ENDPOINT_POLL_SECONDS)

        raise TimeoutError(f"Chromium did not open DevTools within {timeout:.0f}s")

    def cancel(self) -> None:
        self._cancelled.set()
        process = self._process
        if process is not None:
            logger.warning("Killing Chromium launched for Playwright")
            terminate_process_group(process)

    def convert(self, source: Source, request: RenderRequest, target: str) -> None:
        self._cancelled.clear()
        profile_dir = tempfile.mkdtemp(prefix='html2pdf-chromium-')
        try:
            with sync_playwright() as p:
                executable = self.executable_path or p.chromium.executable_path
                logger.info(f"Launching Chromium for Playwright: {executable}")
                self._process = self._launch_browser_process(executable, profile_dir)
                try:
                    endpoint = self._wait_for_endpoint(self._process, profile_dir, request.timeout_seconds)
                    browser = p.chromium.connect_over_cdp(endpoint, timeout=request.timeout)
                    try:
                        self._render(browser, source, request, target)
                    finally:
                        browser.close()
                finally:
                    terminate_process_group(self._process)
                    self._process = None
                    logger.debug("Chromium stopped")
        finally:
            shutil.rmtree(profile_dir, ignore_errors=True)

    def _render(self, browser, source: Source, request: RenderRequest, target: str) -> None:
        context_options: Dict[str, Any] = {}
        if request.user_agent:
            context_options['user_agent'] = request.user_agent
        context = browser.new_context(**context_options)

        if request.cookies:
            if source.is_url:
                cookies = cookies_for_url(request.cookies, source.value)
                context.add_cookies([
                    cookie._asdict() if cookie.domain
                    else {'name': cookie.name, 'value': cookie.value, 'url': source.value}
                    for cookie in cookies
                ])
                logger.info(f"Set {len(cookies)} cookies")
            else:
                logger.info("Cookies ignored: source is not a URL")

        page = context.new_page()
        page.set_default_timeout(request.timeout)
        page.set_default_navigation_timeout(request.timeout)

        if source.is_url:
            page.goto(source.value, wait_until='networkidle')
            logger.info(f"Loaded HTML from URL: {source.value}")
        else:
            page.set_content(source.markup(), wait_until='networkidle')
            logger.info(f"Loaded HTML from {source.describe()}")

        if request.custom_css:
            page.add_style_tag(content=request.custom_css)
            logger.info("Injected custom CSS")

        if request.wait_for:
            page.wait_for_selector(request.wait_for, state='attached', timeout=request.timeout)
            logger.info(f"Waited for selector: {request.wait_for}")

        logger.info("Generating PDF...")
        page.pdf(**build_pdf_options(request, target))
