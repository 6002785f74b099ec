#!/usr/bin/env python3
"""
Selenium Strategy

Second-priority renderer built on a different automation stack than the
Playwright strategy: Selenium drives a locally installed Chrome and prints
through the DevTools protocol (Page.printToPDF). If Playwright's bundled
browser cannot start in this environment, a system Chrome often still can.
"""

import base64
import logging
import shutil
import threading
from typing import Any, Dict, Optional

from selenium import webdriver
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from webdriver_manager.chrome import ChromeDriverManager

from ..exceptions import StrategyFailure
from ..options import RenderRequest, cookies_for_url
from ..source import Source
from .base import NEW_SESSION_KWARGS, ConversionStrategy, terminate_process_group

logger = logging.getLogger(__name__)

MM_PER_INCH = 25.4

INJECT_STYLE_SCRIPT = """
const style = document.createElement('style');
style.textContent = arguments[0];
(document.head || document.documentElement).appendChild(style);
"""


def build_print_params(request: RenderRequest) -> Dict[str, Any]:
    """Translate a RenderRequest into Page.printToPDF parameters."""
    margin = request.margin
    params: Dict[str, Any] = {
        'landscape': request.landscape,
        'printBackground': request.print_background,
        'scale': request.scale,
        'marginTop': margin.top / MM_PER_INCH,
        'marginRight': margin.right / MM_PER_INCH,
        'marginBottom': margin.bottom / MM_PER_INCH,
        'marginLeft': margin.left / MM_PER_INCH,
        'displayHeaderFooter': request.has_header_footer,
        'preferCSSPageSize': False,
    }

    paper = request.paper_size()
    if paper:
        params['paperWidth'], params['paperHeight'] = paper
    else:
        logger.warning(f"Paper format '{request.format}' unknown to Chrome DevTools; using browser default")

    if request.has_header_footer:
        params['headerTemplate'] = request.header_template or '<span></span>'
        params['footerTemplate'] = request.footer_template or '<span></span>'
    return params


class SeleniumStrategy(ConversionStrategy):
    """Renders with Selenium-driven Chrome and the DevTools print API"""

    name = 'selenium'

    def __init__(self, browser_path: Optional[str] = None, headless: bool = True,
                 window_size=(1920, 1080)):
        self.browser_path = browser_path
        self.headless = headless
        self.window_size = window_size
        self._driver = None
        self._cancelled = threading.Event()

    def _chromedriver_path(self) -> str:
        path = shutil.which('chromedriver')
        if path:
            logger.info(f"Using ChromeDriver from PATH: {path}")
            return path
        logger.info("Using webdriver-manager to get compatible ChromeDriver")
        return ChromeDriverManager().install()

    def _create_driver(self, request: RenderRequest) -> webdriver.Chrome:
        """Create Chrome WebDriver"""
        options = ChromeOptions()

        if self.browser_path:
            options.binary_location = self.browser_path
            logger.info(f"Using Chrome binary: {self.browser_path}")

        if self.headless:
            options.add_argument('--headless=new')

        options.add_argument('--no-sandbox')
        options.add_argument('--disable-dev-shm-usage')
        options.add_argument('--disable-gpu')
        options.add_argument('--disable-extensions')
        options.add_argument('--no-first-run')
        options.add_argument('--font-render-hinting=none')

        width, height = self.window_size
        options.add_argument(f'--window-size={width},{height}')

        if request.user_agent:
            options.add_argument(f'--user-agent={request.user_agent}')

        # chromedriver and the Chrome it launches share a session so cancel() can kill both
        service = ChromeService(self._chromedriver_path(), popen_kw=dict(NEW_SESSION_KWARGS))
        driver = webdriver.Chrome(service=service, options=options)
        driver.set_page_load_timeout(request.timeout_seconds)
        driver.set_script_timeout(request.timeout_seconds)
        logger.info(f"Created Chrome WebDriver (headless={self.headless})")
        return driver

    def _wait_for_page_ready(self, driver, timeout: float) -> None:
        """Wait for document.readyState to be complete"""
        WebDriverWait(driver, timeout).until(
            lambda d: d.execute_script("return document.readyState") == "complete"
        )

    def _load(self, driver, source: Source, request: RenderRequest) -> None:
        if source.is_url:
            if request.cookies:
                cookies = cookies_for_url(request.cookies, source.value)
                driver.execute_cdp_cmd('Network.enable', {})
                driver.execute_cdp_cmd('Network.setCookies', {
                    'cookies': [
                        {'name': c.name, 'value': c.value, 'domain': c.domain, 'path': c.path}
                        if c.domain else {'name': c.name, 'value': c.value, 'url': source.value}
                        for c in cookies
                    ]
                })
                logger.info(f"Set {len(cookies)} cookies")
            driver.get(source.value)
            logger.info(f"Loaded HTML from URL: {source.value}")
        else:
            if request.cookies:
                logger.info("Cookies ignored: source is not a URL")
            driver.get('about:blank')
            frame_tree = driver.execute_cdp_cmd('Page.getFrameTree', {})
            frame_id = frame_tree['frameTree']['frame']['id']
            driver.execute_cdp_cmd('Page.setDocumentContent', {
                'frameId': frame_id,
                'html': source.markup(),
            })
            logger.info(f"Loaded HTML from {source.describe()}")

    def cancel(self) -> None:
        self._cancelled.set()
        driver = self._driver
        if driver is not None:
            logger.warning("Killing ChromeDriver and Chrome")
            terminate_process_group(driver.service.process)

    def convert(self, source: Source, request: RenderRequest, target: str) -> None:
        self._cancelled.clear()
        driver = self._create_driver(request)
        self._driver = driver
        try:
            if self._cancelled.is_set():
                raise StrategyFailure(self.name, "cancelled while Chrome was starting", timed_out=True)

            self._load(driver, source, request)
            self._wait_for_page_ready(driver, request.timeout_seconds)

            if request.custom_css:
                driver.execute_script(INJECT_STYLE_SCRIPT, request.custom_css)
                logger.info("Injected custom CSS")

            if request.wait_for:
                WebDriverWait(driver, request.timeout_seconds).until(
                    EC.presence_of_element_located((By.CSS_SELECTOR, request.wait_for))
                )
                logger.info(f"Waited for selector: {request.wait_for}")

            logger.info("Generating PDF via DevTools...")
            result = driver.execute_cdp_cmd('Page.printToPDF', build_print_params(request))
            with open(target, 'wb') as f:
                f.write(base64.b64decode(result['data']))
        finally:
            self._driver = None
            try:
                driver.quit()
                logger.debug("WebDriver stopped")
            except Exception as e:
                logger.warning(f"Error stopping WebDriver: {e}")
