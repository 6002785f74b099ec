#!/usr/bin/env python3
"""
Browser Provisioning

Installs the browser binaries the rendering strategies need: Playwright's
Chromium and a ChromeDriver matching the system Chrome. Reports whether
wkhtmltopdf is available. Run once when building an image or CI runner.
"""

import logging
import subprocess
import sys
from typing import List

from .locator import ExecutableLocator

logger = logging.getLogger(__name__)


def run_command(cmd: List[str], description: str = "") -> bool:
    """Run a command and handle errors"""
    try:
        logger.info(f"🔧 {description}")
        result = subprocess.run(cmd, check=True, capture_output=True, text=True)
        if result.stdout.strip():
            logger.info(f"   {result.stdout.strip()}")
        return True
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        logger.error(f"❌ {description} failed:")
        logger.error(f"   {getattr(e, 'stderr', None) or e}")
        return False


def install_playwright_chromium(with_deps: bool = False) -> bool:
    """Install Playwright's bundled Chromium"""
    cmd = [sys.executable, '-m', 'playwright', 'install', 'chromium']
    if with_deps:
        cmd.append('--with-deps')
    return run_command(cmd, "Installing Playwright Chromium")


def install_chromedriver() -> bool:
    """Pre-fetch a ChromeDriver compatible with the installed Chrome"""
    from webdriver_manager.chrome import ChromeDriverManager

    try:
        driver_path = ChromeDriverManager().install()
        logger.info(f"✅ ChromeDriver installed at: {driver_path}")
        return True
    except Exception as e:
        logger.warning(f"⚠️  ChromeDriver setup failed: {e}")
        logger.info("   The Selenium renderer will retry at conversion time")
        return False


def report_converters(locator: ExecutableLocator) -> None:
    browser = locator.find_browser()
    converter = locator.find_converter()
    logger.info(f"{'✅' if browser else '⚠️ '} System Chrome: {browser or 'not found'}")
    logger.info(f"{'✅' if converter else '⚠️ '} wkhtmltopdf: {converter or 'not found (strategy will be skipped)'}")


def main(argv: List[str] = None) -> int:
    """Main installation process"""
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=logging.INFO, format='%(message)s')

    logger.info("🚀 Installing html2pdf browser dependencies")
    logger.info("=" * 50)

    if not install_playwright_chromium(with_deps='--with-deps' in argv):
        logger.error("❌ Playwright Chromium installation failed")
        return 1

    install_chromedriver()
    report_converters(ExecutableLocator())

    logger.info("")
    logger.info("🎉 Browser dependencies installed")
    return 0


if __name__ == '__main__':
    sys.exit(main())
