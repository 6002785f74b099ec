#!/usr/bin/env python3
"""
wkhtmltopdf Strategy

Runs the external wkhtmltopdf converter as a subprocess. Only offered when
the binary is discoverable.
"""

import logging
import os
import subprocess
import tempfile
from typing import List, Optional

from ..exceptions import StrategyFailure
from ..options import RenderRequest, cookies_for_url
from ..source import Source
from .base import NEW_SESSION_KWARGS, ConversionStrategy, terminate_process_group

logger = logging.getLogger(__name__)

DEFAULT_JAVASCRIPT_DELAY_MS = 1000

# wkhtmltopdf passes page variables in the query string of header/footer
# documents; map them onto the class names Chromium templates use.
SUBSTITUTION_SCRIPT = """<script>
function subst() {
  var vars = {};
  var query = document.location.search.substring(1).split('&');
  for (var i in query) {
    var pair = query[i].split('=', 2);
    vars[pair[0]] = decodeURIComponent(pair[1] || '');
  }
  var mapping = {pageNumber: 'page', totalPages: 'topage', date: 'date', title: 'title', url: 'webpage'};
  for (var cls in mapping) {
    var nodes = document.getElementsByClassName(cls);
    for (var j = 0; j < nodes.length; ++j) {
      nodes[j].textContent = vars[mapping[cls]] || '';
    }
  }
}
</script>"""


def wrap_template(template: str) -> str:
    """Wrap a header/footer fragment into the full document wkhtmltopdf expects."""
    return (
        '<!DOCTYPE html>\n<html><head><meta charset="utf-8">'
        f'{SUBSTITUTION_SCRIPT}</head>'
        f'<body style="margin:0" onload="subst()">{template}</body></html>'
    )


class WkhtmltopdfStrategy(ConversionStrategy):
    """Converts with the wkhtmltopdf command-line tool"""

    name = 'wkhtmltopdf'

    def __init__(self, binary: Optional[str]):
        self.binary = binary
        self._process: Optional[subprocess.Popen] = None

    def is_available(self) -> bool:
        return bool(self.binary)

    def _write(self, workdir: str, filename: str, content: str) -> str:
        path = os.path.join(workdir, filename)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def build_command(self, source: Source, request: RenderRequest, target: str,
                      workdir: str) -> List[str]:
        """Translate the request into a wkhtmltopdf command line."""
        margin = request.margin
        cmd = [
            self.binary,
            '--quiet',
            '--encoding', 'utf-8',
            '--page-size', request.format,
            '--orientation', 'Landscape' if request.landscape else 'Portrait',
            '--margin-top', f'{margin.top}mm',
            '--margin-right', f'{margin.right}mm',
            '--margin-bottom', f'{margin.bottom}mm',
            '--margin-left', f'{margin.left}mm',
            '--zoom', str(request.scale),
            '--background' if request.print_background else '--no-background',
            '--enable-local-file-access',
            '--print-media-type',
        ]

        delay = request.timeout if request.wait_for else min(request.timeout, DEFAULT_JAVASCRIPT_DELAY_MS)
        cmd += ['--javascript-delay', str(delay)]
        if request.wait_for:
            logger.info(f"wkhtmltopdf cannot wait for '{request.wait_for}'; delaying JavaScript by {delay}ms instead")

        if request.header_template:
            cmd += ['--header-html', self._write(workdir, 'header.html', wrap_template(request.header_template))]
        if request.footer_template:
            cmd += ['--footer-html', self._write(workdir, 'footer.html', wrap_template(request.footer_template))]
        if request.custom_css:
            cmd += ['--user-style-sheet', self._write(workdir, 'custom.css', request.custom_css)]
        if request.user_agent:
            cmd += ['--custom-header', 'User-Agent', request.user_agent, '--custom-header-propagation']

        if source.is_url:
            for cookie in cookies_for_url(request.cookies, source.value):
                cmd += ['--cookie', cookie.name, cookie.value]
            cmd.append(source.value)
        elif source.is_file:
            if request.cookies:
                logger.info("Cookies ignored: source is not a URL")
            cmd.append(os.path.abspath(source.value))
        else:
            if request.cookies:
                logger.info("Cookies ignored: source is not a URL")
            cmd.append(self._write(workdir, 'source.html', source.markup()))

        cmd.append(target)
        return cmd

    def cancel(self) -> None:
        process = self._process
        if process is not None:
            logger.warning("Killing wkhtmltopdf")
            terminate_process_group(process)

    def convert(self, source: Source, request: RenderRequest, target: str) -> None:
        with tempfile.TemporaryDirectory(prefix='html2pdf-wkhtml-') as workdir:
            cmd = self.build_command(source, request, target, workdir)
            logger.info(f"Running wkhtmltopdf: {self.binary}")
            logger.debug(f"Command: {' '.join(cmd)}")

            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                **NEW_SESSION_KWARGS,
            )
            try:
                _, stderr = self._process.communicate(timeout=request.timeout_seconds * 2)
            except subprocess.TimeoutExpired:
                terminate_process_group(self._process)
                raise
            finally:
                returncode = self._process.returncode
                self._process = None

        for line in (stderr or '').splitlines():
            if line.strip():
                logger.warning(f"wkhtmltopdf: {line.strip()}")

        if returncode != 0:
            raise StrategyFailure(self.name, f"wkhtmltopdf exited with code {returncode}")
