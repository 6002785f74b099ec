#!/usr/bin/env python3
"""
Fallback Strategy
=================

Last-resort converter that always produces *some* PDF. The HTML is reduced
to plain text and a short preview is laid out with fpdf2's core fonts; no
CSS, layout or images are rendered.
"""

import logging
import re
import textwrap
from datetime import datetime
from typing import List, Tuple

import requests
from bs4 import BeautifulSoup
from fpdf import FPDF
from fpdf.enums import XPos, YPos

from ..options import RenderRequest
from ..source import Source
from .base import ConversionStrategy

logger = logging.getLogger(__name__)

TITLE = "HTML to PDF Conversion"
NOTICE = (
    "This document was generated by the fallback converter because no browser-based "
    "renderer succeeded. Styling, layout and images from the source were not rendered."
)
PREVIEW_CHARS = 300
WRAP_COLUMNS = 80
FALLBACK_MARGIN_MM = 10
MIN_TEXT_AREA_MM = 50
MAX_FETCH_SECONDS = 10.0
DEFAULT_USER_AGENT = 'html2pdf/1.0 (+fallback)'


def html_to_text(html_content: str) -> str:
    """Strip tags and collapse whitespace."""
    if not html_content:
        return ""
    soup = BeautifulSoup(html_content, 'html.parser')
    for element in soup(['script', 'style', 'noscript', 'template']):
        element.decompose()
    text = soup.get_text(' ')
    text = re.sub(r'[\u200b-\u200f\ufeff]', '', text)  # Zero-width chars
    return re.sub(r'\s+', ' ', text).strip()


def to_latin1(text: str) -> str:
    """Core PDF fonts only cover Latin-1."""
    return text.encode('latin-1', 'replace').decode('latin-1')


def preview_lines(text: str, limit: int = PREVIEW_CHARS, width: int = WRAP_COLUMNS) -> List[str]:
    """Truncate text to limit characters and word-wrap it."""
    truncated = len(text) > limit
    text = text[:limit].rstrip()
    if truncated:
        text += '...'
    return textwrap.wrap(text, width=width) or ['(no text content)']


class FallbackStrategy(ConversionStrategy):
    """Synthesizes a minimal text PDF; the pipeline's terminal strategy"""

    name = 'fallback'
    guaranteed = True

    def _fetch_text(self, url: str, request: RenderRequest) -> str:
        headers = {'User-Agent': request.user_agent or DEFAULT_USER_AGENT}
        timeout = min(request.timeout_seconds, MAX_FETCH_SECONDS)
        try:
            response = requests.get(url, headers=headers, timeout=timeout)
            response.raise_for_status()
            return html_to_text(response.text)
        except requests.RequestException as e:
            logger.warning(f"Fallback could not fetch {url}: {e}")
            return ""

    def source_text(self, source: Source, request: RenderRequest) -> str:
        if source.is_url:
            return self._fetch_text(source.value, request)
        try:
            return html_to_text(source.markup() or "")
        except OSError as e:
            logger.warning(f"Fallback could not read {source.describe()}: {e}")
            return ""

    def _page_geometry(self, request: RenderRequest) -> Tuple[Tuple[float, float], Tuple[int, int, int, int]]:
        paper = request.paper_size()
        if paper:
            width, height = paper[0] * 25.4, paper[1] * 25.4
        else:
            logger.debug(f"Paper format '{request.format}' unknown to fallback; using A4")
            width, height = 210.0, 297.0
        if request.landscape:
            width, height = height, width

        top, right, bottom, left = request.margin
        if left + right > width - MIN_TEXT_AREA_MM or top + bottom > height - MIN_TEXT_AREA_MM:
            logger.warning("Margins too large for fallback page; using default margins")
            top = right = bottom = left = FALLBACK_MARGIN_MM
        return (width, height), (top, right, bottom, left)

    def build_document(self, text: str, source: Source, request: RenderRequest) -> FPDF:
        (width, height), (top, right, bottom, left) = self._page_geometry(request)

        pdf = FPDF(orientation='P', unit='mm', format=(width, height))
        pdf.set_title(TITLE)
        pdf.set_creator('html2pdf')
        pdf.set_margins(left=left, top=top, right=right)
        pdf.set_auto_page_break(auto=True, margin=bottom)
        pdf.add_page()

        pdf.set_font('Helvetica', 'B', 18)
        pdf.multi_cell(0, 10, TITLE, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(2)

        pdf.set_font('Helvetica', 'I', 10)
        pdf.multi_cell(0, 5, to_latin1(NOTICE), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(2)

        pdf.set_font('Helvetica', '', 9)
        pdf.multi_cell(0, 5, to_latin1(f"Source: {source.describe()}"), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        pdf.multi_cell(0, 5, f"Generated on {timestamp}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(4)

        pdf.set_font('Helvetica', 'B', 12)
        pdf.multi_cell(0, 7, "Content preview", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_font('Courier', '', 9)
        for line in preview_lines(to_latin1(text)):
            pdf.multi_cell(0, 4.5, line, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        return pdf

    def convert(self, source: Source, request: RenderRequest, target: str) -> None:
        text = self.source_text(source, request)
        logger.info(f"Building fallback PDF from {len(text)} chars of text")
        pdf = self.build_document(text, source, request)
        pdf.output(target)
