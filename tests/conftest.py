"""
Test configuration and shared fixtures for html2pdf tests
"""
import pytest
import tempfile
import shutil
import threading
from pathlib import Path

from html2pdf.options import RenderRequest
from html2pdf.strategies.base import ConversionStrategy

FAKE_PDF = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"


class FakeStrategy(ConversionStrategy):
    """Strategy double that records calls and either writes a PDF or raises"""

    def __init__(self, name, error=None, available=True, guaranteed=False,
                 delay=0.0, payload=FAKE_PDF):
        self.name = name
        self.error = error
        self.available = available
        self.guaranteed = guaranteed
        self.delay = delay
        self.payload = payload
        self.calls = 0
        self.targets = []
        self.cancelled = threading.Event()
        self.live_workers = []

    def is_available(self):
        return self.available

    def cancel(self):
        self.cancelled.set()

    def convert(self, source, request, target):
        self.calls += 1
        self.targets.append(target)
        self.live_workers = [
            thread.name for thread in threading.enumerate()
            if thread.name.startswith('html2pdf-') and thread is not threading.current_thread()
        ]
        if self.delay and self.cancelled.wait(self.delay):
            raise RuntimeError('cancelled')
        if self.error is not None:
            raise self.error
        with open(target, 'wb') as f:
            f.write(self.payload)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests"""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_html():
    """Minimal page used by end-to-end tests"""
    return "<html><body><h1>Hi</h1></body></html>"


@pytest.fixture
def html_file(temp_dir, sample_html):
    """HTML file on disk"""
    path = temp_dir / 'page.html'
    path.write_text(sample_html, encoding='utf-8')
    return path


@pytest.fixture
def render_request(temp_dir):
    """Default RenderRequest writing into the temp directory"""
    return RenderRequest(output=str(temp_dir / 'out' / 'result.pdf'))


@pytest.fixture
def fake_pdf():
    """Bytes of a minimal PDF"""
    return FAKE_PDF


@pytest.fixture
def fake_strategy():
    """Factory for FakeStrategy instances"""
    return FakeStrategy
