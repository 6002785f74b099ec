"""
Tests for the html2pdf command-line entry point
"""
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from html2pdf.cli import main
from html2pdf.config import OPTION_NAMES
from html2pdf.strategies import FallbackStrategy


@pytest.fixture(autouse=True)
def isolated_environment(temp_dir, monkeypatch):
    """Run every CLI test from an empty directory with no CI variables"""
    monkeypatch.chdir(temp_dir)
    for name in OPTION_NAMES:
        monkeypatch.delenv(f'INPUT_{name.upper()}', raising=False)
        monkeypatch.delenv(name.upper(), raising=False)
    for var in ('GITHUB_OUTPUT', 'GITHUB_ACTIONS', 'LOG_LEVEL', 'DEBUG_MODE', 'CHROME_PATH'):
        monkeypatch.delenv(var, raising=False)
    with patch('html2pdf.cli.setup_logging'):
        yield


@pytest.fixture
def runner():
    return CliRunner()


class TestMain:
    """Test the main conversion command"""

    def test_converts_file_with_fallback(self, runner, fake_strategy, html_file, temp_dir):
        output = temp_dir / 'out.pdf'
        strategies = [fake_strategy('playwright', error=RuntimeError('no browser')), FallbackStrategy()]

        with patch('html2pdf.cli.build_strategies', return_value=strategies):
            result = runner.invoke(main, ['--source', str(html_file), '--output', str(output)])

        assert result.exit_code == 0, result.output
        assert f'pdf_path={output}' in result.output
        assert output.read_bytes().startswith(b'%PDF-')

    def test_writes_github_output(self, runner, fake_strategy, temp_dir, monkeypatch):
        github_output = temp_dir / 'github_output'
        monkeypatch.setenv('GITHUB_OUTPUT', str(github_output))
        output = temp_dir / 'out.pdf'

        with patch('html2pdf.cli.build_strategies', return_value=[fake_strategy('a')]):
            result = runner.invoke(main, ['--source', '<h1>Hi</h1>', '--output', str(output)])

        assert result.exit_code == 0, result.output
        assert github_output.read_text() == f'pdf_path={output}\n'

    def test_platform_inputs_win(self, runner, fake_strategy, temp_dir, monkeypatch):
        monkeypatch.setenv('INPUT_SOURCE', '<p>from action</p>')
        monkeypatch.setenv('INPUT_OUTPUT', str(temp_dir / 'action.pdf'))
        strategy = fake_strategy('a')

        with patch('html2pdf.cli.build_strategies', return_value=[strategy]):
            result = runner.invoke(main, ['--source', '<p>from cli</p>', '--output', 'cli.pdf'])

        assert result.exit_code == 0, result.output
        assert (temp_dir / 'action.pdf').exists()
        assert not (temp_dir / 'cli.pdf').exists()

    def test_dashed_flags_accepted(self, runner, fake_strategy, temp_dir):
        strategy = fake_strategy('a')

        with patch('html2pdf.cli.build_strategies', return_value=[strategy]):
            result = runner.invoke(main, ['--source', '<p>x</p>', '--output', 'o.pdf',
                                          '--wait-for', '#ready', '--print_background', 'false'])

        assert result.exit_code == 0, result.output

    def test_config_file_options(self, runner, fake_strategy, temp_dir):
        (temp_dir / 'html2pdf.yaml').write_text(
            "html2pdf:\n"
            "  source: '<p>from config</p>'\n"
            "  output: config.pdf\n"
        )

        with patch('html2pdf.cli.build_strategies', return_value=[fake_strategy('a')]):
            result = runner.invoke(main, [])

        assert result.exit_code == 0, result.output
        assert (temp_dir / 'config.pdf').exists()

    def test_missing_source_fails(self, runner):
        result = runner.invoke(main, ['--output', 'o.pdf'])

        assert result.exit_code == 1
        assert "Action failed: Input 'source' is required" in result.output

    def test_invalid_margin_fails_before_conversion(self, runner, fake_strategy):
        strategy = fake_strategy('a')

        with patch('html2pdf.cli.build_strategies', return_value=[strategy]):
            result = runner.invoke(main, ['--source', '<p>x</p>', '--output', 'o.pdf',
                                          '--margin', '1,2,3'])

        assert result.exit_code == 1
        assert 'Invalid margin' in result.output
        assert strategy.calls == 0

    def test_bad_cookies_do_not_fail(self, runner, fake_strategy):
        with patch('html2pdf.cli.build_strategies', return_value=[fake_strategy('a')]):
            result = runner.invoke(main, ['--source', '<p>x</p>', '--output', 'o.pdf',
                                          '--cookies', '{not json'])

        assert result.exit_code == 0, result.output

    def test_all_strategies_failing_exits_nonzero(self, runner, fake_strategy):
        strategies = [fake_strategy('a', error=RuntimeError('first')),
                      fake_strategy('b', error=RuntimeError('second'))]

        with patch('html2pdf.cli.build_strategies', return_value=strategies):
            result = runner.invoke(main, ['--source', '<p>x</p>', '--output', 'o.pdf'])

        assert result.exit_code == 1
        assert 'All conversion strategies failed' in result.output
        assert 'pdf_path=' not in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ['--version'])

        assert result.exit_code == 0
        assert 'html2pdf' in result.output
