import logging
import os
import sys
import traceback
from typing import Optional

import click

from . import __version__
from .ci_platform import set_failed, set_output
from .config import collect_inputs, load_config
from .exceptions import ConfigError, Html2PdfError, PipelineExhausted
from .locator import ExecutableLocator
from .options import normalize
from .pipeline import FallbackPipeline, build_strategies
from .source import resolve
from .utils import format_file_size, setup_logging

logger = logging.getLogger(__name__)


def conversion_option(name: str, help: str):
    """Option accepting both --name_with_underscores and --name-with-dashes."""
    flags = [f'--{name}']
    if '_' in name:
        flags.append(f'--{name.replace("_", "-")}')
    return click.option(*flags, name, default=None, help=help)


@click.command()
@conversion_option('source', 'HTML file path, URL, or literal HTML to convert (required)')
@conversion_option('output', 'Destination PDF path (required)')
@conversion_option('wait_for', 'CSS selector to wait for before printing')
@conversion_option('format', 'Paper format, e.g. A4, Letter [default: A4]')
@conversion_option('margin', 'Margins in mm: "10" or "top,right,bottom,left" [default: 10,10,10,10]')
@conversion_option('orientation', 'portrait or landscape [default: portrait]')
@conversion_option('header_template', 'HTML template for the page header')
@conversion_option('footer_template', 'HTML template for the page footer')
@conversion_option('timeout', 'Navigation timeout in milliseconds [default: 30000]')
@conversion_option('scale', 'Rendering scale [default: 1]')
@conversion_option('custom_css', 'CSS injected into the page before printing')
@conversion_option('cookies', 'JSON array of {name, value, domain?, path?} cookies')
@conversion_option('user_agent', 'User-Agent override')
@conversion_option('print_background', 'Print background graphics unless "false" [default: true]')
@conversion_option('deadline', 'Overall time budget for browser strategies in ms [default: 180000]')
@click.option('--config', '-c',
              type=click.Path(),
              help='Configuration file path [default: html2pdf.yaml if present]')
@click.option('--chrome-path',
              help='Chrome/Chromium executable for the Selenium renderer')
@click.option('--verbose', '-v',
              is_flag=True,
              help='Enable verbose logging')
@click.version_option(version=__version__, prog_name="html2pdf")
def main(config: Optional[str], chrome_path: Optional[str], verbose: bool, **cli_values):
    """
    Convert HTML to PDF.

    Options may also come from INPUT_<NAME> (GitHub Actions inputs),
    <NAME> environment variables, or the config file, in that order of
    precedence after CI inputs and flags.
    """
    try:
        # Load configuration
        app_config = load_config(config)
        if verbose:
            app_config['logging']['level'] = 'DEBUG'

        # Setup logging
        setup_logging(app_config['logging'])

        inputs = collect_inputs(cli_values, file_options=app_config.get('html2pdf'))
        if not inputs['source']:
            raise ConfigError("Input 'source' is required")

        request = normalize(inputs)
        source = resolve(str(inputs['source']))
        logger.info(f"Converting {source.kind.value} source: {source.describe()}")

        browser_config = app_config.get('browser', {})
        locator = ExecutableLocator(browser_path=chrome_path or browser_config.get('chrome_path'))
        strategies = build_strategies(locator, headless=browser_config.get('headless', True))

        outcome = FallbackPipeline(strategies).run(source, request)

    except KeyboardInterrupt:
        click.echo("\n⚠️  Conversion interrupted by user", err=True)
        sys.exit(1)
    except PipelineExhausted as e:
        for failure in e.failures:
            if failure.details:
                logger.debug(f"{failure.strategy} traceback:\n{failure.details}")
        set_failed(f"Action failed: {e}")
        sys.exit(1)
    except Html2PdfError as e:
        set_failed(f"Action failed: {e}")
        sys.exit(1)
    except Exception as e:
        set_failed(f"Action failed: {e}")
        if verbose:
            traceback.print_exc()
        sys.exit(1)

    if outcome.diagnostics:
        logger.warning(
            f"Used '{outcome.strategy}' after {len(outcome.diagnostics)} failed strategies: "
            + ", ".join(failure.strategy for failure in outcome.diagnostics)
        )
    size = format_file_size(os.path.getsize(outcome.output_path))
    click.echo(f"🎉 PDF generated successfully with {outcome.strategy}: {outcome.output_path} ({size})", err=True)
    set_output('pdf_path', outcome.output_path)


if __name__ == '__main__':
    main()
