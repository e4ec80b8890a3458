# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Command Line Interface for dock-docs.
"""
import logging
import os
import signal
import threading
from contextlib import contextmanager
from typing import List, Optional

import click

from .. import __commit__, __date__, __version__
from ..ADAPTERS.defaults import default_adapters, tool_status
from ..ANALYSIS.analyzer import analyze_comparison, analyze_image, validate_image
from ..MODELS.docs_config import DocsConfig, SectionConfig, SectionType, TemplateConfig, TimeoutConfig
from ..MODELS.image_stats import ImageStats
from ..PARSERS.annotation_resolver import parse_dockerfile
from ..PARSERS.config_parser import ConfigParser, source_for
from ..RENDERERS.builtin_templates import KIND_COMPARISON, KIND_IMAGE, export_builtin, list_builtin
from ..RENDERERS.renderer import (
    RenderOptions,
    TemplateLoader,
    TemplateSelection,
    render,
    render_comparison,
)
from ..RUNNERS.image_puller import ImagePuller
from ..UTILS.injector import (
    inject,
    is_direct_write_format,
    resolve_output_path,
    resolve_section_output,
)
from ..errors import (
    ConfigError,
    DockDocsError,
    ImagePullError,
    InvalidImageError,
    MarkerNotFoundError,
    StrictAnalysisError,
)

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s: %(message)s"


def configure_logging(verbose: bool) -> None:
    """
    Sends the package's log records to stderr; DEBUG with --verbose, else INFO.
    """
    package_logger = logging.getLogger("dockdocs")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    package_logger.propagate = False


@contextmanager
def cancel_on_interrupt():
    """
    Yields an event that is set on Ctrl+C, so running tools are stopped
    instead of the interpreter unwinding past them.
    """
    cancel_event = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel_event
        return

    def _handler(signum, frame):
        # a second Ctrl+C aborts immediately
        if cancel_event.is_set():
            raise KeyboardInterrupt
        logger.warning("Interrupted, stopping analysis tools...")
        cancel_event.set()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield cancel_event
    finally:
        signal.signal(signal.SIGINT, previous)


def resolve_selection(cli_template: Optional[str],
                      config_template: Optional[TemplateConfig] = None) -> TemplateSelection:
    """
    Template precedence: --template flag, then config file, then the default.
    """
    if cli_template:
        return TemplateSelection.from_cli(cli_template)
    if config_template:
        if config_template.path:
            return TemplateSelection(path=config_template.path)
        if config_template.name:
            return TemplateSelection(name=config_template.name)
    return TemplateSelection()


def describe_template(selection: TemplateSelection) -> str:
    if selection.path:
        return f"custom file: {selection.path}"
    return f"built-in: {selection.name or 'default'}"


def ensure_images(tags: List[str], timeouts: TimeoutConfig, ignore_errors: bool) -> List[str]:
    """
    Validates each tag and pulls it when missing.

    :return: The tags that are ready for analysis.
    :raises InvalidImageError, ImagePullError: Unless ``ignore_errors`` is set.
    """
    puller = ImagePuller(timeout=timeouts.scan)
    ready = []
    for tag in tags:
        try:
            validate_image(tag)
            puller.ensure(tag)
        except (InvalidImageError, ImagePullError) as e:
            if not ignore_errors:
                raise
            logger.warning("Skipping analysis of %s: %s", tag, e)
            continue
        ready.append(tag)
    return ready


def check_strict(stats_list: List[ImageStats], strict: bool) -> None:
    if not strict:
        return
    for stats in stats_list:
        if stats.warnings:
            raise StrictAnalysisError(stats.image_tag, stats.warnings)


def run_image_analysis(tag: str, timeouts: TimeoutConfig, ignore_errors: bool,
                       strict: bool, cancel_event: threading.Event) -> Optional[ImageStats]:
    if not ensure_images([tag], timeouts, ignore_errors):
        return None
    logger.info("Analyzing image: %s ...", tag)
    stats = analyze_image(tag, default_adapters(timeouts), cancel_event)
    if cancel_event.is_set():
        raise click.Abort()
    check_strict([stats], strict)
    return stats


def write_file(path: str, content: str) -> None:
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise DockDocsError(f"failed to write output file {path}: {e}") from e


@click.group(invoke_without_command=True)
@click.option('--file', '-f', 'dockerfile', default='./Dockerfile', show_default=True,
              help='Path to the Dockerfile')
@click.option('--output', '-o', default='README.md', show_default=True, help='Output file')
@click.option('--dry-run', is_flag=True, help='Print to stdout instead of writing files')
@click.option('--image', default='', help='Image tag to analyze')
@click.option('--template', '-t', default=None,
              help='Built-in template name or path to a custom template file')
@click.option('--config', '-c', 'config_path', default=None,
              help='YAML config file describing several sections')
@click.option('--ignore-errors', is_flag=True, help='Continue when an image cannot be analyzed')
@click.option('--strict', is_flag=True, help='Fail when any analysis tool reports an error')
@click.option('--no-moji', is_flag=True, help='Disable emojis in the output')
@click.option('--badge-base-url', default=None, help='Base URL for severity badges')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--debug-template', is_flag=True, help='Show which template is used for each section')
@click.pass_context
def cli(ctx, dockerfile, output, dry_run, image, template, config_path, ignore_errors,
        strict, no_moji, badge_base_url, verbose, debug_template):
    """
    dock-docs - Generate documentation from a Dockerfile.

    Reads magic comments (# @name, # @description, # @default, # @required)
    above ARG, ENV, LABEL and EXPOSE instructions, optionally analyzes a built
    image, and injects the result into a README between markers.
    """
    configure_logging(verbose)
    ctx.ensure_object(dict)
    if ctx.invoked_subcommand is not None:
        return

    try:
        if config_path:
            generate_from_config(config_path, template, dry_run, ignore_errors, strict,
                                 no_moji, badge_base_url, debug_template)
        else:
            generate(dockerfile, output, dry_run, image, template, ignore_errors, strict,
                     no_moji, badge_base_url or "", debug_template)
    except DockDocsError as e:
        raise click.ClickException(str(e)) from e


def generate(dockerfile: str, output: str, dry_run: bool, image: str,
             template: Optional[str], ignore_errors: bool, strict: bool,
             no_moji: bool, badge_base_url: str, debug_template: bool) -> None:
    """
    Single-Dockerfile mode.
    """
    doc = parse_dockerfile(dockerfile)

    stats = None
    if image:
        with cancel_on_interrupt() as cancel_event:
            stats = run_image_analysis(image, TimeoutConfig(), ignore_errors, strict, cancel_event)

    selection = resolve_selection(template)
    fmt = selection.format
    if debug_template:
        logger.info("Template: %s (type: image, format: %s)", describe_template(selection), fmt)

    options = RenderOptions(no_moji=no_moji, badge_base_url=badge_base_url)
    rendered = render(doc, stats, options, selection)

    if dry_run:
        click.echo(rendered)
        return

    if is_direct_write_format(fmt):
        out_path = resolve_output_path(output, fmt)
        write_file(out_path, rendered)
        logger.info("Wrote %s", out_path)
        return

    try:
        with open(output, "r", encoding="utf-8") as f:
            content = f.read()
    except FileNotFoundError:
        logger.warning("Output file %s does not exist, printing to stdout", output)
        click.echo(rendered)
        return
    except OSError as e:
        raise DockDocsError(f"failed to read output file {output}: {e}") from e

    try:
        new_content = inject(content, "", rendered)
    except MarkerNotFoundError as e:
        logger.warning("Injection failed (%s), printing to stdout", e)
        click.echo(rendered)
        return

    write_file(output, new_content)
    logger.info("Updated %s", output)


def render_section(index: int, section: SectionConfig, config: DocsConfig, base_dir: str,
                   selection: TemplateSelection, options: RenderOptions,
                   ignore_errors: bool, strict: bool,
                   cancel_event: threading.Event) -> Optional[str]:
    """
    Renders one config section; None when there is nothing to render.
    """
    if section.type == SectionType.IMAGE.value:
        doc = parse_dockerfile(source_for(section, base_dir))
        stats = None
        if section.tag:
            stats = run_image_analysis(section.tag, config.timeouts, ignore_errors, strict, cancel_event)
        return render(doc, stats, options, selection)

    if section.type == SectionType.COMPARISON.value:
        entries = section.resolved_images()
        if not entries:
            logger.warning("Section %d has no images to compare, skipping", index)
            return None
        ready = set(ensure_images([e.tag for e in entries], config.timeouts, ignore_errors))
        entries = [e for e in entries if e.tag in ready]
        if not entries:
            return None

        logger.info("Analyzing comparison: %s ...", ", ".join(e.tag for e in entries))
        stats_list = analyze_comparison(
            [e.tag for e in entries],
            adapter_factory=lambda: default_adapters(config.timeouts),
            cancel_event=cancel_event,
        )
        if cancel_event.is_set():
            raise click.Abort()
        check_strict(stats_list, strict)
        return render_comparison(stats_list, options, selection,
                                 labels=[e.display_name for e in entries])

    logger.warning("Unknown section type %r, skipping", section.type)
    return None


def generate_from_config(config_path: str, template: Optional[str], dry_run: bool,
                         ignore_errors: bool, strict: bool, no_moji: bool,
                         badge_base_url: Optional[str], debug_template: bool) -> None:
    """
    YAML mode: renders every configured section. Markdown sections are
    injected into the shared output file, html and json sections are written
    as files of their own.
    """
    logger.info("Using config file: %s", config_path)
    config = ConfigParser().parse(config_path)
    base_dir = os.path.dirname(os.path.abspath(config_path))
    options = RenderOptions(
        no_moji=no_moji,
        badge_base_url=config.badge_base_url if badge_base_url is None else badge_base_url,
    )

    content: Optional[str] = None

    with cancel_on_interrupt() as cancel_event:
        for index, section in enumerate(config.sections):
            selection = resolve_selection(template, config.resolve_template(section))
            fmt = selection.format
            if debug_template:
                logger.info("Template: %s (type: %s, format: %s)",
                            describe_template(selection), section.type, fmt)

            rendered = render_section(index, section, config, base_dir, selection, options,
                                      ignore_errors, strict, cancel_event)
            if rendered is None:
                continue

            if is_direct_write_format(fmt):
                out_path = resolve_section_output(config.output, section.marker, index, fmt)
                if dry_run:
                    click.echo(f"--- {out_path} ---")
                    click.echo(rendered)
                    continue
                write_file(out_path, rendered)
                logger.info("Wrote %s", out_path)
                continue

            if content is None:
                content = read_output(config.output)
            try:
                content = inject(content, section.marker, rendered)
            except MarkerNotFoundError as e:
                logger.warning("%s", e)

    if content is None:
        return
    if dry_run:
        click.echo(content)
        return
    write_file(config.output, content)
    logger.info("Updated %s", config.output)


def read_output(path: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise ConfigError(f"failed to read output file {path}: {e}") from e


@cli.group()
def templates():
    """List, export and validate templates."""


@templates.command('list')
def templates_list():
    """List the built-in templates."""
    click.echo("Available built-in templates:")
    click.echo()
    for template in list_builtin():
        click.echo(f"  {template.name:<10}  [{template.format}]  {template.description}")
    click.echo()
    click.echo("Usage:")
    click.echo("  dock-docs --template <name>")
    click.echo("  dock-docs templates export <name> > my-template.tmpl")


@templates.command('export')
@click.argument('name')
@click.option('--kind', type=click.Choice([KIND_IMAGE, KIND_COMPARISON]), default=KIND_IMAGE,
              show_default=True, help='Which variant of the template to export')
def templates_export(name, kind):
    """Print the source of a built-in template."""
    try:
        click.echo(export_builtin(name, kind), nl=False)
    except DockDocsError as e:
        raise click.ClickException(str(e)) from e


@templates.command('validate')
@click.argument('path')
def templates_validate(path):
    """Check that a custom template file parses."""
    try:
        TemplateLoader().validate(path)
    except DockDocsError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Template {path} is valid.")


@cli.command()
def check():
    """Report which analysis tools are installed."""
    click.echo("Prerequisites:")
    for tool in tool_status():
        if tool["available"]:
            click.echo(f"  [OK] {tool['name']} ({tool['source']}: {tool['path']})")
        else:
            click.echo(f"  [MISSING] {tool['name']}")


@cli.command()
def version():
    """Print version information."""
    click.echo(f"dock-docs {__version__}")
    click.echo(f"  commit: {__commit__}")
    click.echo(f"  built:  {__date__}")


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
