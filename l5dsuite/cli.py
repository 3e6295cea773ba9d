"""
Command-line interface for l5dsuite.

Usage:
    l5dsuite /path/to/linkerd                       # Run all tests in isolated clusters
    l5dsuite --name helm /path/to/linkerd           # Run a single test
    l5dsuite --skip-kind-create /path/to/linkerd    # Use the current cluster context
    l5dsuite --images /path/to/linkerd              # Load images from image-archives/*.tar
    l5dsuite --dry-run /path/to/linkerd             # Show the test plan
    l5dsuite --cleanup                              # Remove Linkerd resources from the current context
"""

import logging
import sys
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import HarnessOptions, find_config, load_config
from .context import HarnessContext, HarnessError, console
from .executor import TestExecutor
from .handlers import TEST_NAMES, HANDLERS, describe, get_test_config
from .models import RunSummary, TestStatus
from . import cluster, reporter

err_console = Console(stderr=True, highlight=False)

# Exit code when the linkerd binary argument is missing (EX_USAGE)
EXIT_USAGE = 64

HELP = f"""Run Linkerd integration tests.

\b
Optionally specify one of the following tests:
[{' '.join(TEST_NAMES)}]
"""

EPILOG = """\b
Examples:

\b
    # Run all tests in isolated clusters
    l5dsuite /path/to/linkerd

\b
    # Run single test in isolated clusters
    l5dsuite --name test-name /path/to/linkerd

\b
    # Skip KinD cluster creation and run all tests in default cluster context
    l5dsuite --skip-kind-create /path/to/linkerd

\b
    # Load images from tar files located under the 'image-archives' directory
    # Note: This is primarily for CI
    l5dsuite --images /path/to/linkerd

\b
    # Retrieve images from a remote docker instance and then load them into KinD
    # Note: This is primarily for CI
    l5dsuite --images --images-host ssh://linkerd-docker /path/to/linkerd
"""


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
        force=True,
    )
    # Docker SDK and requests are noisy at DEBUG
    for name in ("urllib3", "docker"):
        logging.getLogger(name).setLevel(logging.WARNING)


def print_basic_usage() -> None:
    console.print("Help:", markup=False)
    console.print("     l5dsuite -h|--help", markup=False)
    console.print("Basic usage:", markup=False)
    console.print("     l5dsuite /path/to/linkerd", markup=False)


def print_banner(ctx: HarnessContext, names: list[str]) -> None:
    mode = "existing cluster context" if ctx.options.skip_kind_create else "isolated KinD clusters"
    if ctx.options.images:
        images = f"archives via {ctx.options.images_host}" if ctx.options.images_host else "archives"
    else:
        images = "docker-image"
    console.print(Panel(
        f"[bold blue]Linkerd Integration Tests[/bold blue]\n"
        f"Tests: {len(names)} | Mode: {mode} | Images: {images}\n"
        f"[dim]linkerd: {escape(ctx.linkerd_path)}[/dim]",
        expand=False,
    ))


def print_plan(ctx: HarnessContext, names: list[str]) -> None:
    """Print the tests that would run, without touching any cluster."""
    table = Table(title="Tests to run")
    table.add_column("Test", style="cyan")
    table.add_column("KinD config")
    table.add_column("Cluster")
    table.add_column("Description", style="dim")

    for name in names:
        target = "current context" if ctx.options.skip_kind_create else f"kind-{name}"
        table.add_row(name, get_test_config(name), target, describe(name))

    console.print(table)
    console.print(f"\n[bold]{len(names)} test(s) would run[/bold]")


def print_summary(summary: RunSummary) -> None:
    """Print summary of all test results."""
    table = Table(title="Test Results")
    table.add_column("Test", style="cyan")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Error", style="dim")

    for test in summary.tests:
        color = {
            TestStatus.PASSED: "green",
            TestStatus.FAILED: "red",
            TestStatus.SKIPPED: "dim",
        }.get(test.status, "white")
        duration = f"{test.duration:.1f}s" if test.duration_ms is not None else "-"
        table.add_row(
            test.name,
            f"[{color}]{test.status.value}[/{color}]",
            duration,
            escape(test.error_message or ""),
        )

    console.print()
    console.print(table)
    console.print(
        f"[bold]SUMMARY:[/bold] "
        f"[green]{summary.passed} passed[/green], "
        f"[red]{summary.failed} failed[/red], "
        f"[dim]{summary.skipped} skipped[/dim] "
        f"({(summary.duration_ms or 0) / 1000:.1f}s total)"
    )


def run_cleanup(ctx: HarnessContext) -> int:
    console.print("Removing Linkerd resources from the current context...", end="")
    try:
        cluster.cleanup_cluster(ctx)
    except HarnessError as e:
        if e.annotate:
            reporter.report_failure(e.message)
        return e.exit_code
    console.print(escape("[ok]"))
    return 0


@click.command(
    help=HELP,
    epilog=EPILOG,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.argument("linkerd_path", required=False)
@click.option("--images", is_flag=True,
              help="(Primarily for CI) use 'kind load image-archive' to load the images from "
                   "local .tar files in the image-archives directory.")
@click.option("--images-host", metavar="HOST",
              help="(Primarily for CI) remote docker instance from which images are first "
                   "retrieved (using 'docker save') to be then loaded into KinD. Requires --images.")
@click.option("--name", "test_name", metavar="TEST", help="The specific test to run")
@click.option("--skip-kind-create", is_flag=True,
              help="Skip KinD cluster creation step and run tests in an existing cluster.")
@click.option("--root", type=click.Path(exists=True, file_okay=False, path_type=Path),
              default=".", show_default=True,
              help="Repository root containing test/, charts/ and bin/")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Harness config file (default: <root>/l5dsuite.yaml if present)")
@click.option("--dry-run", is_flag=True, help="List tests without running")
@click.option("--report-file", type=click.Path(dir_okay=False, path_type=Path),
              help="Write a report of the run (.xml for JUnit, JSON otherwise)")
@click.option("--cleanup", is_flag=True, help="Remove Linkerd resources from the current context and exit")
@click.option("--verbose", "-v", is_flag=True, help="Log every external command")
def main(
    linkerd_path: str | None,
    images: bool,
    images_host: str | None,
    test_name: str | None,
    skip_kind_create: bool,
    root: Path,
    config_path: Path | None,
    dry_run: bool,
    report_file: Path | None,
    cleanup: bool,
    verbose: bool,
):
    configure_logging(verbose)

    if images_host and not images:
        err_console.print("Error: --images-host needs to be used with --images", markup=False)
        sys.exit(1)

    if test_name is not None and test_name not in HANDLERS:
        console.print(f"Error: unknown test [{test_name}]", style="red", markup=False)
        console.print(f"Available tests: {escape(', '.join(HANDLERS))}", markup=False)
        sys.exit(1)

    if not linkerd_path and not cleanup:
        console.print("Error: path to linkerd binary is required", markup=False)
        print_basic_usage()
        sys.exit(EXIT_USAGE)

    root = root.resolve()
    try:
        config = load_config(config_path or find_config(root))
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error: could not load config: {escape(str(e))}[/red]")
        sys.exit(1)

    options = HarnessOptions(
        linkerd_path=linkerd_path or "",
        root=root,
        images=images,
        images_host=images_host,
        skip_kind_create=skip_kind_create,
    )
    ctx = HarnessContext(options=options, config=config)

    if cleanup:
        sys.exit(run_cleanup(ctx))

    names = [test_name] if test_name else list(TEST_NAMES)

    if dry_run:
        print_plan(ctx, names)
        sys.exit(0)

    print_banner(ctx, names)

    executor = TestExecutor(ctx)
    summary = executor.run(names)

    print_summary(summary)

    if report_file:
        try:
            path = reporter.write_report(summary, report_file)
            console.print(f"[dim]Report: {escape(str(path))}[/dim]")
        except OSError as e:
            console.print(f"[red]Failed to write report: {escape(str(e))}[/red]")

    sys.exit(executor.exit_code(summary))


if __name__ == "__main__":
    main()
