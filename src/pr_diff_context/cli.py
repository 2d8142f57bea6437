"""
Command line interface for the pr_diff_context tool.

This module defines the ``main`` click group used as the entry point of
the ``prdiff`` command. ``prdiff pr`` fetches a pull request's metadata,
clones its base and head refs, and writes the review context report;
``prdiff compare`` writes the same report for two local directories.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from pr_diff_context import __version__
from pr_diff_context.config.loader import ConfigError, load_config
from pr_diff_context.pipeline import generate_report, write_report
from pr_diff_context.providers.factory import client_for, fetch_commentary
from pr_diff_context.providers.pull_request import (
    InvalidPullRequestUrl,
    ProviderError,
    parse_pr_url,
)
from pr_diff_context.report.report_model import Report, ReportHeader
from pr_diff_context.tree.file_categorizer import DEFAULT_RULES, CategoryRules, rules_from_mapping
from pr_diff_context.tree.tree_comparator import TreeError
from pr_diff_context.vcs.git_client import GitClient, GitError

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests). When logging is configured by
# the CLI, root handlers will be added and messages will propagate.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_INVALID_INPUT = 3
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_PROVIDER_FAILURE = 7


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            elapsed = time.time() - self.start_time
            click.echo(f"  ✓ Done ({elapsed:.1f}s)")
        return False


def print_step(step_num: int, total_steps: int, message: str):
    """Print a step indicator."""
    click.echo(f"\n{'='*60}")
    click.echo(f"Step {step_num}/{total_steps}: {message}")
    click.echo(f"{'='*60}")


def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}")


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}")


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}")


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


def print_report_summary(report: Report, output_path: Path):
    """Print the counts of a written report."""
    summary = report.summary
    click.echo(f"\n{'='*60}")
    click.echo("✨ Summary")
    click.echo(f"{'='*60}\n")
    click.echo(f"  New: {summary.added} | Modified: {summary.modified} | Deleted: {summary.removed}")
    click.echo(f"  Estimated tokens: {summary.total_tokens}")
    click.echo(f"\n📄 Diff saved to {output_path}\n")


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def _configure_logging(verbose: bool) -> None:
    # Use force=True to ensure handlers are reconfigured on subsequent
    # invocations (important for tests).
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _load_config_or_exit() -> Dict[str, Any]:
    try:
        return load_config()
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)


def _rules(config: Dict[str, Any]) -> CategoryRules:
    mapping = config.get("category_extensions")
    return rules_from_mapping(mapping) if mapping else DEFAULT_RULES


def _resolve_options(
    config: Dict[str, Any],
    output: Optional[str],
    context_lines: Optional[int],
    no_new_content: bool,
) -> Tuple[Path, int, bool]:
    output_path = Path(output or config["output_file"])
    lines = context_lines if context_lines is not None else config["context_lines"]
    include_new = config["include_new_content"] and not no_new_content
    return output_path, lines, include_new


def _write_or_exit(report: Report, output_path: Path) -> None:
    try:
        with ProgressIndicator(f"Writing report to {output_path}"):
            write_report(report, output_path)
    except OSError as exc:
        print_error(f"Cannot write report to {output_path}: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
    print_report_summary(report, output_path)


_common_options: List = [
    click.option("-o", "--output", type=click.Path(dir_okay=False), help="Report file to write."),
    click.option("--context-lines", type=click.IntRange(min=0), help="Lines of context around each change."),
    click.option("--no-new-content", is_flag=True, help="Do not embed the full content of new files."),
    click.option("--verbose", is_flag=True, help="Enable verbose (debug) output."),
]


def common_options(func):
    for option in reversed(_common_options):
        func = option(func)
    return func


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(version=__version__, prog_name="prdiff")
def main() -> None:
    """🔍 Build LLM review context for a pull request.

    Compares the base and head trees of a pull request and writes a
    Markdown report with file lists, token estimates and diffs.
    """


@main.command("pr")
@click.argument("url")
@click.option("--token", help="API token for GitHub or Azure DevOps (overrides config and environment).")
@click.option("--no-comments", is_flag=True, help="Do not fetch PR comments.")
@click.option("--keep-clones", is_flag=True, help="Keep the temporary clones after the run.")
@common_options
def pr_command(
    url: str,
    token: Optional[str],
    no_comments: bool,
    keep_clones: bool,
    output: Optional[str],
    context_lines: Optional[int],
    no_new_content: bool,
    verbose: bool,
) -> None:
    """Analyze the pull request at URL (GitHub or Azure DevOps)."""
    _configure_logging(verbose)
    ctx = click.get_current_context(silent=True)
    total_steps = 5
    clone_dirs: List[Path] = []

    try:
        # Step 1: Parse input and configuration
        print_step(1, total_steps, "Reading Input")
        try:
            ref = parse_pr_url(url)
        except InvalidPullRequestUrl as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_INVALID_INPUT)
        print_success(f"Analyzing PR #{ref.number} from {ref.repository}")

        config = _load_config_or_exit()
        if token:
            config["azure_devops_token" if ref.provider == "azure" else "github_token"] = token
        output_path, lines, include_new = _resolve_options(config, output, context_lines, no_new_content)
        rules = _rules(config)

        # Step 2: Fetch PR information
        print_step(2, total_steps, "Fetching PR Information")
        client = client_for(ref, config)
        try:
            with ProgressIndicator("Fetching PR information"):
                info = client.get_pull_request(ref)
        except ProviderError as exc:
            print_error(str(exc))
            print_info(f"Please check that PR #{ref.number} exists and you have access to it.", indent=1)
            raise click.exceptions.Exit(EXIT_PROVIDER_FAILURE)
        print_info(f"Base branch: {info.base_ref}", indent=1)
        print_info(f"Head branch: {info.head_ref}", indent=1)
        print_info(f"Clone URL: {info.clone_url}", indent=1)

        # Step 3: Clone base and head
        print_step(3, total_steps, "Cloning Branches")
        if not GitClient.is_available():
            print_error("git is required but was not found on PATH.")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        git = GitClient(timeout=float(config["clone_timeout"]))
        base_dir = Path(tempfile.mkdtemp(prefix="prdiff_base_"))
        head_dir = Path(tempfile.mkdtemp(prefix="prdiff_head_"))
        clone_dirs = [base_dir, head_dir]
        pr_number = ref.number if ref.provider == "github" else None
        try:
            with ProgressIndicator(f"Cloning base branch: {info.base_ref}"):
                git.clone_ref(info.base_clone_url, base_dir, info.base_ref)
            with ProgressIndicator(f"Cloning head branch: {info.head_ref}"):
                git.clone_ref(info.clone_url, head_dir, info.head_ref, pr_number=pr_number)
        except GitError as exc:
            print_error(f"Git error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        # Step 4: Compare trees and build the report
        print_step(4, total_steps, "Comparing Branches")
        commentary = None
        if config["include_comments"] and not no_comments:
            with ProgressIndicator("Fetching PR comments"):
                commentary = fetch_commentary(client, ref)
            if not commentary.ok:
                print_warning("PR comments unavailable; the report will note it")
        header = ReportHeader(
            pr_id=str(ref.number),
            repository=ref.repository,
            base_ref=info.base_ref,
            head_ref=info.head_ref,
            source_url=info.url,
        )
        try:
            with ProgressIndicator("Comparing base and head trees"):
                report = generate_report(
                    base_dir,
                    head_dir,
                    header,
                    context_lines=lines,
                    include_new_content=include_new,
                    commentary=commentary,
                    rules=rules,
                    exclude_dirs=config["exclude_dirs"],
                )
        except TreeError as exc:
            print_error(f"Cannot compare trees: {exc}")
            raise click.exceptions.Exit(EXIT_INVALID_INPUT)

        # Step 5: Write the report
        print_step(5, total_steps, "Writing Report")
        _write_or_exit(report, output_path)

    except click.exceptions.Exit:
        # Click uses its own Exit exception; re-raise to let Click handle it
        raise
    except Exception as exc:
        # Catch any other unhandled errors
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
    finally:
        if keep_clones:
            for path in clone_dirs:
                print_info(f"Kept clone: {path}")
        else:
            for path in clone_dirs:
                shutil.rmtree(path, ignore_errors=True)


@main.command("compare")
@click.argument("base_dir", type=click.Path(file_okay=False))
@click.argument("head_dir", type=click.Path(file_okay=False))
@click.option("--base-ref", default="", help="Label for the base tree in the report header.")
@click.option("--head-ref", default="", help="Label for the head tree in the report header.")
@common_options
def compare_command(
    base_dir: str,
    head_dir: str,
    base_ref: str,
    head_ref: str,
    output: Optional[str],
    context_lines: Optional[int],
    no_new_content: bool,
    verbose: bool,
) -> None:
    """Compare two local directories BASE_DIR and HEAD_DIR."""
    _configure_logging(verbose)
    ctx = click.get_current_context(silent=True)

    try:
        config = _load_config_or_exit()
        output_path, lines, include_new = _resolve_options(config, output, context_lines, no_new_content)
        header = ReportHeader(
            repository=Path(head_dir).resolve().name,
            base_ref=base_ref or str(base_dir),
            head_ref=head_ref or str(head_dir),
        )
        try:
            with ProgressIndicator("Comparing directories"):
                report = generate_report(
                    base_dir,
                    head_dir,
                    header,
                    context_lines=lines,
                    include_new_content=include_new,
                    rules=_rules(config),
                    exclude_dirs=config["exclude_dirs"],
                )
        except TreeError as exc:
            print_error(f"Cannot compare trees: {exc}")
            raise click.exceptions.Exit(EXIT_INVALID_INPUT)
        _write_or_exit(report, output_path)

    except click.exceptions.Exit:
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
