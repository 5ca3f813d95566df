"""
Command line interface for the ai_commit tool.

This module defines the ``main`` click group used as the entry point of
the ``ai-commit`` command. ``status`` (the default), ``diff`` and
``init`` are plain helpers; ``commit`` inspects the working tree, asks
the configured LLM provider for a Conventional Commits message, lets the
user accept, edit, regenerate or cancel it, and finally commits.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from ai_commit import __version__
from ai_commit.config.loader import ConfigError, get_api_key, init_config, load_config
from ai_commit.llm.commit_message_generator import CommitMessageGenerator, Provider, create_client
from ai_commit.llm.errors import GenerationError, ParseError, TransportError
from ai_commit.llm.message import CommitMessage, GenerationContext
from ai_commit.llm.prompt import count_diff_lines
from ai_commit.vcs.git_client import BranchInfo, GitClient, GitError, RepoStatus

logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7
EXIT_DECLINED = 8
EXIT_PARSE_FAILURE = 9

DIFF_PREVIEW_LINES = 30

ACTION_ACCEPT = "accept"
ACTION_EDIT = "edit"
ACTION_REGENERATE = "regenerate"
ACTION_CANCEL = "cancel"

_ACTION_KEYS = {
    "a": ACTION_ACCEPT,
    "e": ACTION_EDIT,
    "r": ACTION_REGENERATE,
    "c": ACTION_CANCEL,
}


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Single-line progress indicator for the (blocking) LLM request."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"⠋ {self.message}...", nl=False)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        mark = "✓" if exc_type is None else "✗"
        click.echo(f"\r{mark} {self.message} (took {elapsed:.1f}s)")
        return False


def print_info(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}{click.style('ℹ', fg='blue')} {message}")


def print_success(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}{click.style('✓', fg='green', bold=True)} {click.style(message, fg='green')}")


def print_warning(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}{click.style('⚠', fg='yellow')} {message}")


def print_error(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}{click.style('✗', fg='red', bold=True)} {message}", err=True)


def print_debug_block(title: str, text: str):
    """Print a raw diagnostic block; only called when --debug is set."""
    click.echo("\n" + click.style(f"=== DEBUG: {title} ===", fg="cyan", bold=True), err=True)
    click.echo(text, err=True)
    click.echo(click.style("=" * (len(title) + 15), fg="cyan", bold=True) + "\n", err=True)


def configure_logging(verbose: bool) -> None:
    # force=True so repeated invocations (tests) reconfigure handlers.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    # Module loggers start detached; hand them to the root handler now.
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("ai_commit"):
            logging.getLogger(name).propagate = True


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------

def open_repo(path: Path) -> GitClient:
    """Return a client for the repository containing ``path``.

    Raises
    ------
    click.exceptions.Exit
        With EXIT_NO_REPO when ``path`` is not inside a Git repository.
    """
    root = GitClient.find_repo_root(path)
    if root is None:
        click.echo(f"{click.style('Checking:', bold=True)} {path}\n")
        print_error("Not a Git repository")
        print_info("Tip: Run 'git init' to initialize a Git repository")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    logger.debug("Found Git repository at %s", root)
    return GitClient(root)


def build_context(status: RepoStatus, branch: BranchInfo, diff: str) -> GenerationContext:
    """Collect the prompt context from the repository state."""
    added, removed = count_diff_lines(diff)
    branch_name = None if branch.is_detached else branch.name
    return GenerationContext(
        branch_name=branch_name,
        file_count=status.total_changes(),
        added_lines=added,
        removed_lines=removed,
    )


def resolve_api_key(api_key: Optional[str], config: Dict[str, Any], provider: str, interactive: bool) -> Optional[str]:
    """Pick the API key: command line, then config/environment, then a hidden prompt."""
    if api_key:
        return api_key
    key = get_api_key(config)
    if key:
        return key
    if not interactive:
        return None
    print_warning(f"{provider} API key not found!")
    entered = click.prompt(f"Please enter your {provider} API key", hide_input=True, default="", show_default=False)
    return entered.strip() or None


def show_diff_preview(diff: str, max_lines: int = DIFF_PREVIEW_LINES) -> bool:
    """Print the first ``max_lines`` lines of ``diff`` and ask whether to continue."""
    lines = diff.splitlines()
    click.echo("\n" + click.style("Diff Preview:", fg="yellow", bold=True))
    click.echo("─" * 50)
    for line in lines[:max_lines]:
        if line.startswith("+") and not line.startswith("+++"):
            click.echo(click.style(line, fg="green"))
        elif line.startswith("-") and not line.startswith("---"):
            click.echo(click.style(line, fg="red"))
        elif line.startswith("@@"):
            click.echo(click.style(line, fg="cyan"))
        else:
            click.echo(line)
    if len(lines) > max_lines:
        click.echo(f"\n... {len(lines) - max_lines} more lines ...")
    click.echo("─" * 50)
    return click.confirm("Continue with commit generation?", default=True)


def prompt_action(message: CommitMessage) -> Tuple[str, str]:
    """Show the generated message and ask what to do with it.

    Returns
    -------
    Tuple[str, str]
        ``(action, text)`` where ``text`` is the message to commit for
        accept/edit and the rendered original otherwise.
    """
    rendered = message.render_full()
    click.echo("\n" + click.style("Generated Commit Message:", fg="green", bold=True))
    click.echo("─" * 50)
    click.echo(click.style(rendered, fg="cyan"))
    click.echo("─" * 50)
    click.echo("   A = Accept and commit | E = Edit message | R = Regenerate | C = Cancel")

    choice = click.prompt(
        "   Choose action",
        type=click.Choice(["A", "E", "R", "C", "a", "e", "r", "c"], case_sensitive=False),
        default="A",
        show_choices=False,
        show_default=True,
    ).strip().lower()
    action = _ACTION_KEYS[choice]

    if action == ACTION_EDIT:
        edited = click.edit(rendered)
        if edited is None or not edited.strip():
            print_warning("Empty or unchanged message, using original")
            return action, rendered
        return action, edited.strip()
    return action, rendered


def report_generation_error(exc: GenerationError, debug: bool) -> None:
    print_error(str(exc))
    if isinstance(exc, ParseError):
        print_info("Run the command again to regenerate the message.", indent=1)
    if debug and exc.detail:
        print_debug_block("Error details", exc.detail)
    elif exc.detail:
        print_info("Re-run with --debug to see the raw response.", indent=1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@click.group(invoke_without_command=True)
@click.option("--path", "-p", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="Path to check (default: current directory).")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="ai-commit")
@click.pass_context
def main(ctx: click.Context, path: Optional[Path], verbose: bool) -> None:
    """AI-powered Conventional Commits messages for Git repositories."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["path"] = path or Path.cwd()
    ctx.obj["verbose"] = verbose
    if ctx.invoked_subcommand is None:
        ctx.invoke(status)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Check repository status (default)."""
    path: Path = ctx.obj["path"]
    verbose: bool = ctx.obj["verbose"]
    client = open_repo(path)

    click.echo(f"{click.style('Checking:', bold=True)} {path}\n")
    click.echo(click.style("Git repository detected", fg="green", bold=True) + " ✓")

    try:
        repo_status = client.get_status()
        branch = client.get_branch_info()
    except GitError as exc:
        print_error(f"Git error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if repo_status.is_clean:
        click.echo(click.style("Working tree clean", fg="green", bold=True) + " ✓")
        click.echo("All changes have been committed.")
    else:
        click.echo(click.style("Uncommitted changes detected", fg="yellow", bold=True) + " ✗\n")
        sections = [
            ("Modified files", "M", "yellow", repo_status.modified_files),
            ("New files", "A", "green", repo_status.new_files),
            ("Deleted files", "D", "red", repo_status.deleted_files),
            ("Renamed files", "R", "blue", repo_status.renamed_files),
        ]
        for title, marker, color, files in sections:
            if not files:
                continue
            click.echo(click.style(title, fg=color) + ":")
            for file in files:
                click.echo(f"  {click.style(marker, fg=color)} {file}")
            click.echo("")
        total = click.style(str(repo_status.total_changes()), fg="yellow")
        click.echo(f"{click.style('Total uncommitted changes', bold=True)}: {total}")

        if verbose:
            click.echo("")
            click.echo(click.style("Tip: Use 'git add .' to stage all changes", fg="cyan"))
            click.echo(click.style("     Use 'ai-commit commit' to generate an AI commit message", fg="cyan"))

    click.echo("")
    if branch.is_unborn:
        click.echo(f"{click.style('Branch', fg='yellow', bold=True)}: No commits yet (unborn branch)")
    elif branch.is_detached:
        click.echo(f"{click.style('HEAD state', fg='yellow', bold=True)}: detached")
    elif branch.name:
        click.echo(f"{click.style('Current branch', bold=True)}: {click.style(branch.name, fg='cyan')}")
        tracking = branch.tracking_info
        if tracking is not None:
            click.echo(f"{click.style('Tracking', bold=True)}: {click.style(tracking.upstream, fg='cyan')}")
            parts = []
            if tracking.ahead:
                parts.append(click.style(f"{tracking.ahead} ahead", fg="green"))
            if tracking.behind:
                parts.append(click.style(f"{tracking.behind} behind", fg="yellow"))
            if parts:
                click.echo(f"{click.style('Status', bold=True)}: {', '.join(parts)}")


@main.command()
@click.option("--staged", is_flag=True, help="Show staged changes only.")
@click.pass_context
def diff(ctx: click.Context, staged: bool) -> None:
    """Show git diff."""
    client = open_repo(ctx.obj["path"])
    try:
        if staged:
            click.echo(click.style("Showing staged changes:", fg="green", bold=True))
            text = client.get_diff(staged=True)
        else:
            click.echo(click.style("Showing all changes:", fg="green", bold=True))
            text = client.get_combined_diff()
    except GitError as exc:
        print_error(f"Git error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if not text.strip():
        print_warning("No changes to show")
    else:
        click.echo(text)


@main.command()
@click.option("--local", is_flag=True, help="Create .ai-commit.json in the current directory.")
@click.option("--force", is_flag=True, help="Overwrite an existing config file.")
@click.pass_context
def init(ctx: click.Context, local: bool, force: bool) -> None:
    """Create a default configuration file."""
    try:
        path = init_config(local=local, force=force, cwd=ctx.obj["path"])
    except ConfigError as exc:
        print_error(str(exc))
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)

    print_success(f"Configuration file created at: {path}")
    click.echo("")
    click.echo(click.style("Next steps:", bold=True))
    click.echo('  1. Edit the config file to set "provider" ("openai" or "anthropic") and "model"')
    click.echo('  2. Set "base_url" to use a proxy or compatible server (optional)')
    click.echo("  3. Export your API key in the variable named by \"api_key_env\", e.g.")
    click.echo('     export OPENAI_API_KEY="your-api-key"')
    click.echo('     export ANTHROPIC_API_KEY="your-api-key"')


@main.command()
@click.option("--api-key", default=None, help="API key for the AI service (or set it via config/env).")
@click.option("--provider", default=None, help="AI provider: openai or anthropic (overrides config).")
@click.option("--model", default=None, help="AI model to use (overrides config).")
@click.option("--base-url", default=None, help="Custom API endpoint (overrides config).")
@click.option("--auto", is_flag=True, help="Commit without confirmation.")
@click.option("--show-diff", is_flag=True, help="Preview the diff before generating.")
@click.option("--debug", is_flag=True, help="Show the prompt, raw AI response and error details.")
@click.pass_context
def commit(
    ctx: click.Context,
    api_key: Optional[str],
    provider: Optional[str],
    model: Optional[str],
    base_url: Optional[str],
    auto: bool,
    show_diff: bool,
    debug: bool,
) -> None:
    """Generate a commit message using AI and commit all changes."""
    if debug:
        configure_logging(True)
    client = open_repo(ctx.obj["path"])

    try:
        config = load_config(client.repo_root)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)

    try:
        repo_status = client.get_status()
        if repo_status.is_clean:
            print_info("No changes to commit")
            raise click.exceptions.Exit(EXIT_NO_CHANGES)
        diff_text = client.get_combined_diff()
        if not diff_text.strip():
            print_info("No changes detected")
            raise click.exceptions.Exit(EXIT_NO_CHANGES)
        branch = client.get_branch_info()
    except GitError as exc:
        print_error(f"Git error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if show_diff and not show_diff_preview(diff_text):
        print_info("Commit generation cancelled")
        raise click.exceptions.Exit(EXIT_DECLINED)

    provider_name = provider or config["provider"]
    try:
        Provider.parse(provider_name)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
    key = resolve_api_key(api_key, config, provider_name, interactive=not auto)
    context = build_context(repo_status, branch, diff_text)

    try:
        llm = create_client(
            provider_name,
            key,
            model or config["model"],
            base_url or config.get("base_url"),
        )
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)

    generator = CommitMessageGenerator(llm)
    try:
        while True:
            with ProgressIndicator("Generating commit message with AI"):
                message = generator.generate_commit_message(diff_text, context, debug=debug)
            if auto:
                action, text = ACTION_ACCEPT, message.render_full()
            else:
                action, text = prompt_action(message)
            if action != ACTION_REGENERATE:
                break
            print_info("Regenerating commit message")
    except TransportError as exc:
        report_generation_error(exc, debug)
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)
    except ParseError as exc:
        report_generation_error(exc, debug)
        raise click.exceptions.Exit(EXIT_PARSE_FAILURE)
    except GenerationError as exc:
        report_generation_error(exc, debug)
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
    finally:
        llm.close()

    if action == ACTION_CANCEL:
        print_info("Commit cancelled")
        raise click.exceptions.Exit(EXIT_DECLINED)

    try:
        client.stage_all()
        client.commit(text)
    except GitError as exc:
        print_error(f"Git commit failed: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)

    if action == ACTION_EDIT:
        print_success("Changes committed with edited message!")
    else:
        print_success("Changes committed successfully!")
