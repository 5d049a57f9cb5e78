"""
CLI interface for lore.

Usage:
    lore init --agent claude
    lore record -m "Add JWT auth" -t "Sessions don't survive restarts" -f src/auth.py
    lore explain src/auth.py
    lore search "jwt"
"""

import json
import os
import sys
from collections import Counter
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from . import __version__
from .config import resolve_store_root
from .errors import GitError, LoreError, NotARepositoryError, NotInitializedError
from .git import ChangeType, GitContext
from .hashing import hash_file
from .index import LoreIndex, merge_indexes
from .logging_config import configure_quiet_mode, enable_debug_mode
from .query import (
    apply_limit,
    create_snippet,
    filter_records,
    highlight_query,
    matching_rejected,
)
from .store import LoreStore
from .types import Record, normalize_path, parse_line_range, parse_rejected

# Number of files / entries shown in status summaries
STATUS_TOP_N = 5

# Configure quiet mode by default (suppress diagnostic output)
# Set LORE_VERBOSE=1 to enable debug mode via environment
if os.environ.get("LORE_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        typer.echo(f"lore {__version__}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_store_override: Optional[Path] = None


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="lore",
    help="Record and explain the reasoning behind code changes.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def _bold(text: str) -> str:
    return typer.style(text, bold=True)


def _dim(text: str) -> str:
    return typer.style(text, dim=True)


def _cyan(text: str) -> str:
    return typer.style(text, fg=typer.colors.CYAN)


def _yellow(text: str) -> str:
    return typer.style(text, fg=typer.colors.YELLOW)


def _info(message: str) -> None:
    typer.echo(f"{typer.style('Info:', fg=typer.colors.BLUE)} {message}")


def _error(message: str) -> None:
    typer.echo(f"{typer.style('Error:', fg=typer.colors.RED)} {message}", err=True)


def _records_json(records: list[Record]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2)


def _entries_word(count: int) -> str:
    return "entry" if count == 1 else "entries"


def _print_records(file_path: str, records: list[Record]) -> None:
    """Full display of records for one file."""
    typer.echo()
    typer.echo(_dim("═" * 60))
    typer.echo(f"{_bold('Lore for:')} {typer.style(file_path, fg=typer.colors.CYAN, bold=True)}")
    typer.echo(_dim("═" * 60))

    for i, record in enumerate(records):
        if i > 0:
            typer.echo(_dim("─" * 60))

        typer.echo()
        when = record.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")
        typer.echo(f"{_bold('Agent:')} {_yellow(record.agent_id)} {_dim('│')} {_dim(when)}")

        if record.commit_hash:
            typer.echo(f"{_bold('Commit:')} {_cyan(record.commit_hash[:8])}")

        if record.line_range is not None:
            start, end = record.line_range
            typer.echo(f"{_bold('Range:')} Lines {start}-{end}")

        typer.echo()
        typer.echo(typer.style("Intent:", bold=True, underline=True))
        typer.echo(record.intent)

        typer.echo()
        typer.echo(typer.style("Reasoning:", bold=True, underline=True))
        for line in record.reasoning_trace.splitlines():
            typer.echo(f"  {line}")

        if record.rejected_alternatives:
            typer.echo()
            typer.echo(typer.style("Rejected Alternatives:", bold=True, underline=True))
            for alt in record.rejected_alternatives:
                line = f"  {typer.style('✗', fg=typer.colors.RED)} {alt.name}"
                if alt.reason:
                    line += f" - {_dim(alt.reason)}"
                typer.echo(line)

        if record.tags:
            typer.echo()
            tags = ", ".join(typer.style(f"#{tag}", fg=typer.colors.MAGENTA) for tag in record.tags)
            typer.echo(f"{_bold('Tags:')} {tags}")

        typer.echo()

    typer.echo(_dim("═" * 60))
    if len(records) == 1:
        typer.echo(_dim("Tip: Use --all to see complete history"))


def _print_search_results(query: str, records: list[Record]) -> None:
    typer.echo()
    typer.echo(_dim("═" * 60))
    typer.echo(
        f"{_bold('Search:')} {typer.style(query, fg=typer.colors.CYAN, bold=True)} "
        f"({len(records)} results)"
    )
    typer.echo(_dim("═" * 60))

    for record in records:
        typer.echo()
        typer.echo(f"{_bold('File:')} {_cyan(record.target_file)}")
        when = record.timestamp.strftime("%Y-%m-%d %H:%M")
        typer.echo(f"{_bold('Agent:')} {_yellow(record.agent_id)} {_dim('│')} {_dim(when)}")
        typer.echo(f"{_bold('Intent:')} {record.intent}")

        snippet = create_snippet(record.reasoning_trace, query)
        if snippet:
            typer.echo(_dim("Reasoning snippet:"))
            typer.echo(f"  {highlight_query(snippet, query)}")

        rejected = matching_rejected(record, query)
        if rejected:
            typer.echo(_dim("Rejected alternatives:"))
            for alt in rejected:
                typer.echo(f"  {typer.style('✗', fg=typer.colors.RED)} {alt.name}")

        typer.echo(_dim("─" * 60))

    typer.echo()
    typer.echo(_dim("Tip: Use 'lore explain <file>' for full details"))


def _shorten_file(path: str) -> str:
    return f"...{path[-35:]}" if len(path) > 38 else path


def _shorten_agent(agent: str) -> str:
    return f"{agent[:10]}..." if len(agent) > 13 else agent


def _print_table(records: list[Record]) -> None:
    typer.echo()
    typer.echo(_dim("═" * 70))
    typer.echo(f"{_bold('Lore Entries')} ({len(records)} total)")
    typer.echo(_dim("═" * 70))
    typer.echo()

    # Pad before styling so escape codes don't break column alignment
    typer.echo(f"{_bold('FILE'.ljust(40))} {_bold('AGENT'.ljust(15))} {_bold('DATE')}")
    typer.echo(_dim("─" * 70))
    for record in records:
        typer.echo(
            f"{_cyan(_shorten_file(record.target_file).ljust(40))} "
            f"{_yellow(_shorten_agent(record.agent_id).ljust(15))} "
            f"{_dim(record.timestamp.strftime('%Y-%m-%d'))}"
        )

    typer.echo()
    typer.echo(_dim("─" * 70))
    typer.echo(_dim("Use 'lore explain <file>' to see full reasoning"))


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output as JSON"
    )
]


LimitOption = Annotated[
    Optional[int],
    typer.Option(
        "--limit", "-n",
        min=0,
        help="Maximum entries to show"
    )
]


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="LORE_STORE_PATH",
        help="Store root: the directory containing .lore/ (default: search upward)",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Record and explain the reasoning behind code changes."""


def _get_store() -> LoreStore:
    """Locate the store for a command that needs one, or exit with an error."""
    try:
        return LoreStore(resolve_store_root(_get_store_override()))
    except NotInitializedError as e:
        _error(str(e))
        raise typer.Exit(1)


def _find_store() -> Optional[LoreStore]:
    """Locate the store for a read-only command; None if there is none."""
    try:
        return LoreStore(resolve_store_root(_get_store_override()))
    except NotInitializedError:
        return None


def _not_initialized(as_json: bool) -> None:
    """Friendly output for read-only commands run outside a store."""
    if as_json:
        typer.echo("[]")
        return
    _info("Lore is not initialized here.")
    typer.echo()
    typer.echo(f"Initialize with: {_cyan('lore init')}")


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def init(
    path: Annotated[Optional[Path], typer.Option(
        "--path", "-p",
        help="Directory to initialize (default: current directory)"
    )] = None,
    agent: Annotated[Optional[str], typer.Option(
        "--agent", "-a",
        help="Default agent/author ID"
    )] = None,
):
    """
    Initialize a new Lore store.

    \b
    Examples:
        lore init                       # Store in the current directory
        lore init --agent claude        # Set the default agent id
    """
    root = path or _get_store_override() or Path.cwd()
    store = LoreStore(root)
    try:
        store.init(agent)
    except LoreError as e:
        _error(str(e))
        raise typer.Exit(1)

    typer.echo(f"{typer.style('✓', fg=typer.colors.GREEN)} Initialized Lore in {root}")
    typer.echo()
    typer.echo("Next steps:")
    typer.echo(f"  {_cyan('lore record')} Record reasoning for your code changes")
    typer.echo(f"  {_cyan('lore explain <file>')} Understand why code exists")
    typer.echo(f"  {_cyan('lore search <query>')} Search through reasoning history")


def _read_multiline(prompt: str) -> str:
    """Read lines from stdin until an empty line or EOF."""
    typer.echo(_cyan(prompt))
    lines = []
    for line in sys.stdin:
        line = line.rstrip("\r\n")
        if not line:
            break
        lines.append(line)
    return "\n".join(lines)


def _get_reasoning_trace(
    trace: Optional[str],
    trace_file: Optional[Path],
    from_stdin: bool,
) -> str:
    """Reasoning trace from the first available source, prompting as a last resort."""
    if trace is not None:
        return trace

    if trace_file is not None:
        try:
            return trace_file.read_text(encoding="utf-8")
        except OSError as e:
            _error(f"Cannot read trace file: {e}")
            raise typer.Exit(1)

    if from_stdin:
        typer.echo(_yellow("Reading reasoning trace from stdin (Ctrl+D to end):"), err=True)
        return sys.stdin.read()

    return _read_multiline("Enter reasoning trace (empty line to finish):")


def _files_from_git(store: LoreStore) -> Optional[tuple[Path, list[tuple[str, ChangeType]]]]:
    """Work tree and its changed files, minus deletions. None if nothing changed."""
    try:
        git = GitContext.open(store.root)
    except NotARepositoryError:
        _error("Not a git repository and no files specified.")
        typer.echo("Specify files with --file or initialize git", err=True)
        raise typer.Exit(1)

    try:
        changes = git.changed_files()
    except GitError:
        typer.echo(
            f"{_yellow('Warning:')} No changed files detected. "
            "Specify files with --file or make changes first.",
            err=True,
        )
        return None

    return git.workdir, [
        (c.path, c.change_type)
        for c in changes
        if c.change_type != ChangeType.DELETED
    ]


@app.command()
def record(
    message: Annotated[Optional[str], typer.Option(
        "--message", "-m",
        help="Brief description of intent/purpose"
    )] = None,
    trace: Annotated[Optional[str], typer.Option(
        "--trace", "-t",
        help="Full reasoning trace/chain-of-thought"
    )] = None,
    trace_file: Annotated[Optional[Path], typer.Option(
        "--trace-file",
        help="File containing the reasoning trace"
    )] = None,
    file: Annotated[Optional[list[str]], typer.Option(
        "--file", "-f",
        help="File to record (repeatable; default: changed files from git)"
    )] = None,
    agent: Annotated[Optional[str], typer.Option(
        "--agent", "-a",
        envvar="LORE_AGENT",
        help="Agent/author ID (overrides the store default)"
    )] = None,
    rejected: Annotated[Optional[list[str]], typer.Option(
        "--rejected", "-r",
        help="Rejected alternative as NAME or NAME=REASON (repeatable)"
    )] = None,
    tag: Annotated[Optional[list[str]], typer.Option(
        "--tag", "-T",
        help="Tag for categorization (repeatable)"
    )] = None,
    lines: Annotated[Optional[str], typer.Option(
        "--lines", "-l",
        help="Line range as START-END (e.g. 10-45)"
    )] = None,
    stdin: Annotated[bool, typer.Option(
        "--stdin",
        help="Read reasoning trace from stdin"
    )] = False,
):
    """
    Record reasoning for code changes.

    \b
    Examples:
        lore record -m "Add JWT auth" -t "..."            # All changed files (git)
        lore record -m "Fix race" -f src/pool.py -l 10-45  # One file, line range
        lore record -m "Pick argon2" -r "bcrypt=slower"    # Rejected alternative
        git log -1 --format=%B | lore record -m "..." --stdin
    """
    store = _get_store()

    line_range = None
    if lines is not None:
        try:
            line_range = parse_line_range(lines)
        except ValueError as e:
            _error(str(e))
            raise typer.Exit(1)

    agent_id = agent
    if not agent_id:
        try:
            agent_id = store.get_default_agent_id()
        except LoreError:
            agent_id = "unknown"

    if file:
        base_dir = store.root
        files_to_record = [(f, ChangeType.MODIFIED) for f in file]
    else:
        detected = _files_from_git(store)
        if detected is None:
            return
        base_dir, files_to_record = detected

    if not files_to_record:
        _info("No files to record reasoning for.")
        return

    reasoning_trace = _get_reasoning_trace(trace, trace_file, stdin)

    intent = message
    if intent is None:
        try:
            intent = typer.prompt("Enter intent/purpose (brief description)")
        except typer.Abort:
            intent = "No intent provided"

    rejected_alternatives = [parse_rejected(r) for r in rejected or []]

    commit_hash = None
    try:
        commit_hash = GitContext.open(store.root).head_commit()
    except GitError:
        pass

    recorded = 0
    try:
        for file_path, change_type in files_to_record:
            normalized = normalize_path(file_path)
            full_path = base_dir / normalized

            if not full_path.is_file():
                typer.echo(f"{_yellow('→')} Skipping {normalized} (file not found)")
                continue

            entry = Record.create(
                normalized,
                hash_file(full_path),
                agent_id,
                intent,
                reasoning_trace,
                line_range=line_range,
                commit_hash=commit_hash,
                rejected_alternatives=rejected_alternatives,
                tags=tag or [],
            )
            store.save_record(entry)

            typer.echo(
                f"{typer.style('✓', fg=typer.colors.GREEN)} Recorded reasoning for "
                f"{_cyan(normalized)} ({change_type})"
            )
            recorded += 1
    except LoreError as e:
        _error(str(e))
        raise typer.Exit(1)

    typer.echo()
    typer.echo(
        f"{typer.style(str(recorded), fg=typer.colors.GREEN)} {_entries_word(recorded)} recorded. "
        f"Use {_cyan('lore explain <file>')} to review."
    )


@app.command()
def explain(
    file: Annotated[str, typer.Argument(help="File to explain")],
    show_all: Annotated[bool, typer.Option(
        "--all", "-a",
        help="Show all history, not just the most recent entry"
    )] = False,
    output_json: JsonOption = False,
    limit: LimitOption = None,
):
    """
    Explain the reasoning behind a file.

    \b
    Examples:
        lore explain src/auth.py            # Most recent reasoning
        lore explain src/auth.py --all      # Complete history
        lore explain src/auth.py --json     # For scripts
    """
    store = _find_store()
    if store is None:
        _not_initialized(output_json)
        return

    normalized = normalize_path(file)
    try:
        records = store.get_records_for_file(normalized)
    except LoreError as e:
        _error(str(e))
        raise typer.Exit(1)

    if not records:
        if output_json:
            typer.echo("[]")
            return
        _info(f"No reasoning found for {_cyan(normalized)}")
        typer.echo()
        hint = f'lore record --file {file} -m "your message"'
        typer.echo(f"Record reasoning with: {_cyan(hint)}")
        return

    if limit is not None:
        records = apply_limit(records, limit)
    elif not show_all:
        records = records[:1]

    if output_json:
        typer.echo(_records_json(records))
    else:
        _print_records(normalized, records)


@app.command()
def search(
    query: Annotated[str, typer.Argument(
        help="Search query (matches intent, reasoning, rejected alternatives, tags)"
    )],
    output_json: JsonOption = False,
    limit: LimitOption = None,
    file_filter: Annotated[Optional[str], typer.Option(
        "--file", "-f",
        help="Only entries whose file path contains this text"
    )] = None,
    agent_filter: Annotated[Optional[str], typer.Option(
        "--agent", "-a",
        help="Only entries whose agent ID contains this text"
    )] = None,
):
    """
    Search through reasoning history.

    \b
    Examples:
        lore search jwt                     # Case-insensitive substring
        lore search cache -f src/db         # Restrict to matching paths
        lore search "" -a claude --json     # Everything by one agent
    """
    store = _find_store()
    if store is None:
        _not_initialized(output_json)
        return

    try:
        records = store.search(query)
    except LoreError as e:
        _error(str(e))
        raise typer.Exit(1)

    records = filter_records(records, file_filter=file_filter, agent_filter=agent_filter)
    records = apply_limit(records, limit)

    if output_json:
        typer.echo(_records_json(records))
        return

    if not records:
        _info(f"No entries found matching '{_cyan(query)}'")
        return

    _print_search_results(query, records)


@app.command("list")
def list_records(
    output_json: JsonOption = False,
    limit: LimitOption = None,
):
    """List all recorded entries, newest first."""
    store = _find_store()
    if store is None:
        _not_initialized(output_json)
        return

    try:
        records = apply_limit(store.get_all_records(), limit)
    except LoreError as e:
        _error(str(e))
        raise typer.Exit(1)

    if output_json:
        typer.echo(_records_json(records))
        return

    if not records:
        _info("No entries recorded yet.")
        typer.echo()
        hint = 'lore record -m "your message"'
        typer.echo(f"Record reasoning with: {_cyan(hint)}")
        return

    _print_table(records)


def _collect_status(store: LoreStore) -> dict:
    """Gather store and git statistics for `lore status`."""
    index = store.load_index()
    records = store.get_all_records()

    git_info = None
    try:
        git = GitContext.open(store.root)
    except NotARepositoryError:
        git = None
    if git is not None:
        head = None
        try:
            head = git.head_commit()
        except GitError:
            pass
        try:
            changed = git.changed_files()
        except GitError:
            changed = []
        git_info = {
            "head": head,
            "changed_without_reasoning": [
                c.path for c in changed if c.path not in index.files
            ],
        }

    most_documented = sorted(index.files.items(), key=lambda kv: len(kv[1]), reverse=True)
    contributors = Counter(r.agent_id for r in records)

    return {
        "root": str(store.root),
        "entry_count": index.entry_count,
        "files_tracked": len(index.files),
        "git": git_info,
        "most_documented": [
            {"file": path, "entries": len(ids)}
            for path, ids in most_documented[:STATUS_TOP_N]
        ],
        "contributors": dict(contributors.most_common()),
    }


@app.command()
def status(
    output_json: JsonOption = False,
):
    """Show Lore status for the current repository."""
    store = _find_store()
    if store is None:
        if output_json:
            typer.echo(json.dumps({"initialized": False}, indent=2))
            return
        typer.echo(f"{_yellow('Status:')} Lore is not initialized")
        typer.echo()
        typer.echo(f"Initialize with: {_cyan('lore init')}")
        return

    try:
        info = _collect_status(store)
    except LoreError as e:
        _error(str(e))
        raise typer.Exit(1)

    if output_json:
        typer.echo(json.dumps({"initialized": True, **info}, indent=2))
        return

    typer.echo()
    typer.echo(_dim("═" * 50))
    typer.echo(_bold("Lore Status"))
    typer.echo(_dim("═" * 50))
    typer.echo()
    typer.echo(f"{_bold('Repository:')} {info['root']}")
    typer.echo(f"{_bold('Total entries:')} {typer.style(str(info['entry_count']), fg=typer.colors.GREEN)}")
    typer.echo(f"{_bold('Files tracked:')} {typer.style(str(info['files_tracked']), fg=typer.colors.GREEN)}")

    git_info = info["git"]
    if git_info is None:
        typer.echo(f"{_bold('Git:')} {_dim('N/A')} (Git not available)")
    else:
        if git_info["head"]:
            typer.echo(
                f"{_bold('Git HEAD:')} {_cyan(git_info['head'][:8])} "
                f"({typer.style('tracking enabled', fg=typer.colors.GREEN)})"
            )
        missing = git_info["changed_without_reasoning"]
        if missing:
            typer.echo()
            typer.echo(typer.style("Changed files without reasoning:", fg=typer.colors.YELLOW, bold=True))
            for path in missing[:STATUS_TOP_N]:
                typer.echo(f"  {_yellow('→')} {path}")
            if len(missing) > STATUS_TOP_N:
                typer.echo(f"  {_yellow('→')} {len(missing) - STATUS_TOP_N} more...")
            typer.echo()
            typer.echo(_dim("Consider running 'lore record' to capture your reasoning"))

    if info["most_documented"]:
        typer.echo()
        typer.echo(_bold("Most documented files:"))
        for item in info["most_documented"]:
            typer.echo(f"  {_cyan(item['file'])} ({item['entries']} {_entries_word(item['entries'])})")

    if info["contributors"]:
        typer.echo()
        typer.echo(_bold("Contributors:"))
        for agent_id, count in info["contributors"].items():
            typer.echo(f"  {_yellow(agent_id)} ({count} {_entries_word(count)})")

    typer.echo()
    typer.echo(_dim("═" * 50))


@app.command()
def reindex():
    """Rebuild index.json from the entry files (repairs lost index updates)."""
    store = _get_store()
    try:
        index = store.rebuild_index()
    except LoreError as e:
        _error(str(e))
        raise typer.Exit(1)
    typer.echo(
        f"{typer.style('✓', fg=typer.colors.GREEN)} Rebuilt index: "
        f"{index.entry_count} {_entries_word(index.entry_count)} across {len(index.files)} files"
    )


def _load_index_lenient(path: Path) -> LoreIndex:
    """Read an index file for merging; unreadable input counts as empty."""
    try:
        return LoreIndex.from_dict(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError) as e:
        typer.echo(f"{_yellow('Warning:')} Treating {path} as empty: {e}", err=True)
        return LoreIndex()


@app.command("merge-index", hidden=True)
def merge_index(
    base: Annotated[Path, typer.Argument(help="Common ancestor version (%O)")],
    ours: Annotated[Path, typer.Argument(help="Current branch version (%A), overwritten")],
    theirs: Annotated[Path, typer.Argument(help="Other branch version (%B)")],
):
    """
    Git merge driver for .lore/index.json.

    \b
    Setup:
        git config merge.lore-index.driver "lore merge-index %O %A %B"
        echo ".lore/index.json merge=lore-index" >> .gitattributes
    """
    merged = merge_indexes(_load_index_lenient(ours), _load_index_lenient(theirs))
    try:
        ours.write_text(json.dumps(merged.to_dict(), indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        _error(f"Cannot write {ours}: {e}")
        raise typer.Exit(1)
    typer.echo(
        f"✓ Merged Lore index.json: {merged.entry_count} total entries "
        f"across {len(merged.files)} files",
        err=True,
    )


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="lore CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
