"""Command-line interface for ctxopt."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path

import click

from ctxopt import __version__
from ctxopt.config import (
    ProjectConfig,
    find_project_root,
    get_config_value,
    load_config,
    save_config,
    set_config_value,
)
from ctxopt.exceptions import CtxOptError
from ctxopt.ui.console import Console

console = Console()

_COMPLEXITY_CHOICES = ["auto", "trivial", "simple", "moderate", "complex"]


def _get_project_root(path: str | None = None) -> Path:
    """Find the project root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        console.error(
            "No ctxopt project found. Run 'ctxopt init' first, "
            "or specify a path with --path."
        )
        sys.exit(1)
    return root


def _load_config(root: Path) -> ProjectConfig:
    try:
        return load_config(root)
    except CtxOptError as e:
        console.error(str(e))
        sys.exit(1)


def _load_files(root: Path, config: ProjectConfig) -> dict[str, str]:
    from ctxopt.project import load_project_files

    return load_project_files(root, config)


def _create_provider(config: ProjectConfig):
    from ctxopt.embeddings.provider import EmbeddingProvider

    try:
        return EmbeddingProvider.from_config(config.embedding)
    except (CtxOptError, ValueError) as e:
        console.error(str(e))
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="ctxopt")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """ctxopt - budgeted context selection for code-generation agents."""
    if verbose:
        from rich.console import Console as RichConsole
        from rich.logging import RichHandler

        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=RichConsole(stderr=True), show_path=False)],
        )


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--provider", default=None, help="Embedding provider (local, openai, http).")
@click.option("--model", default=None, help="Embedding model name.")
def init(path: str | None, provider: str | None, model: str | None):
    """Initialize ctxopt for a project directory."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    console.banner()
    console.info(f"Initializing ctxopt for: {root}")

    config = _load_config(root)
    config.name = root.name
    config.root_path = str(root)

    if provider:
        config.embedding.provider = provider
    if model:
        config.embedding.model = model

    save_config(root, config)
    console.success("Configuration saved")

    files = _load_files(root, config)
    console.info(f"{len(files)} files would be considered for context selection")


# =========================================================================
# Context Optimization
# =========================================================================

@main.command()
@click.argument("query")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--max-tokens", "-b", default=None, type=int, help="Token budget (default: from config).")
@click.option(
    "--complexity", "-c",
    type=click.Choice(_COMPLEXITY_CHOICES),
    default="moderate",
    help="Complexity tier; 'auto' classifies the query (default: moderate).",
)
@click.option("--embeddings/--no-embeddings", default=True, help="Re-score with embeddings.")
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.option("--render", "render_context", is_flag=True, help="Print the prompt-ready context.")
def optimize(
    query: str, path: str | None, max_tokens: int | None, complexity: str,
    embeddings: bool, output_format: str, render_context: bool,
):
    """Select the files (or chunks) an agent should see for QUERY.

    Examples:

        ctxopt optimize "make the header sticky"

        ctxopt optimize "add a contact page" --complexity auto --max-tokens 8000

        ctxopt optimize "fix Header.tsx" --no-embeddings --format json
    """
    from ctxopt.context.chunker import Chunker
    from ctxopt.context.optimizer import ContextOptimizer, OptimizeOptions

    root = _get_project_root(path)
    config = _load_config(root)
    files = _load_files(root, config)

    optimizer = ContextOptimizer(
        config=config.optimizer,
        chunker=Chunker(config.chunker),
        embeddings=_create_provider(config),
    )
    options = OptimizeOptions(
        max_tokens=max_tokens,
        use_embeddings=embeddings,
        complexity=complexity,
    )
    context = asyncio.run(optimizer.optimize(query, files, options))

    if output_format == "json":
        click.echo(json.dumps(context.to_payload(), indent=2))
        return

    console.show_context(context)
    if render_context:
        console.console.print()
        click.echo(context.render())


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--path", "-p", default=None, help="Path to the project root (for chunker config).")
@click.option("--show", "show_content", is_flag=True, help="Print each chunk's content.")
def chunk(file: str, path: str | None, show_content: bool):
    """Show how FILE is split into chunks."""
    from ctxopt.config import ChunkerConfig
    from ctxopt.context.chunker import Chunker

    root = Path(path).resolve() if path else find_project_root()
    chunker_config = _load_config(root).chunker if root else ChunkerConfig()

    file_path = Path(file).resolve()
    try:
        label = file_path.relative_to(root).as_posix() if root else file_path.name
    except ValueError:
        label = file_path.name
    content = file_path.read_text(encoding="utf-8", errors="replace")
    chunks = Chunker(chunker_config).chunk_file(label, content)

    console.show_chunks(chunks, title=f"Chunks of {file_path.name}")
    if show_content:
        language = file_path.suffix.lstrip(".") or "text"
        for c in chunks:
            console.console.print(f"\n[bold]{c.id}[/bold]")
            console.code(c.content, language)


@main.command()
@click.argument("query")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--top-k", "-k", default=5, type=int, help="Number of results (default: 5).")
def similar(query: str, path: str | None, top_k: int):
    """Rank project files by embedding similarity to QUERY."""
    root = _get_project_root(path)
    config = _load_config(root)
    files = _load_files(root, config)
    if not files:
        console.warning("No files found.")
        return

    provider = _create_provider(config)
    paths = list(files)
    preview = config.optimizer.preview_chars
    texts = [f"{p}\n{files[p][:preview]}" for p in paths]
    results = asyncio.run(provider.find_similar(query, texts, top_k=top_k))
    console.show_similar(results, paths)


@main.command()
@click.argument("query")
@click.option("--path", "-p", default=None, help="Path to the project root.")
def classify(query: str, path: str | None):
    """Estimate the complexity tier of QUERY."""
    from ctxopt.search.classifier import ComplexityClassifier

    root = Path(path).resolve() if path else find_project_root()
    files = _load_files(root, _load_config(root)) if root else None

    analysis = ComplexityClassifier().classify(query, files)
    console.show_complexity(analysis)


@main.command()
@click.argument("file")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--max-files", "-n", default=15, type=int, help="Maximum files to list (default: 15).")
@click.option("--depth", "-d", default=2, type=int, help="Import hops to follow (default: 2).")
def deps(file: str, path: str | None, max_files: int, depth: int):
    """List files related to FILE through imports."""
    from ctxopt.graph.dependencies import DependencyGraph

    root = _get_project_root(path)
    config = _load_config(root)
    files = _load_files(root, config)

    target = Path(file).as_posix()
    if target not in files:
        console.error(f"File not found in project: {file}")
        sys.exit(1)

    graph = DependencyGraph()
    graph.build(files)
    related = graph.related_files([target], max_files=max_files, depth=depth)
    console.show_related(target, [(p, graph.importance(p)) for p in related])


# =========================================================================
# Config Management
# =========================================================================

@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage ctxopt configuration."""
    root = _get_project_root(path)
    config = _load_config(root)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: ctxopt config get <key>")
            sys.exit(1)
        try:
            data = get_config_value(config, key)
        except KeyError:
            console.error(f"Unknown key: {key}")
            sys.exit(1)
        console.console.print(f"{key} = {data}")
    elif action == "set":
        if not key or value is None:
            console.error("Usage: ctxopt config set <key> <value>")
            sys.exit(1)
        try:
            # Try to parse as JSON for non-string values
            try:
                parsed_value = json.loads(value)
            except json.JSONDecodeError:
                parsed_value = value

            config = set_config_value(config, key, parsed_value)
            save_config(root, config)
            console.success(f"Set {key} = {parsed_value}")
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)
        except ValueError as e:
            console.error(f"Invalid value for {key}: {e}")
            sys.exit(1)


if __name__ == "__main__":
    main()
