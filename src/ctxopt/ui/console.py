"""Rich-powered console output for ctxopt."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from ctxopt import __version__
from ctxopt.context.models import Chunk, OptimizedContext, TokenEstimator
from ctxopt.embeddings.base import SimilarityResult
from ctxopt.search.classifier import ComplexityAnalysis

_COMPLEXITY_COLORS = {
    "trivial": "green",
    "simple": "cyan",
    "moderate": "yellow",
    "complex": "red",
}


class Console:
    """Terminal output for ctxopt using Rich."""

    def __init__(self) -> None:
        self.console = RichConsole()

    def banner(self) -> None:
        self.console.print(
            Panel(
                f"[bold cyan]ctxopt[/bold cyan] [dim]v{__version__}[/dim]\n"
                "[dim]Budgeted context selection for code-generation agents[/dim]",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def code(self, text: str, language: str = "tsx") -> None:
        """Render syntax-highlighted code."""
        self.console.print(Syntax(text, language, theme="monokai", line_numbers=True))

    def show_context(self, context: OptimizedContext) -> None:
        """Display an optimized context summary with its selected files."""
        pct = context.budget_used_pct
        budget_color = "green" if pct <= 80 else "yellow" if pct <= 100 else "red"

        self.console.print(
            Panel(
                f"[bold]Query:[/bold] {context.query}\n"
                f"[bold]Strategy:[/bold] {context.strategy.value}\n"
                f"[bold]Complexity:[/bold] {context.complexity.value}\n"
                f"[bold]Tokens:[/bold] [{budget_color}]{context.total_tokens:,} / "
                f"{context.token_budget:,} ({pct:.0f}%)[/{budget_color}]\n"
                f"[bold]Files:[/bold] {len(context.relevant_files)} of {context.files_considered}\n"
                f"[bold]Embeddings:[/bold] {'yes' if context.embeddings_used else 'no'}\n"
                f"[bold]Time:[/bold] {context.assembly_time_ms:.1f}ms",
                title="[bold]Optimized Context[/bold]",
                border_style="cyan",
            )
        )

        if not context.relevant_files:
            self.warning("No file scored high enough to be selected.")
            return

        table = Table(title="Selected Files", border_style="cyan")
        table.add_column("File", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Tokens", justify="right", style="dim")
        for f in context.relevant_files:
            table.add_row(f.path, f"{f.score:.1f}", str(TokenEstimator.estimate(f.content)))
        self.console.print(table)

        if context.chunks:
            self.show_chunks(context.chunks, title="Selected Chunks")

    def show_chunks(self, chunks: list[Chunk], title: str = "Chunks") -> None:
        table = Table(title=title, border_style="cyan")
        table.add_column("ID", style="bold")
        table.add_column("Kind")
        table.add_column("Lines", justify="right")
        table.add_column("Importance", justify="right", style="cyan")
        table.add_column("Chars", justify="right", style="dim")
        for c in chunks:
            table.add_row(
                c.id, c.kind.value, f"{c.start_line}-{c.end_line}",
                str(c.importance), str(len(c.content)),
            )
        self.console.print(table)

    def show_similar(self, results: list[SimilarityResult], labels: list[str]) -> None:
        """Display similarity results; `labels` maps result indices to file paths."""
        table = Table(title="Most Similar Files", border_style="cyan")
        table.add_column("#", justify="right", style="dim")
        table.add_column("File", style="cyan")
        table.add_column("Similarity", justify="right")
        for rank, r in enumerate(results, start=1):
            table.add_row(str(rank), labels[r.index], f"{r.score:.3f}")
        self.console.print(table)

    def show_complexity(self, analysis: ComplexityAnalysis) -> None:
        value = analysis.complexity.value
        color = _COMPLEXITY_COLORS.get(value, "white")
        self.console.print(
            Panel(
                f"[bold]Complexity:[/bold] [{color}]{value}[/{color}]\n"
                f"[bold]Score:[/bold] {analysis.score}\n"
                f"[bold]Confidence:[/bold] {analysis.confidence:.0f}%\n"
                f"[bold]Reasons:[/bold] {analysis.reasoning}",
                title="[bold]Complexity Analysis[/bold]",
                border_style=color,
            )
        )

    def show_related(self, target: str, related: list[tuple[str, int]]) -> None:
        """Display files related to `target` with their graph importance."""
        table = Table(title=f"Files related to {target}", border_style="cyan")
        table.add_column("File", style="cyan")
        table.add_column("Importance", justify="right")
        for path, importance in related:
            style = "bold" if path == target else ""
            table.add_row(f"[{style}]{path}[/{style}]" if style else path, str(importance))
        self.console.print(table)
