# cursed_reviewer/cli.py
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.theme import Theme

from . import DEFAULT_MIN_SEVERITY, __version__
from .config import ReviewerConfig, load_config
from .diff_source import GitHubDiffSource
from .errors import CursedReviewerError, ScanRequestError
from .logging_utils import setup_logging
from .models import AnalysisResult, Finding, ScanReport, ScanRequest, Severity
from .pipeline import ReviewPipeline, build_pipeline
from .scan_service import ScanService

# --- Initialize Rich Console ---
custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "green",
    "path": "dim blue",
    "minor": "yellow",
    "moderate": "dark_orange",
    "critical": "bold red",
})
console = Console(theme=custom_theme)

SEVERITY_CHOICE = click.Choice([s.value for s in Severity], case_sensitive=False)


def _read_source(source: str) -> str:
    if source == "-":
        return click.get_text_stream("stdin").read()
    return Path(source).read_text(encoding="utf-8")


def _load_source(ctx: click.Context, source: str) -> str:
    try:
        return _read_source(source)
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[error]Cannot read {source}:[/error] {e}")
        ctx.exit(1)


def _pipeline(ctx: click.Context) -> ReviewPipeline:
    return build_pipeline(ctx.obj["config"])


def _findings_table(findings, title: str) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("LINE", justify="right")
    table.add_column("COL", justify="right", style="dim")
    table.add_column("SEVERITY")
    table.add_column("RULE", style="info")
    table.add_column("MESSAGE")
    for finding in findings:
        sev = finding.severity.value
        table.add_row(
            str(finding.line),
            str(finding.column),
            f"[{sev}]{sev}[/{sev}]",
            finding.rule_id,
            finding.message,
        )
    return table


def _render_analysis(result: AnalysisResult, source: str, praise: Optional[str] = None) -> None:
    if not result.findings:
        console.print(f"[success]✨ No curses detected in {source} ({result.language}).[/success]")
        if praise:
            console.print(praise, style="success", markup=False)
        return
    console.print(_findings_table(result.findings, f"{source} ({result.language})"))
    if result.used_fallback:
        console.print("[warning]Generative analysis unavailable; showing rule-based findings.[/warning]")
    console.print(f"Curse level: [bold]{result.overall_score}[/bold]/100")


def _render_report(report: ScanReport) -> None:
    if report.issues:
        table = Table(title=report.message, show_header=True, header_style="bold magenta")
        table.add_column("LINE", justify="right")
        table.add_column("SEVERITY")
        table.add_column("MESSAGE")
        for issue in report.issues:
            sev = issue.finding.severity.value
            table.add_row(str(issue.finding.line), f"[{sev}]{sev}[/{sev}]", issue.demonic_message)
        console.print(table)
    else:
        console.print(f"[success]{report.message}[/success]")
    console.print(
        f"Curse level: [bold]{report.overall_curse_level}[/bold]/100 "
        f"[dim]({report.language}, {report.scan_duration_ms}ms)[/dim]"
    )


# --- Main CLI Group ---
@click.group(help="Cursed Reviewer: spooky code review findings and haunted patches.")
@click.option("--verbose", is_flag=True, default=False, help="Enable detailed logging.")
@click.option("--quiet", is_flag=True, default=False, help="Only log errors.")
@click.option("--log-json", is_flag=True, default=False, help="Emit logs as JSON lines.")
@click.option("--model", default=None, help="Override the generative model.")
@click.option("--deadline", type=click.FloatRange(min=0.0, min_open=True), default=None,
              help="Overall deadline in seconds for generative calls.")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, log_json: bool,
        model: Optional[str], deadline: Optional[float]) -> None:
    ctx.ensure_object(dict)
    if quiet:
        level = "ERROR"
    elif verbose:
        level = "DEBUG"
    else:
        level = "WARNING"
    setup_logging(level, structured=log_json)

    config: ReviewerConfig = load_config()
    overrides = {}
    if model:
        overrides["model"] = model
    if deadline is not None:
        overrides["deadline_seconds"] = deadline
    if overrides:
        config = config.model_copy(update=overrides)

    ctx.obj["config"] = config


@cli.command("scan")
@click.argument("source", type=click.Path(allow_dash=True))
@click.option("--language", default=None, help="Source language; detected when omitted.")
@click.option("--min-severity", type=SEVERITY_CHOICE, default=DEFAULT_MIN_SEVERITY, show_default=True,
              help="Drop findings below this severity.")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def scan(ctx: click.Context, source: str, language: Optional[str], min_severity: str, json_output: bool) -> None:
    """Analyze a source file (or '-' for stdin) and report its curses."""
    code = _load_source(ctx, source)

    filename = None if source == "-" else source
    pipeline = _pipeline(ctx)
    result = asyncio.run(pipeline.analyze(code, language, min_severity.lower(), filename))

    if json_output:
        console.print_json(data=result.model_dump(mode="json"))
        return
    praise = None if result.findings else asyncio.run(pipeline.oracle.conjure_positive_feedback())
    _render_analysis(result, "stdin" if source == "-" else source, praise)


@cli.command("patch")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--line", "line_number", type=click.IntRange(min=1), required=True,
              help="1-based line of the finding.")
@click.option("--message", required=True, help="Description of the issue to fix.")
@click.option("--rule-id", default="manual", show_default=True, help="Rule identifier of the finding.")
@click.option("--severity", type=SEVERITY_CHOICE, default="moderate", show_default=True)
@click.option("--output", type=click.Path(dir_okay=False), default=None,
              help="Write the corrected code to this file.")
@click.pass_context
def patch(ctx: click.Context, source: str, line_number: int, message: str, rule_id: str,
          severity: str, output: Optional[str]) -> None:
    """Generate a validated patch for a finding in SOURCE."""
    code = _load_source(ctx, source)
    finding = Finding(severity=Severity(severity.lower()), line=line_number, message=message, rule_id=rule_id)

    result = asyncio.run(_pipeline(ctx).synthesize_patch(finding, code))
    if result is None:
        console.print("[error]💀 No valid patch could be conjured for this finding.[/error]")
        ctx.exit(1)

    console.print(Panel(result.rationale, title="Rationale", border_style="magenta"))
    console.print(Syntax(result.corrected_code, ReviewPipeline.resolve_language(code, None, source), line_numbers=True))
    console.print(f"Confidence: [bold]{result.confidence:.2f}[/bold]")
    if output:
        Path(output).write_text(result.corrected_code, encoding="utf-8")
        console.print(f"[success]Patched code written to[/success] [path]{output}[/path]")


@cli.command("feedback")
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("--line", "line_number", type=click.IntRange(min=1), required=True,
              help="1-based line of the finding.")
@click.option("--message", required=True, help="Description of the issue.")
@click.option("--rule-id", default="manual", show_default=True, help="Rule identifier of the finding.")
@click.option("--severity", type=SEVERITY_CHOICE, default="moderate", show_default=True)
@click.pass_context
def feedback(ctx: click.Context, source: str, line_number: int, message: str, rule_id: str, severity: str) -> None:
    """Voice a finding in SOURCE through the demonic oracle."""
    lines = _load_source(ctx, source).splitlines()
    if line_number > len(lines):
        console.print(f"[error]{source} has only {len(lines)} lines.[/error]")
        ctx.exit(1)

    finding = Finding(
        severity=Severity(severity.lower()),
        line=line_number,
        message=message,
        rule_id=rule_id,
        context_snippet=lines[line_number - 1].strip(),
    )
    text = asyncio.run(_pipeline(ctx).oracle.conjure_feedback(finding))
    console.print(text, style=finding.severity.value, markup=False)


@cli.command("pr")
@click.argument("url")
@click.option("--min-severity", type=SEVERITY_CHOICE, default="moderate", show_default=True)
@click.option("--json", "json_output", is_flag=True, help="Output as JSON.")
@click.pass_context
def pr(ctx: click.Context, url: str, min_severity: str, json_output: bool) -> None:
    """Scan the changed lines of a GitHub pull request."""
    config: ReviewerConfig = ctx.obj["config"]
    service = ScanService(
        _pipeline(ctx),
        diff_source=GitHubDiffSource(token=config.github_token),
        payload_threshold=config.payload_threshold,
    )
    request = ScanRequest(type="pr", content=url, severity_level=Severity(min_severity.lower()))

    try:
        report = asyncio.run(service.submit(request))
    except ScanRequestError as e:
        console.print(f"[error]🕷️ {e.message}[/error] [dim]({e.code})[/dim]")
        ctx.exit(1)
    except CursedReviewerError as e:
        console.print(f"[error]Error:[/error] {e}")
        ctx.exit(1)

    if json_output:
        console.print_json(data=report.model_dump(mode="json"))
        return
    _render_report(report)


@cli.command("health")
@click.pass_context
def health(ctx: click.Context) -> None:
    """Check that the generative endpoint answers."""
    pipeline = _pipeline(ctx)
    healthy = asyncio.run(pipeline.oracle.check_health())
    if healthy:
        console.print(f"[success]The oracle answers ({pipeline.invoker.model}).[/success]")
        return
    console.print(f"[error]The oracle is silent ({pipeline.invoker.model}).[/error]")
    ctx.exit(1)


if __name__ == "__main__":
    cli()
