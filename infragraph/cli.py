"""
infragraph CLI entry point.
"""
import json
import os
import sys
from typing import Dict, List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from infragraph import __version__
from infragraph.config import ConfigError, ProjectConfig, load_config
from infragraph.detect import detect_format
from infragraph.exceptions import InfragraphError, ParseError
from infragraph.graph.builder import build_graph
from infragraph.models.graph import GraphResult
from infragraph.models.resource import CloudResource
from infragraph.parsers import cloudformation, hcl, plan, tfstate
from infragraph.providers import (
    PROVIDERS,
    ProviderConfig,
    detect_provider,
    detect_provider_from_types,
    get_provider,
)
from infragraph.reporters import json_reporter, markdown

console = Console(stderr=True)

_BANNER = r"""
  _        __                                 _
 (_)_ __  / _|_ __ __ _  __ _ _ __ __ _ _ __ | |__
 | | '_ \| |_| '__/ _` |/ _` | '__/ _` | '_ \| '_ \
 | | | | |  _| | | (_| | (_| | | | (_| | |_) | | | |
 |_|_| |_|_| |_|  \__,_|\__, |_|  \__,_| .__/|_| |_|
                        |___/          |_|
"""


def _print_banner(no_color: bool = False) -> None:
    c = Console(stderr=True, no_color=no_color)
    c.print(f"[bold cyan]{_BANNER}[/bold cyan]")
    c.print(f"  [dim]v{__version__}[/dim]\n")


def _collect_files(paths: Tuple[str, ...]) -> List[str]:
    """Expand directories into file paths."""
    files = []
    for p in paths:
        if os.path.isfile(p):
            files.append(p)
        elif os.path.isdir(p):
            for root, _, fnames in sorted(os.walk(p)):
                for fname in sorted(fnames):
                    files.append(os.path.join(root, fname))
        else:
            console.print(f"[yellow]Warning:[/yellow] '{p}' does not exist, skipping.")
    return files


class _Collected:
    def __init__(self) -> None:
        self.resources: List[CloudResource] = []
        self.warnings: List[str] = []
        self.actions: Dict[str, str] = {}
        self._seen = set()

    def add(self, resources: List[CloudResource], warnings: List[str], source: str) -> None:
        self.warnings.extend(warnings)
        for r in resources:
            if r.id in self._seen:
                self.warnings.append(f"Duplicate resource id {r.id} in {source}, skipped")
                continue
            self._seen.add(r.id)
            self.resources.append(r)


def _read(fp: str) -> str:
    try:
        with open(fp, encoding="utf-8") as fh:
            return fh.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"could not read {fp}: {exc}") from exc


def _parse_files(
    file_paths: List[str], fixed: Optional[ProviderConfig], project: ProjectConfig
) -> _Collected:
    collected = _Collected()
    tf_files: Dict[str, str] = {}

    for fp in file_paths:
        fmt = detect_format(fp)
        if fmt == "hcl":
            tf_files[fp] = _read(fp)
        elif fmt == "tfstate":
            doc = tfstate.parse_tfstate(_read(fp))
            provider = project.apply(fixed or detect_provider(doc))
            collected.add(*tfstate.extract_deployed_state(doc, provider), fp)
        elif fmt == "plan":
            doc = plan.parse_plan(_read(fp))
            provider = project.apply(fixed or detect_provider_from_types(
                rc.get("type", "") for rc in doc["resource_changes"] if isinstance(rc, dict)
            ))
            resources, actions, warnings = plan.extract_planned_change(doc, provider)
            collected.add(resources, warnings, fp)
            collected.actions.update((k, v.value) for k, v in actions.items())
        elif fmt == "cloudformation":
            template = cloudformation.parse_template(_read(fp))
            provider = project.apply(fixed or get_provider("aws"))
            collected.add(*cloudformation.extract_template(template, provider), fp)
        else:
            console.print(f"[dim]Skipping unsupported file:[/dim] {fp}")

    # all .tf files form one configuration
    if tf_files:
        tree = hcl.parse_sources(tf_files)
        provider = project.apply(fixed or detect_provider_from_types(tree))
        collected.add(*hcl.extract_tree(tree, provider), ", ".join(tf_files))

    return collected


def _load_project(config_path: Optional[str], stderr: Console) -> ProjectConfig:
    try:
        project = load_config(config_path)
    except ConfigError as exc:
        stderr.print(f"[yellow]Warning:[/yellow] ignoring configuration: {exc}")
        return ProjectConfig()
    return project or ProjectConfig()


def _print_summary_table(result: GraphResult, no_color: bool) -> None:
    """Print a rich summary table to stderr."""
    tbl = Table(title="Resource Summary", show_header=True, header_style="bold")
    tbl.add_column("Resource", width=40)
    tbl.add_column("Type", width=30)
    tbl.add_column("Category", style="dim", width=15)
    tbl.add_column("Parent")

    for n in result.nodes:
        action = result.actions.get(n.id)
        name = f"{n.id} ({action})" if action else n.id
        tbl.add_row(name, n.resource.type, n.render_category, n.parent or "")

    Console(stderr=True, no_color=no_color).print(tbl)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.version_option(__version__)
@click.pass_context
def cli(ctx):
    """infragraph: build a resource graph from Terraform and CloudFormation."""
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit()


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path())
@click.option(
    "--provider",
    type=click.Choice(["auto"] + list(PROVIDERS), case_sensitive=False),
    default="auto",
    show_default=True,
    help="Cloud provider; 'auto' detects it from resource types.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["json", "markdown"], case_sensitive=False),
    default="json",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--output", "-o",
    type=click.Path(),
    default=None,
    help="Write report to this file (default: stdout).",
)
@click.option(
    "--summary",
    is_flag=True,
    default=False,
    help="Print terminal summary table only, do not write a full report.",
)
@click.option(
    "--config", "config_path",
    type=click.Path(),
    default=None,
    help="Project configuration file (default: ./infragraph.yaml if present).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable rich terminal color output.",
)
def graph(
    paths: Tuple[str, ...],
    provider: str,
    output_format: str,
    output: Optional[str],
    summary: bool,
    config_path: Optional[str],
    no_color: bool,
) -> None:
    """
    Build the resource graph for IaC files or directories.

    PATHS can be tfstate, plan JSON, .tf or CloudFormation files, or directories.
    """
    _print_banner(no_color)
    stderr = Console(stderr=True, no_color=no_color)
    source_label = ", ".join(paths)

    project = _load_project(config_path, stderr)
    provider_id = provider.lower()
    if provider_id == "auto" and project.provider:
        provider_id = project.provider

    try:
        fixed = None if provider_id == "auto" else get_provider(provider_id)
    except InfragraphError as exc:
        stderr.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    with stderr.status("[bold]Collecting files…"):
        file_paths = _collect_files(paths)

    if not file_paths:
        stderr.print("[red]No files found.[/red]")
        sys.exit(2)

    with stderr.status(f"[bold]Parsing {len(file_paths)} file(s)…"):
        try:
            collected = _parse_files(file_paths, fixed, project)
        except InfragraphError as exc:
            stderr.print(f"[red]Parse error:[/red] {exc}")
            sys.exit(2)

    graph_provider = project.apply(
        fixed or detect_provider_from_types(r.type for r in collected.resources)
    )

    with stderr.status("[bold]Building graph…"):
        result = build_graph(collected.resources, collected.warnings, graph_provider)
        result.actions = dict(collected.actions)

    stderr.print(
        f"Found [bold]{len(result.nodes)}[/bold] resources and "
        f"[bold]{len(result.edges)}[/bold] connections ({graph_provider.name})."
    )
    for w in result.warnings:
        stderr.print(f"[yellow]Warning:[/yellow] {w}")

    if summary or output:
        _print_summary_table(result, no_color)

    if not summary:
        if output_format.lower() == "markdown":
            report_content = markdown.build_report(result, source_label, graph_provider.name)
        else:
            report_content = json_reporter.build_report(result, source_label, graph_provider.id)

        if output:
            with open(output, "w", encoding="utf-8", newline="\n") as fh:
                fh.write(report_content)
            stderr.print(f"Report written to [bold]{output}[/bold]")
        else:
            click.echo(report_content)

    sys.exit(0)


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Print as JSON.")
def providers(as_json: bool) -> None:
    """List the supported cloud providers."""
    if as_json:
        click.echo(json.dumps(
            [
                {
                    "id": p.id,
                    "name": p.name,
                    "shortName": p.short_name,
                    "containers": [c.type for c in p.container_types],
                    "supportedTypes": sorted(p.supported_types),
                }
                for p in PROVIDERS.values()
            ],
            indent=2,
        ))
        return

    tbl = Table(title="Providers", show_header=True, header_style="bold")
    tbl.add_column("ID", style="dim")
    tbl.add_column("Name")
    tbl.add_column("Containers")
    tbl.add_column("Types", justify="right")
    for p in PROVIDERS.values():
        tbl.add_row(
            p.id, p.name, " > ".join(c.type for c in p.container_types), str(len(p.supported_types))
        )
    Console().print(tbl)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
