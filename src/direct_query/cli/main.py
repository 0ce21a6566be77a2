"""
Primary Typer application wiring for the direct query CLI.

The CLI lets operators inspect the data source catalogue, probe backends and
run passthrough PromQL queries or resource lookups without a hosting server.
"""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from ..config import DirectQuerySettings, SettingsError, load_settings
from ..core import CatalogLoadError, DataSourceService, ExecutionContext, configure_logging
from ..errors import DirectQueryError
from ..queries import ExecuteDirectQueryRequest, GetDirectQueryResourcesRequest, PrometheusOptions, PrometheusQueryType
from ..services import DirectQueryExecutorService

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Direct query CLI for Prometheus data sources.\n\n"
        "Command groups:\n"
        "- sources: list, describe, and verify catalogued data sources.\n"
        "- query: run an instant or range PromQL query.\n"
        "- resources: fetch labels, metadata, series, or Alertmanager objects."
    ),
)
sources_app = typer.Typer(help="Inspect and verify catalogued data sources.")
app.add_typer(sources_app, name="sources")

_QUERY_TYPE_CHOICES = tuple(item.value for item in PrometheusQueryType)


def _load_catalog(catalog_file: Optional[Path], settings: DirectQuerySettings) -> DataSourceService:
    if catalog_file:
        return DataSourceService.from_yaml(catalog_file)
    if settings.catalog_path is not None:
        return DataSourceService.from_yaml(settings.catalog_path)
    datasources_pkg = "direct_query.resources.datasources"
    with resources.as_file(resources.files(datasources_pkg) / "local.yaml") as resolved:
        return DataSourceService.from_yaml(resolved)


def _parse_params(entries: Optional[List[str]]) -> Dict[str, Any]:
    """Parse repeated ``key=value`` options. Repeated keys collect into a list."""

    params: Dict[str, Any] = {}
    if not entries:
        return params
    for entry in entries:
        if "=" not in entry:
            raise typer.BadParameter(f"Query parameter '{entry}' must use key=value format.")
        key, value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise typer.BadParameter(f"Query parameter '{entry}' is missing a key.")
        existing = params.get(key)
        if existing is None:
            params[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            params[key] = [existing, value]
    return params


@app.callback(invoke_without_command=False)
def main(
    ctx: typer.Context,
    catalog_file: Optional[Path] = typer.Option(
        None,
        "--catalog",
        "-c",
        help="Override data source catalogue YAML file.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    settings_file: Optional[Path] = typer.Option(
        None,
        "--settings",
        "-s",
        help="Settings TOML file. Defaults to $DIRECT_QUERY_SETTINGS_PATH or ./.direct_query/settings.toml.",
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Emit debug logs on stderr."),
) -> None:
    """
    Configure global execution context.

    The callback stores the resolved execution context in Typer's state so child
    commands can retrieve it via :class:`typer.Context`.
    """

    configure_logging("DEBUG" if verbose else None, force=verbose)
    try:
        settings = load_settings(settings_file)
        catalog = _load_catalog(catalog_file, settings)
    except (SettingsError, CatalogLoadError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    state = ctx.ensure_object(dict)
    state["context"] = ExecutionContext.build_default(settings=settings, datasources=catalog)


def _require_context(ctx: typer.Context) -> ExecutionContext:
    state = ctx.ensure_object(dict)
    context = state.get("context")
    if not isinstance(context, ExecutionContext):
        raise typer.Exit(code=2)
    return context


def _build_service(ctx: typer.Context) -> DirectQueryExecutorService:
    context = _require_context(ctx)
    # An httpx transport passed in ctx.obj replaces the network, e.g. to stub backends.
    transport = ctx.ensure_object(dict).get("transport")
    return DirectQueryExecutorService.from_context(context, transport=transport)


@sources_app.command("list")
def sources_list(ctx: typer.Context) -> None:
    """List catalogued data sources."""

    context = _require_context(ctx)
    entries = context.datasources.list()
    if not entries:
        typer.echo("No data sources are configured.")
        raise typer.Exit(code=0)

    header = f"{'Name':<24} {'Connector':<14} Description"
    typer.echo(header)
    typer.echo("-" * len(header))
    for entry in entries:
        descr = entry.description.replace("\n", " ")
        typer.echo(f"{entry.name:<24} {entry.connector.value:<14} {descr}")


@sources_app.command("describe")
def sources_describe(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the data source."),
    output_json: bool = typer.Option(False, "--json", help="Emit metadata in JSON format."),
) -> None:
    """Show metadata for a data source with credentials masked."""

    service = _build_service(ctx)
    try:
        payload = service.describe_datasource(name)
    except DirectQueryError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1)

    if output_json:
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    typer.echo(f"Name: {payload['name']}")
    typer.echo(f"Connector: {payload['connector']}")
    if payload["description"]:
        typer.echo(f"Description: {payload['description']}")
    for key, value in sorted(payload["properties"].items()):
        typer.echo(f"{key}: {value}")


@sources_app.command("verify")
def sources_verify(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the data source."),
) -> None:
    """Probe the data source's backend with a lightweight request."""

    service = _build_service(ctx)
    try:
        result = service.verify_datasource(name)
    except DirectQueryError as exc:
        typer.echo(f"Verification failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(result.message)
    if result.details:
        typer.echo(f"Details: {json.dumps(result.details, ensure_ascii=False)}")
    if not result.success:
        raise typer.Exit(code=1)


@app.command("query")
def query_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the data source."),
    query: str = typer.Argument(..., help="PromQL expression."),
    query_type: Optional[str] = typer.Option(None, "--type", "-t", help=f"Query mode: {', '.join(_QUERY_TYPE_CHOICES)}."),
    start: Optional[str] = typer.Option(None, "--start", help="Range start, epoch seconds."),
    end: Optional[str] = typer.Option(None, "--end", help="Range end, epoch seconds."),
    step: Optional[str] = typer.Option(None, "--step", help="Range resolution, e.g. 15s."),
    time: Optional[str] = typer.Option(None, "--time", help="Instant evaluation time, epoch seconds."),
    max_results: Optional[int] = typer.Option(None, "--max-results", min=1, help="Maximum number of series returned."),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", min=1, help="Evaluation timeout in milliseconds."),
    session_id: Optional[str] = typer.Option(None, "--session-id", help="Session identifier echoed in the response."),
) -> None:
    """Run an instant or range query and print the response as JSON."""

    if query_type is not None and PrometheusQueryType.parse(query_type) is None:
        raise typer.BadParameter(f"Query type must be one of: {', '.join(_QUERY_TYPE_CHOICES)}.", param_hint="--type")

    request = ExecuteDirectQueryRequest(
        datasource=name,
        query=query,
        options=PrometheusOptions(
            query_type=PrometheusQueryType.parse(query_type),
            start=start,
            end=end,
            time=time,
            step=step,
        ),
        max_results=max_results,
        timeout_millis=timeout_ms,
        session_id=session_id,
    )
    service = _build_service(ctx)
    try:
        response = service.execute_direct_query(request)
    except DirectQueryError as exc:
        typer.echo(f"Query failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))


@app.command("resources")
def resources_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the data source."),
    resource_type: str = typer.Argument(..., help="labels, label, metadata, series, or alertmanager_{alerts,alert_groups,receivers,silences}."),
    resource_name: Optional[str] = typer.Option(None, "--name", "-n", help="Resource name, e.g. the label whose values to list."),
    param: Optional[List[str]] = typer.Option(
        None,
        "--param",
        "-p",
        help="Backend query parameter in the form key=value, e.g. match[]=up. Can be repeated.",
    ),
) -> None:
    """Fetch a backend resource and print it as JSON."""

    request = GetDirectQueryResourcesRequest(
        datasource=name,
        resource_type=resource_type,
        resource_name=resource_name,
        query_params=_parse_params(param),
    )
    service = _build_service(ctx)
    try:
        response = service.get_directquery_resources(request)
    except DirectQueryError as exc:
        typer.echo(f"Resource lookup failed: {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(response.to_dict(), ensure_ascii=False, indent=2))


if __name__ == "__main__":  # pragma: no cover
    app()
