# src/schemabridge/cli.py
import json
import time
import typer
from pathlib import Path
from typing import Callable, Optional
from rich.console import Console
from rich.panel import Panel

from .config import AUTO_DETECT, BridgeConfig, GCPConfig, load_config, parse_schema_property
from .connectors import (
    BigQuerySinkValidator,
    BigtableSourceValidator,
    DatastoreSchemaResolver,
    validate_execute_config,
    validate_speech_config,
)
from .connectors.base import get_bigquery_client, get_datastore_client, get_storage_client
from .errors import ConnectionError, ProvisioningError, ValidationException
from .failures import FailureCollector
from .inference import DEFAULT_KEY_FIELD, infer_schema
from .logging_utils import BridgeLogger, print_failures, print_summary
from .provisioning import ProvisionRequest, ResourceProvisioner

console = Console()
app = typer.Typer(help="Schema Bridge CLI")


def version_callback(value: bool):
    if value:
        from schemabridge import __version__
        console.print(f"Schema Bridge version: {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    )
):
    """Schema Bridge - schema translation and validation for Google Cloud data plugins."""
    pass


def _bigquery_sink_check(config, offline: bool) -> Callable[[FailureCollector], None]:
    def check(collector: FailureCollector):
        client = None if offline else get_bigquery_client(config, location=config.location)
        BigQuerySinkValidator(config, client).validate(collector)
    return check


def _execute_check(config) -> Callable[[FailureCollector], None]:
    def check(collector: FailureCollector):
        config.validate_common(collector)
        validate_execute_config(config, collector)
    return check


def _bigtable_check(config) -> Callable[[FailureCollector], None]:
    def check(collector: FailureCollector):
        BigtableSourceValidator(config).validate(collector)
    return check


def _datastore_check(config, offline: bool, logger: BridgeLogger) -> Callable[[FailureCollector], None]:
    def check(collector: FailureCollector):
        client = None
        if not offline and not config.declared_schema:
            client = get_datastore_client(config, namespace=config.namespace)
        schema = DatastoreSchemaResolver().resolve(config, client, collector)
        logger.info(f"{len(schema.fields or ())} field(s) in output schema", prefix="schema")
    return check


def _speech_check(config) -> Callable[[FailureCollector], None]:
    def check(collector: FailureCollector):
        input_schema = parse_schema_property(config.input_schema_json, collector, "inputSchema")
        validate_speech_config(config, input_schema, collector)
    return check


def _collect_stages(config: BridgeConfig, offline: bool):
    stages = []
    for c in config.bigquery_sinks:
        stages.append((c.name, "bigquery sink", lambda log, c=c: _bigquery_sink_check(c, offline)))
    for c in config.bigquery_execute:
        stages.append((c.name, "bigquery execute", lambda log, c=c: _execute_check(c)))
    for c in config.bigtable_sources:
        stages.append((c.name, "bigtable source", lambda log, c=c: _bigtable_check(c)))
    for c in config.datastore_sources:
        stages.append((c.name, "datastore source", lambda log, c=c: _datastore_check(c, offline, log)))
    for c in config.speech_transforms:
        stages.append((c.name, "speech-to-text", lambda log, c=c: _speech_check(c)))
    return stages


def _run_stage(name: str, kind: str, make_check) -> bool:
    logger = BridgeLogger(name)
    logger.start_stage(kind)
    collector = FailureCollector(name)
    try:
        make_check(logger)(collector)
    except ValidationException:
        # The collector already holds the failures that were raised
        pass
    except (ConnectionError, ValueError) as e:
        logger.error(str(e))
        return False

    if collector.has_failures():
        logger.error(f"{collector.failure_count()} validation failure(s)")
        print_failures(name, collector.failures)
        return False
    logger.success("valid")
    return True


# ======================================================================================
# COMMAND: schemabridge validate
# ======================================================================================
@app.command()
def validate(
    config_file: Path = typer.Argument("plugins.yml", help="Path to plugin configuration YAML"),
    offline: bool = typer.Option(False, "--offline", help="Skip reads of live tables and entities"),
):
    """Validate every configured plugin stage and report all failures."""
    console.print("\n[bold cyan]🔎 Schema Bridge Validate[/bold cyan]\n")

    try:
        config = load_config(config_file)
    except Exception as e:
        console.print(f"[red]✗ Failed to load config: {e}[/red]")
        raise typer.Exit(code=1)

    stages = _collect_stages(config, offline)
    if not stages:
        console.print("[yellow]No plugin stages configured[/yellow]")
        raise typer.Exit(code=0)

    start = time.time()
    failed = sum(1 for name, kind, make_check in stages if not _run_stage(name, kind, make_check))
    print_summary(len(stages), failed, time.time() - start)
    raise typer.Exit(code=1 if failed else 0)


# ======================================================================================
# COMMAND: schemabridge infer
# ======================================================================================
@app.command()
def infer(
    sample_file: Path = typer.Argument(..., help="JSON file holding one sample object"),
    include_key: bool = typer.Option(False, "--include-key", help="Add a string key field to the schema"),
    key_alias: str = typer.Option(DEFAULT_KEY_FIELD, "--key-alias", help="Name of the key field"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the schema to this file"),
):
    """Infer a record schema from a JSON sample."""
    try:
        with open(sample_file, 'r') as f:
            sample = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]✗ Failed to read sample: {e}[/red]")
        raise typer.Exit(code=1)

    if not isinstance(sample, dict):
        console.print("[red]✗ Sample must be a JSON object[/red]")
        raise typer.Exit(code=1)

    schema = infer_schema(sample, include_key=include_key, key_field_name=key_alias)
    text = schema.to_json(indent=2)

    if output:
        output.write_text(text + "\n")
        console.print(f"[green]✓ Wrote schema with {len(schema.fields)} field(s) to {output}[/green]")
    else:
        # Plain print so the output can be piped
        print(text)
    raise typer.Exit(code=0)


# ======================================================================================
# COMMAND: schemabridge provision
# ======================================================================================
@app.command()
def provision(
    dataset: str = typer.Argument(..., help="BigQuery dataset name"),
    bucket: str = typer.Argument(..., help="Cloud Storage bucket name"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Google Cloud project id"),
):
    """Create the dataset and bucket if they do not exist."""
    gcp = GCPConfig(name="provision", project=project or AUTO_DETECT)
    request = ProvisionRequest(dataset_name=dataset, bucket_name=bucket)

    try:
        provisioner = ResourceProvisioner(get_bigquery_client(gcp), get_storage_client(gcp))
        provisioner.provision(request)
    except (ConnectionError, ProvisioningError, ValueError) as e:
        console.print(f"[red]✗ Provisioning failed: {e}[/red]")
        raise typer.Exit(code=1)

    console.print(Panel(
        f"[green bold][OK] Dataset '{dataset}' and bucket '{bucket}' are ready[/green bold]",
        border_style="green",
    ))
    raise typer.Exit(code=0)


if __name__ == "__main__":
    app()
