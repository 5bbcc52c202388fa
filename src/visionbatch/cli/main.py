import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich import print
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from visionbatch.api import describe_images
from visionbatch.batching import WorkItem
from visionbatch.cli.callbacks import image_paths_callback, output_path_callback
from visionbatch.config import DEFAULT_BASE_URL, VisionConfig
from visionbatch.fields import FIELD_CONFIGS, DescriptionField
from visionbatch.progress import ProgressEvent
from visionbatch.results import RunOutcome, RunResult
from visionbatch.utils.files import write_jsonl_file
from visionbatch.utils.logging import setup_logging

app = typer.Typer(no_args_is_help=True)


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("-v", "--verbose", help="Show debug logs from the orchestrator")
    ] = False,
):
    """Generate alt text, captions and descriptions for images with Visionati."""
    load_dotenv(override=False)
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING)


def print_run_result(result: RunResult, paths_by_id: dict[str, Path]):
    console = Console()
    if result.results:
        table = Table("Image", "Field", "Text", "Backend", title="Descriptions", show_lines=True)
        for item in result.results:
            for field_result in item.fields:
                table.add_row(
                    paths_by_id[item.item_id].as_posix(),
                    FIELD_CONFIGS[field_result.field].label,
                    field_result.text,
                    field_result.backend,
                )
        console.print(table)
    for warning in result.warnings:
        print(f"[yellow]Warning:[/yellow] {warning.message}")
    for error in result.field_errors:
        print(f"[red]Error:[/red] {error.message}")
    if result.unattributed:
        print(f"[yellow]{result.unattributed} result(s) could not be matched to an image[/yellow]")
    if result.credits is not None:
        print(f"Remaining credits: {result.credits}")


@app.command(name="fields")
def list_fields():
    """List the fields that can be generated"""
    table = Table("Field", "Label", "Service role", title="Fields")
    for field, config in FIELD_CONFIGS.items():
        table.add_row(field.value, config.label, config.role)
    Console().print(table)


@app.command(name="describe")
def describe(
    images: Annotated[
        list[Path],
        typer.Argument(help="Image files to describe", callback=image_paths_callback),
    ],
    fields: Annotated[
        list[DescriptionField] | None,
        typer.Option("-f", "--field", help="Field to generate, repeat for several"),
    ] = None,
    api_key: Annotated[
        str,
        typer.Option(envvar="VISIONATI_API_KEY", help="Visionati API key", show_default=False),
    ] = "",
    backend: Annotated[
        str, typer.Option(envvar="VISIONATI_BACKEND", help="Model backend, e.g. gemini, claude..")
    ] = "gemini",
    language: Annotated[
        str, typer.Option(envvar="VISIONATI_LANGUAGE", help="Output language")
    ] = "English",
    prompt: Annotated[
        str,
        typer.Option(envvar="VISIONATI_PROMPT", help="Optional custom prompt overriding the role"),
    ] = "",
    batch_size: Annotated[
        int, typer.Option(help="Maximum images per request", rich_help_panel="Batching")
    ] = 10,
    poll_interval: Annotated[
        float,
        typer.Option(help="Seconds between two polls of a job", rich_help_panel="Batching"),
    ] = 2.0,
    max_poll_attempts: Annotated[
        int,
        typer.Option(help="Polls allowed per job before timing out", rich_help_panel="Batching"),
    ] = 30,
    base_url: Annotated[
        str, typer.Option(envvar="VISIONATI_BASE_URL", help="Vision service base URL")
    ] = DEFAULT_BASE_URL,
    output: Annotated[
        Path | None,
        typer.Option(
            "-o",
            "--output",
            help="optional, JSONL file where per-image results are written",
            callback=output_path_callback,
        ),
    ] = None,
):
    """Describe images"""
    try:
        config = VisionConfig(
            api_key=api_key,
            backend=backend,
            language=language,
            prompt=prompt,
            batch_size=batch_size,
            poll_interval_seconds=poll_interval,
            max_poll_attempts=max_poll_attempts,
            base_url=base_url,
        )
    except ValidationError as e:
        messages = "; ".join(error["msg"] for error in e.errors())
        typer.echo(f"Invalid configuration: {messages}", err=True)
        raise typer.Exit(2)

    # ids must not contain "/": returned asset names keep only their basename
    paths_by_id = {
        f"{index}:{path.name}": path for index, path in enumerate(dict.fromkeys(images))
    }
    items = [WorkItem(id=item_id, payload=path.read_bytes()) for item_id, path in paths_by_id.items()]
    requested = list(dict.fromkeys(fields or [DescriptionField.alt_text]))

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        transient=True,
    ) as progress:
        task_id = progress.add_task(description="Submitting...", total=len(items))

        def on_progress(event: ProgressEvent) -> None:
            if event.message:
                progress.update(task_id, description=event.message)
            progress.update(task_id, completed=event.completed_units, total=event.total_units)

        result = asyncio.run(
            describe_images(items=items, fields=requested, config=config, on_progress=on_progress)
        )

    print_run_result(result=result, paths_by_id=paths_by_id)
    if output is not None:
        write_jsonl_file(
            output,
            [
                {**dataclasses.asdict(item), "item_id": paths_by_id[item.item_id].as_posix()}
                for item in result.results
            ],
        )
        print(f"Results written to {output.as_posix()}")
    if result.outcome is RunOutcome.NO_RESULTS:
        raise typer.Exit(1)
