"""MediaRelay CLI - Main commands."""
import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

app = typer.Typer(
    name="mediarelay",
    help="Relay chat media into the lecture backend",
    add_completion=False
)
console = Console()

SUMMARIZATION_TYPES = ('lecture', 'custdev')


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


@app.callback()
def main():
    """Relay chat media into the lecture backend."""


@app.command()
def upload(
    reference: str = typer.Argument(..., help="Relay file path, relay-relative path or http(s) URL"),
    token: str = typer.Option(..., "--token", envvar="MEDIARELAY_TOKEN", help="Backend access token"),
    filename: str = typer.Option(None, "--filename", "-f", help="File name reported to the backend"),
    mime_type: str = typer.Option("application/octet-stream", "--mime-type", "-m", help="MIME type"),
    language: str = typer.Option("uz", "--language", "-l", help="Content language"),
    summarization_type: str = typer.Option("lecture", "--type", "-t", help="lecture or custdev"),
    title: str = typer.Option(None, "--title", help="Optional title"),
    chunk_size: int = typer.Option(None, "--chunk-size", help="Chunk size in bytes"),
    base_url: str = typer.Option(None, "--base-url", help="Backend base URL (default: API_BASE_URL)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show upload logs"),
):
    """Upload a media file to the backend."""
    from mediarelay import UploaderConfig, UploadFacade, UploadOptions, setup_logging
    from mediarelay.core.upload.models import UploadProgress

    if summarization_type not in SUMMARIZATION_TYPES:
        console.print(f"[red]--type must be one of: {', '.join(SUMMARIZATION_TYPES)}[/red]")
        raise typer.Exit(1)

    if verbose:
        logging.basicConfig(format="%(asctime)s %(name)s %(levelname)s %(message)s")
        setup_logging(logging.INFO)

    overrides = {}
    if chunk_size:
        overrides['chunk_size'] = chunk_size
    if base_url:
        overrides['base_url'] = base_url
    try:
        config = UploaderConfig.from_env(**overrides)
    except ValueError as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(1)

    options = UploadOptions(
        filename=filename or reference.rstrip('/').rsplit('/', 1)[-1],
        mime_type=mime_type,
        language=language,
        summarization_type=summarization_type,
        title=title,
    )

    async def do_upload():
        async with UploadFacade(config) as relay:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console
            ) as progress:
                task = progress.add_task(f"Uploading {options.filename}", total=100)

                def on_progress(p: UploadProgress):
                    progress.update(task, completed=p.percentage)

                result = await relay.upload(token, reference, options, progress_callback=on_progress)
                if result.success:
                    progress.update(task, completed=100)

        if not result.success:
            console.print(f"[red]Upload failed:[/red] {result.error.code} {result.error.message}")
            if result.error.retryable:
                console.print("[yellow]The error is transient; try again later[/yellow]")
            raise typer.Exit(1)

        console.print(f"[green]Uploaded:[/green] {options.filename}")
        console.print(f"Method: {result.method.value}")
        console.print(f"Size: {result.file_size:,} bytes")
        console.print(f"Artifact: {result.artifact_id}")

    run_async(do_upload())


if __name__ == "__main__":
    app()
