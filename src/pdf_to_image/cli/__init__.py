from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import AppConfig, dump_config, load_config
from ..core import ConversionService
from ..errors import ConversionError
from ..models import ConversionOptions, ImageFormat
from ..settings import Settings
from ..storage import StorageJanitor, create_storage_provider
from ..utils import format_file_size, generate_run_id

console = Console()

app = typer.Typer(
    help="Convert PDF files to page images.",
    epilog=(
        "Page ranges: 'all', '1', '1-5', '1,3,5', '1-3,7-9'. "
        "Example: pdf-to-image convert document.pdf -o ./images -d 600 -q 95 -p 1-5"
    ),
)


def _load_config(path: Path | None) -> AppConfig:
    settings = Settings()
    if path is None:
        return settings.load_app_config()
    return settings.apply(load_config(path))


@app.command()
def convert(
    pdf_file: Path = typer.Argument(..., help="Path to the PDF file to convert"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output directory for images"),
    dpi: int | None = typer.Option(None, "--dpi", "-d", min=1, help="DPI resolution for images"),
    quality: int | None = typer.Option(None, "--quality", "-q", min=1, max=100, help="JPEG quality (1-100)"),
    pages: str | None = typer.Option(None, "--pages", "-p", help="Page range to convert (e.g. 1-3 or 1,3,5)"),
    image_format: str | None = typer.Option(None, "--format", "-f", help="Image format: jpg or png"),
    engine: str | None = typer.Option(None, "--engine", help="Rasterization engine (pdftoppm or pdf2image)"),
    concurrency: int | None = typer.Option(None, "--concurrency", min=1, help="Parallel page ranges"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    if engine:
        cfg.runtime.engine = engine
    service = ConversionService(cfg)
    defaults = service.default_options()
    try:
        options = ConversionOptions(
            dpi=dpi or defaults.dpi,
            quality=quality or defaults.quality,
            pages=pages or defaults.pages,
            image_format=ImageFormat.parse(image_format) if image_format else defaults.image_format,
            max_concurrency=concurrency,
        )
        console.print(f"[blue]Starting PDF to image conversion[/blue]: {pdf_file.name}")
        if pdf_file.is_file():
            console.print(f"[dim]Size: {format_file_size(pdf_file.stat().st_size)}[/dim]")
        result = service.convert_file(pdf_file, output or cfg.runtime.output_dir, options=options)
    except ConversionError as exc:
        console.print(f"[red]Conversion failed[/red]: {exc.code} - {escape(str(exc))}")
        raise typer.Exit(1) from exc
    console.print("[green]Conversion completed successfully![/green]")
    console.print(f"Output directory: {result.output_dir}")
    console.print(f"Images created: {result.image_count}")
    console.print(f"Pages converted: {', '.join(str(page) for page in result.pages_converted)}")
    table = Table(title="Images")
    table.add_column("Page", justify="right")
    table.add_column("File")
    for page, name in zip(result.pages_converted, result.files):
        table.add_row(str(page), name)
    console.print(table)


@app.command()
def clean(
    older_than: int | None = typer.Option(
        None,
        "--older-than",
        min=0,
        help="Delete stored images older than the given minutes",
    ),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    cfg = _load_config(config)
    storage = cfg.storage
    provider = create_storage_provider(storage, Settings())
    max_age = storage.cleanup_max_age_minutes if older_than is None else older_than
    janitor = StorageJanitor(provider, (storage.output_prefix,), max_age)
    try:
        # --older-than 0 must include objects written this second.
        removed = janitor.run_once(datetime.now(timezone.utc) + timedelta(seconds=1))
    except ConversionError as exc:
        console.print(f"[red]Cleanup failed[/red]: {exc.code} - {escape(str(exc))}")
        raise typer.Exit(1) from exc
    console.print(f"Removed {removed} stored objects from {provider.name} storage.")


@app.command()
def show_config(
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    console.print_json(dump_config(_load_config(config)))


@app.command()
def new_run_id() -> None:
    console.print(generate_run_id())


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host", help="Interface to bind"),
    port: int | None = typer.Option(None, "--port", help="Port to listen on"),
    config: Path | None = typer.Option(None, "--config", help="Path to config.toml"),
) -> None:
    """Run the HTTP API with uvicorn."""

    import uvicorn

    from api.app import create_app

    cfg = _load_config(config)
    try:
        api = create_app(cfg)
    except RuntimeError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc
    uvicorn.run(api, host=host or cfg.api.host, port=port or cfg.api.port)


if __name__ == "__main__":
    app()
