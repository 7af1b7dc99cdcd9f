"""
Command line front end
Drives the conversion form against a running API, or serves the API itself
"""

from pathlib import Path
from typing import Optional

import typer

from imagetools.client import ConversionForm, ConverterClient
from imagetools.config import API_URL, HOST, PORT
from imagetools.conversion.models import CompressionKind, Mode

app = typer.Typer(
    name="imagetools",
    help="Convert, resize and compress images through the Image Tools API",
    no_args_is_help=True,
    add_completion=False,
)


@app.command()
def convert(
    image: Path = typer.Argument(..., exists=True, dir_okay=False, help="Image to convert"),
    output_format: str = typer.Option("png", "--format", "-f", help="png, jpg or webp"),
    width: Optional[int] = typer.Option(None, "--width", "-w", help="Target width (height follows aspect)"),
    height: Optional[int] = typer.Option(None, "--height", "-h", help="Target height (width follows aspect)"),
    scale: Optional[float] = typer.Option(None, "--scale", help="Resize to a percentage of the original"),
    quality: Optional[float] = typer.Option(None, "--quality", "-q", help="Compress to quality 1-100"),
    target_mb: Optional[float] = typer.Option(None, "--target-mb", help="Compress to at most this many MB"),
    out_dir: Path = typer.Option(Path("."), "--out-dir", "-o", file_okay=False, help="Where to save the result"),
    api_url: str = typer.Option(API_URL, "--api-url", envvar="IMAGETOOLS_API_URL"),
):
    """Convert IMAGE and save the result into OUT_DIR under a derived name."""
    if quality is not None and target_mb is not None:
        raise typer.BadParameter("use either --quality or --target-mb, not both")

    form = ConversionForm()
    if not form.select_file(image):
        typer.secho(form.error, fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    form.set_format(output_format)
    if width is not None or height is not None or scale is not None:
        form.set_mode(Mode.RESIZE)
    if scale is not None:
        form.set_scale(scale)
    # Explicit dimensions win over the aspect-locked ones derived from the other
    if width is not None and height is not None:
        form.width, form.height = width, height
    elif width is not None:
        form.set_width(width)
    elif height is not None:
        form.set_height(height)

    if quality is not None:
        form.set_mode(Mode.COMPRESS)
        form.set_compression(CompressionKind.PERCENTAGE, quality)
    elif target_mb is not None:
        form.set_mode(Mode.COMPRESS)
        form.set_compression(CompressionKind.SIZE, target_mb)

    out_dir.mkdir(parents=True, exist_ok=True)
    with ConverterClient(base_url=api_url) as client:
        saved = form.submit(client, out_dir)
    if saved is None:
        typer.secho(f"Conversion failed: {form.error}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    typer.secho(f"Saved {saved}", fg=typer.colors.GREEN)


@app.command()
def serve(
    host: str = typer.Option(HOST, "--host"),
    port: int = typer.Option(PORT, "--port"),
    reload: bool = typer.Option(False, "--reload"),
):
    """Run the API with uvicorn."""
    import uvicorn

    uvicorn.run("imagetools.main:app", host=host, port=port, reload=reload)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
