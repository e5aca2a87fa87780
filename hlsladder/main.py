import typer
from pathlib import Path
from typing import Optional
from pydantic import ValidationError
from rich.console import Console

from hlsladder.config.loader import load_config
from hlsladder.infrastructure.logging import setup_logging
from hlsladder.infrastructure.event_bus import EventBus
from hlsladder.infrastructure.ffprobe import FFprobeAdapter
from hlsladder.infrastructure.ffmpeg import FFmpegAdapter
from hlsladder.infrastructure.storage import S3Publisher
from hlsladder.infrastructure.tools import check_required_tools, prepare_output_dir
from hlsladder.domain.exceptions import PackagerError
from hlsladder.pipeline.orchestrator import Orchestrator
from hlsladder.ui.state import UIState
from hlsladder.ui.manager import UIManager
from hlsladder.ui.dashboard import Dashboard

app = typer.Typer(help="hlsladder - package a video into an HLS rendition ladder")

@app.command()
def package(
    input_file: Path = typer.Argument(..., help="Source video file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output directory (default: ./output)"),
    bucket: Optional[str] = typer.Option(None, "--bucket", "-b", help="S3 bucket to upload files"),
    config_path: Optional[Path] = typer.Option(Path("conf/hlsladder.yaml"), "--config", "-c", help="Path to YAML config"),
    threads: Optional[int] = typer.Option(None, "--threads", "-t", help="Maximum simultaneous encodes"),
    segment_time: Optional[int] = typer.Option(None, "--segment-time", help="Segment duration in seconds"),
    preset: Optional[str] = typer.Option(None, "--preset", help="Encoder preset"),
    crf: Optional[int] = typer.Option(None, "--crf", help="Constant rate factor (0-51)"),
    ui: bool = typer.Option(True, "--ui/--no-ui", help="Show the live rendition table"),
    debug: bool = typer.Option(False, "--debug/--no-debug", help="Enable verbose debug logging")
):
    """Encode every rendition, write the master playlist and optionally upload to S3."""
    if not input_file.is_file():
        typer.secho(f"Error: input file {input_file} does not exist.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    try:
        config = load_config(config_path)
    except ValueError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    # Apply CLI overrides; assignment re-runs the config field constraints
    try:
        if output is not None: config.general.output_dir = output
        if bucket: config.storage.bucket = bucket
        if threads is not None: config.general.threads = threads
        if segment_time is not None: config.encoder.segment_time = segment_time
        if preset is not None: config.encoder.preset = preset
        if crf is not None: config.encoder.crf = crf
        if debug: config.general.debug = True
    except ValidationError as e:
        typer.secho(f"Error: invalid option: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    console = Console()
    logger = setup_logging(debug=config.general.debug, log_file=config.general.log_file, console=console)
    logger.info(f"hlsladder started: input={input_file}, output={config.general.output_dir}")
    logger.info(
        f"Config: threads={config.general.threads}, preset={config.encoder.preset}, crf={config.encoder.crf}, "
        f"segment_time={config.encoder.segment_time}, renditions={[r.name for r in config.ladder]}"
    )

    try:
        check_required_tools([config.encoder.ffmpeg_bin, config.encoder.ffprobe_bin])
        output_dir = prepare_output_dir(config.general.output_dir)

        publisher = S3Publisher.from_env(config.storage) if config.storage.enabled else None

        bus = EventBus()
        ui_state = UIState()
        UIManager(bus, ui_state)

        orchestrator = Orchestrator(
            config=config,
            event_bus=bus,
            ffprobe_adapter=FFprobeAdapter(config.encoder.ffprobe_bin),
            ffmpeg_adapter=FFmpegAdapter(config.encoder.ffmpeg_bin),
            publisher=publisher,
        )

        if ui:
            with Dashboard(ui_state, console=console):
                report = orchestrator.run(input_file, output_dir)
        else:
            report = orchestrator.run(input_file, output_dir)

    except KeyboardInterrupt:
        typer.echo("\nInterrupted by user")
        raise typer.Exit(code=130)

    except PackagerError as e:
        logger.debug("Job failed", exc_info=True)
        typer.secho(f"Error during {e.stage}: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    logger.info(f"Master playlist: {report.manifest_path}")
    if report.uploaded_keys:
        typer.echo("Processing and upload completed successfully.")
    else:
        typer.echo("Processing completed successfully.")

if __name__ == "__main__":
    app()
