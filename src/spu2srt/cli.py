"""spu2srt CLI entry point.

Runs DVD title extraction and subpicture demux (checkpointed so a re-run
skips them), then OCRs every subtitle image and prints SRT on standard
output. Everything meant for humans (stage headers, progress, errors and
log records) goes to standard error.

Without ``--mask`` the run stops after writing one calibration image per
candidate mask pattern; pick the one that shows black text on white and
re-run with ``--mask <bits>``.
"""

import logging
import sys
from contextlib import ExitStack
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TimeElapsedColumn

from spu2srt.assembler import assemble, find_sample_image, write_srt
from spu2srt.cache import LedgerArtifactCache
from spu2srt.checkpoint import RunCheckpoint, load_checkpoint, save_checkpoint
from spu2srt.config import RunConfig, default_work_dir
from spu2srt.errors import ConfigurationError, OutputWriteError, Spu2SrtError
from spu2srt.imaging.calibrate import generate_calibration_images
from spu2srt.imaging.palette import extract_palette
from spu2srt.ingestion.extract import demux_subtitles, extract_title
from spu2srt.ingestion.timing_index import load_timing_index

TOTAL_STAGES = 4

app = typer.Typer(
    name="spu2srt",
    help="Convert DVD subpicture subtitles into an SRT file with tesseract OCR.",
    add_completion=False,
)
# Standard output is reserved for the subtitle text
err_console = Console(stderr=True)

logger = logging.getLogger("spu2srt")


def _configure_logging(verbose: bool) -> None:
    """Route the ``spu2srt`` logger to the stderr console. Idempotent."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=err_console, show_time=False, show_path=False))
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _input_error(message: str) -> typer.Exit:
    err_console.print(Panel(message, title="[red]Input Error[/red]", border_style="red"))
    return typer.Exit(1)


def _setup_work_dir(work_dir: Path) -> Path:
    """Create the work directory and its calibration/ subdirectory. Idempotent."""
    work_dir.mkdir(parents=True, exist_ok=True)
    (work_dir / "calibration").mkdir(exist_ok=True)
    return work_dir


def _extract_index(source: Path, work_dir: Path, title: int, stream: int) -> Path:
    """Run (or resume) extraction and demux; return the timing index path."""
    ckpt = load_checkpoint(work_dir)
    if ckpt is not None and not ckpt.matches(str(source), title, stream):
        err_console.print("[yellow]Warning:[/] Stale checkpoint (different source, title or stream). Starting fresh.")
        ckpt = None
    if ckpt is None:
        ckpt = RunCheckpoint(source=str(source), title=title, stream=stream)

    if not ckpt.is_stage_complete("extract"):
        err_console.print(f"[bold]Stage 1/{TOTAL_STAGES}:[/bold] Extracting title {title}...")
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=err_console,
            transient=True,
        ) as progress:
            progress.add_task("Running dvdbackup...", total=None)
            vobs = extract_title(source, work_dir / "vob", title)
        ckpt.vob_files = [str(v) for v in vobs]
        ckpt.mark_stage_complete("extract")
        save_checkpoint(ckpt, work_dir)
        err_console.print(f"[green]Extracted {len(vobs)} VOB files\n")
    else:
        vobs = [Path(v) for v in ckpt.vob_files]
        err_console.print(f"[yellow]Resuming:[/] Stage 1 already complete ({len(vobs)} VOB files)\n")

    if not ckpt.is_stage_complete("demux"):
        err_console.print(f"[bold]Stage 2/{TOTAL_STAGES}:[/bold] Demuxing subtitle stream {stream}...")
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=err_console,
            transient=True,
        ) as progress:
            progress.add_task("Running spuunmux...", total=None)
            index_path = demux_subtitles(vobs, work_dir / "subs", stream)
        ckpt.index_path = str(index_path)
        ckpt.mark_stage_complete("demux")
        save_checkpoint(ckpt, work_dir)
        err_console.print(f"[green]Timing index written: [dim]{index_path.name}[/dim]\n")
    else:
        index_path = Path(ckpt.index_path)
        err_console.print(f"[yellow]Resuming:[/] Stage 2 already complete (index: {index_path.name})\n")

    return index_path


@app.command()
def main(
    ctx: typer.Context,
    source: Annotated[
        Optional[Path],
        typer.Argument(help="DVD device, ISO image or VIDEO_TS directory."),
    ] = None,
    index: Annotated[
        Optional[Path],
        typer.Option(
            "--index", "-x",
            dir_okay=False,
            resolve_path=True,
            help="Existing spuunmux timing index (XML). Skips DVD extraction and demux.",
        ),
    ] = None,
    mask: Annotated[
        Optional[str],
        typer.Option("--mask", "-m", help="Mask pattern, one bit per palette color (e.g. 0010). Omit to calibrate."),
    ] = None,
    forced: Annotated[
        bool,
        typer.Option("--forced", "-f", help="Only convert subtitles flagged as forced."),
    ] = False,
    lang: Annotated[
        str,
        typer.Option("--lang", "-l", help="Tesseract language code (e.g. eng, deu, eng+fra)."),
    ] = "eng",
    title: Annotated[
        int,
        typer.Option("--title", "-t", min=1, help="DVD title number to extract."),
    ] = 1,
    stream: Annotated[
        int,
        typer.Option("--stream", "-s", min=0, help="Subpicture stream index to demux."),
    ] = 0,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log cache hits, tool invocations and per-entry OCR text."),
    ] = False,
    untidy: Annotated[
        bool,
        typer.Option("--untidy", "-u", help="Keep masked images and hOCR files after conversion."),
    ] = False,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", dir_okay=False, help="Write SRT here instead of standard output."),
    ] = None,
    work_dir: Annotated[
        Optional[Path],
        typer.Option("--work-dir", "-w", file_okay=False, help="Directory for extracted and intermediate files."),
    ] = None,
) -> None:
    """OCR DVD subtitle images into numbered, timestamped SRT entries."""
    _configure_logging(verbose)

    # --- Input validation ---
    if source is None and index is None:
        err_console.print(ctx.get_usage(), highlight=False, markup=False)
        raise _input_error(
            "Nothing to convert: pass a DVD [bold]SOURCE[/bold] or an existing timing index with "
            "[bold]--index[/bold].\n"
            "Run [bold]spu2srt --help[/bold] for all options."
        )
    if index is not None and not index.exists():
        raise _input_error(
            f"File not found: [bold]{index}[/bold]\n"
            f"Check that the path is correct and the file is accessible."
        )
    if index is None and not source.exists():
        raise _input_error(
            f"Source not found: [bold]{source}[/bold]\n"
            f"Pass a DVD device, an ISO image or a directory containing VIDEO_TS."
        )

    try:
        config = RunConfig(language=lang, only_forced=forced, mask=mask, untidy=untidy, verbose=verbose)
    except ValidationError as e:
        raise _input_error("; ".join(err["msg"] for err in e.errors()))
    except ConfigurationError as e:
        raise _input_error(str(e))

    work_dir = _setup_work_dir(work_dir or default_work_dir(source, index))
    logger.debug("work directory: %s", work_dir)

    try:
        index_path = index if index is not None else _extract_index(source, work_dir, title, stream)

        # --- Stage 3: timing index and palette ---
        err_console.print(f"[bold]Stage 3/{TOTAL_STAGES}:[/bold] Reading timing index and palette...")
        entries = load_timing_index(index_path)
        sample = find_sample_image(entries, config.only_forced)
        if sample is None:
            raise _input_error(
                f"No usable subtitle image in [bold]{index_path.name}[/bold]\n"
                f"None of its {len(entries)} entries has an image, start and end"
                + (" and the forced flag" if config.only_forced else "")
                + " with the image present on disk."
            )
        palette = extract_palette(sample)
        err_console.print(
            f"[green]{len(entries)} entries[/green], palette of {len(palette)} colors "
            f"from [dim]{sample.name}[/dim]\n"
        )
        for position, color in enumerate(palette):
            logger.debug("palette[%d] = rgba%s x %d px", position, color.rgba, color.count)

        # --- Calibration (only when no mask is chosen) ---
        if config.mask is None:
            calibration = generate_calibration_images(sample, palette, work_dir / "calibration")
            err_console.print(Panel(
                "\n".join(f"  --mask {pattern}  ->  [dim]{path}[/dim]" for pattern, path in calibration),
                title="[yellow]Calibration images[/yellow]",
                border_style="yellow",
            ))
            raise ConfigurationError(
                "No mask pattern chosen.",
                tip="Open the calibration images and re-run with the --mask showing black text on white.",
            )

        # --- Stage 4: OCR and SRT output ---
        err_console.print(f"[bold]Stage 4/{TOTAL_STAGES}:[/bold] Recognizing subtitles (mask {config.mask})...")
        cache = LedgerArtifactCache(work_dir)
        with ExitStack() as stack:
            if output is not None:
                try:
                    target = stack.enter_context(output.open("w", encoding="utf-8"))
                except OSError as exc:
                    raise OutputWriteError(output, str(exc)) from exc
            else:
                target = sys.stdout

            progress = stack.enter_context(Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total}"),
                TimeElapsedColumn(),
                console=err_console,
            ))
            ocr_task = progress.add_task("OCR...", total=len(entries))
            outputs = assemble(
                entries,
                config,
                palette,
                cache=cache,
                progress_callback=lambda: progress.advance(ocr_task),
            )
            written = write_srt(outputs, target)

        err_console.print(Panel(
            f"[bold green]Conversion complete[/bold green]\n\n"
            f"  Entries:   {len(entries)} in index\n"
            f"  Written:   {written} subtitles ({len(entries) - written} skipped)\n"
            f"  Output:    [dim]{output if output is not None else 'standard output'}[/dim]\n"
            f"  Work dir:  [dim]{work_dir}[/dim]",
            title="[green]SRT Ready[/green]",
            border_style="green",
        ))

    except Spu2SrtError as e:
        # Typed pipeline errors become a panel; tracebacks are never shown
        err_console.print(Panel(
            str(e),
            title="[red]Pipeline Error[/red]",
            border_style="red",
        ))
        raise typer.Exit(1)
