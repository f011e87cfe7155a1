"""Main entry point: option handling and dispatch of the report, picture and icon pipelines."""
import os
import sys

from dataclasses import dataclass
from typing import Dict, Sequence

from peanalyzer.config import (
    logger, TITLE, VERSION_TEXT, USAGE,
    DEFAULT_BYTEPLOT_PIXEL_SIZE, ImageEncodingError,
)
from peanalyzer.utils import safe_print
from peanalyzer.cli.options import (
    parse_options, UsageError,
    HELP, VERSION, OUTPUT, PICTURE, ICONS, INPUTFILE,
)
from peanalyzer.cli.printers import print_report, write_report, print_file_type_report
from peanalyzer.parsers.pe import ReportCreator
from peanalyzer.parsers.signatures import has_pe_signature
from peanalyzer.visualizer import Visualizer, append_images
from peanalyzer.icons import extract_icons


@dataclass(frozen=True)
class AnalysisTarget:
    path: str
    exists: bool
    is_pe: bool


def resolve_target(inputfile: str) -> AnalysisTarget:
    path = os.path.abspath(inputfile)
    exists = os.path.isfile(path)
    return AnalysisTarget(path=path, exists=exists, is_pe=exists and has_pe_signature(path))


def write_picture(pe_path: str, image_path: str):
    """Render byte plot, entropy and structure images side by side into one PNG."""
    visualizer = Visualizer()
    entropy_image = visualizer.create_entropy_image(pe_path)
    structure_image = visualizer.create_image(pe_path)
    # finer grained byte plot
    byte_plot = Visualizer(pixel_size=DEFAULT_BYTEPLOT_PIXEL_SIZE).create_byte_plot(pe_path)
    composite = append_images(byte_plot, append_images(entropy_image, structure_image))
    try:
        composite.save(image_path, format="PNG")
    except (OSError, ValueError) as e:
        raise ImageEncodingError(f"Could not write image {image_path}: {e}") from e
    return composite


def _analyze(options: Dict[str, str]):
    target = resolve_target(options[INPUTFILE])
    if not target.exists:
        safe_print("file doesn't exist", file=sys.stderr)
        return
    if not target.is_pe:
        safe_print("The given file is no PE file!")
        print_file_type_report(target.path)
        return

    with ReportCreator(target.path) as reporter:
        if OUTPUT in options:
            write_report(reporter, options[OUTPUT])
        else:
            print_report(reporter)

    if PICTURE in options:
        image_path = os.path.abspath(options[PICTURE])
        write_picture(target.path, image_path)
        safe_print(f"picture successfully created and saved to {image_path}")
        safe_print("")

    if ICONS in options:
        extract_icons(target.path, options[ICONS])


def run_cli(argv: Sequence[str]) -> int:
    """Run one invocation and return its exit status."""
    safe_print(TITLE)
    try:
        options = parse_options(argv)
    except UsageError as e:
        safe_print(f"{e}\n{USAGE}")
        return 1

    if not argv:
        safe_print(USAGE)
        return 0
    if VERSION in options:
        safe_print(VERSION_TEXT)
        safe_print("")
    if HELP in options:
        safe_print(USAGE)
        safe_print("")
    if INPUTFILE not in options:
        return 0

    try:
        _analyze(options)
    except KeyboardInterrupt:
        safe_print("\n[*] Analysis interrupted by user. Exiting.")
        return 1
    except Exception as e:
        safe_print(f"Error: {type(e).__name__}: {e}", file=sys.stderr)
        logger.error(f"Analysis of {options[INPUTFILE]} aborted: {type(e).__name__}", exc_info=True)
        return 1
    return 0


def main():
    sys.exit(run_cli(sys.argv[1:]))
