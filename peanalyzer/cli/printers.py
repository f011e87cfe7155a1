"""CLI report output: console report, report file and file-type report."""
from typing import Union
from pathlib import Path

from peanalyzer.config import logger, END_OF_REPORT, OutputConflictError
from peanalyzer.utils import safe_print
from peanalyzer.parsers.pe import ReportCreator
from peanalyzer.parsers.signatures import FileTypeScanner, bytes_matched


def print_report(reporter: ReportCreator):
    reporter.print_report()
    safe_print(END_OF_REPORT)
    safe_print("")


def check_output_destination(path: Union[str, Path]) -> Path:
    """Validate a report file destination. Existing files are never overwritten."""
    dest = Path(path)
    if not str(path) or not dest.name:
        raise OutputConflictError("File name for output file is empty")
    if dest.exists():
        raise OutputConflictError(f"Output file {dest.resolve()} already exists")
    return dest


def write_report(reporter: ReportCreator, path: Union[str, Path]):
    dest = check_output_destination(path)
    logger.info(f"Writing report for {reporter.filepath} to {dest}")
    with open(dest, 'a', encoding='utf-8') as fw:
        safe_print("Creating report file...")
        fw.write(reporter.report_title)
        safe_print("Writing header reports...")
        fw.write(reporter.header_reports)
        safe_print("Writing section reports...")
        fw.write(reporter.special_section_reports)
        safe_print("Writing analysis reports...")
        fw.write(reporter.additional_reports)
        fw.write(END_OF_REPORT)
        safe_print("Done!")


def print_file_type_report(filepath: Union[str, Path]):
    results = FileTypeScanner(filepath).scan_at(0)
    if not results:
        safe_print("No matching file-type signatures found")
    elif len(results) == 1:
        safe_print("The file could be of the following type: ")
    else:
        safe_print("The file could be of one of the following types: ")
    safe_print("")
    for signature, _offset in results:
        safe_print(f"* {signature['name']}, {bytes_matched(signature)} bytes matched")
    return results
