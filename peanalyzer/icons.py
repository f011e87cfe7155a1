"""Extraction of group icon resources into standalone .ico files."""
import os

from pathlib import Path
from typing import List, Tuple, Union

from peanalyzer.config import logger, pefile, ICOEXTRACT_AVAILABLE, _check_lib
from peanalyzer.utils import safe_print

if ICOEXTRACT_AVAILABLE:
    from icoextract import IconExtractor, IconExtractorError, NoIconsAvailableError

    # A group whose GRPICONDIR is truncated or names a missing RT_ICON fails
    # with one of these; only that group is lost.
    ICON_CONVERSION_ERRORS = (IconExtractorError, KeyError, ValueError, IndexError, pefile.PEFormatError)


class GroupIconResource:
    """One RT_GROUP_ICON entry, convertible to the bytes of an .ico file.

    Nothing is decoded until ``to_ico_bytes`` is called.
    """

    def __init__(self, extractor: "IconExtractor", index: int, resource_id):
        self._extractor = extractor
        self.index = index
        self.resource_id = resource_id

    def to_ico_bytes(self) -> bytes:
        return self._extractor.get_icon(num=self.index).getvalue()

    def __repr__(self):
        return f"GroupIconResource(index={self.index}, resource_id={self.resource_id!r})"


def _group_icon_ids(pe_data: bytes) -> Tuple[list, bool]:
    """Resource ids of the first RT_GROUP_ICON directory, and whether any RT_ICON exists."""
    pe = pefile.PE(data=pe_data, fast_load=True)
    try:
        pe.parse_data_directories(directories=[pefile.DIRECTORY_ENTRY['IMAGE_DIRECTORY_ENTRY_RESOURCE']])
        if not hasattr(pe, 'DIRECTORY_ENTRY_RESOURCE'): return [], False
        type_ids = [entry.id for entry in pe.DIRECTORY_ENTRY_RESOURCE.entries]
        group_dir = next((entry for entry in pe.DIRECTORY_ENTRY_RESOURCE.entries
                          if entry.id == pefile.RESOURCE_TYPE['RT_GROUP_ICON']), None)
        if group_dir is None or not hasattr(group_dir, 'directory'): return [], False
        ids = [str(entry.name) if entry.name is not None else entry.id
               for entry in group_dir.directory.entries]
        return ids, pefile.RESOURCE_TYPE['RT_ICON'] in type_ids
    finally:
        pe.close()


def extract_group_icons(filepath: Union[str, Path]) -> List[GroupIconResource]:
    """All group icons of a PE file in resource directory order."""
    _check_lib("icoextract", ICOEXTRACT_AVAILABLE, "icons")
    # Loaded from memory so neither parser keeps the file mapped.
    pe_data = Path(filepath).read_bytes()
    resource_ids, has_icon_images = _group_icon_ids(pe_data)
    if not resource_ids:
        logger.info(f"No group icon resources in {filepath}")
        return []
    if not has_icon_images:
        logger.warning(f"Group icons in {filepath} have no RT_ICON resources, nothing to extract")
        return []
    try:
        extractor = IconExtractor(data=pe_data)
    except NoIconsAvailableError:
        logger.info(f"No group icon resources in {filepath}")
        return []
    return [GroupIconResource(extractor, index, resource_id)
            for index, resource_id in enumerate(resource_ids)]


def next_icon_path(folder: Union[str, Path], start: int = 0) -> Tuple[int, Path]:
    """Smallest number >= *start* whose ``<number>.ico`` does not exist in *folder*.

    The directory is checked again for every candidate, so a long run of
    taken names costs one stat call each.
    """
    nr = start
    while (Path(folder) / f"{nr}.ico").exists():
        nr += 1
    return nr, Path(folder) / f"{nr}.ico"


def extract_icons(pe_path: Union[str, Path], folder: Union[str, Path]) -> List[Path]:
    """Write every group icon of *pe_path* to a free ``<n>.ico`` in *folder*.

    An invalid folder only prints a diagnostic; nothing is extracted. A group
    that cannot be converted is skipped without using up a number.
    """
    folder_abs = os.path.abspath(folder)
    if not os.path.isdir(folder_abs):
        safe_print(f"No valid directory: {folder_abs}")
        return []
    written = []
    nr = 0
    for resource in extract_group_icons(pe_path):
        try:
            data = resource.to_ico_bytes()
        except ICON_CONVERSION_ERRORS as e:
            logger.warning(f"Skipping {resource}: {type(e).__name__}: {e}")
            continue
        nr, dest = next_icon_path(folder_abs, nr)
        with open(dest, 'wb') as f:
            f.write(data)
        safe_print(f"file {dest.name} written")
        written.append(dest)
        nr += 1
    return written
