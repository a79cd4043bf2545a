"""
KMZ packaging.

A KMZ is a ZIP holding doc.kml plus the icon directory referenced by the
style hrefs ('<icon_dir>-<icon_size>/...').
"""

import io
import logging
import os
import zipfile
from typing import BinaryIO, Optional

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

KML_ENTRY_NAME = "doc.kml"


def write_kmz(
    kml: bytes,
    icon_directory: Optional[str] = None,
    output: Optional[BinaryIO] = None,
    icon_root: str = "."
) -> BinaryIO:
    """
    Write a KMZ archive.

    Args:
        kml: Serialized KML document
        icon_directory: Directory name as referenced by the icon hrefs
        output: Writable binary stream (a new BytesIO if not given)
        icon_root: Where icon_directory lives on disk

    Returns:
        The output stream, positioned at the start when it is seekable

    Raises:
        ConfigurationError: icon_directory resolves outside icon_root
    """
    source = None
    if icon_directory:
        root = os.path.realpath(icon_root)
        source = os.path.realpath(os.path.join(root, icon_directory))
        if source == root or os.path.commonpath([root, source]) != root:
            raise ConfigurationError(
                f"Icon directory '{icon_directory}' is outside the icon root"
            )

    buffer = output if output is not None else io.BytesIO()

    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        archive.writestr(KML_ENTRY_NAME, kml)

        if source is not None:
            if not os.path.isdir(source):
                logger.warning(f"Icon directory '{source}' not found; KMZ written without icons")
            else:
                count = 0
                for dirpath, _, filenames in os.walk(source):
                    for filename in sorted(filenames):
                        path = os.path.join(dirpath, filename)
                        arcname = os.path.relpath(path, root)
                        archive.write(path, arcname.replace(os.sep, "/"))
                        count += 1
                logger.debug(f"Added {count} icons from '{source}'")

    if buffer.seekable():
        buffer.seek(0)
    return buffer
