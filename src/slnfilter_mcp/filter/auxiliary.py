"""Mirror per-solution ReSharper settings next to a reduced solution."""

from __future__ import annotations

import logging
import os
import shutil

logger = logging.getLogger(__name__)

# Appended to the full solution file name, e.g. App.sln.DotSettings
AUXILIARY_SUFFIXES: tuple[str, ...] = (".DotSettings", ".DotSettings.user")


def auxiliary_file_pairs(source_path: str, output_path: str) -> list[tuple[str, str]]:
    """(source, destination) pairs for every auxiliary file kind."""
    return [(source_path + suffix, output_path + suffix) for suffix in AUXILIARY_SUFFIXES]


def copy_auxiliary_files(source_path: str, output_path: str) -> list[str]:
    """Copy the source solution's auxiliary files next to the output solution.

    Missing companions are skipped. A failed copy is logged and skipped.

    Returns:
        Destination paths that were written
    """
    copied: list[str] = []
    for source, destination in auxiliary_file_pairs(source_path, output_path):
        if not os.path.isfile(source):
            continue
        try:
            shutil.copy2(source, destination)
        except OSError as e:
            logger.warning(f"Failed to copy {source} -> {destination}: {e}")
            continue
        copied.append(destination)
        logger.debug(f"Copied {source} -> {destination}")
    return copied
