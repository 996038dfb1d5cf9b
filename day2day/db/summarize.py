"""
Data Folder Summary
===================

Writes a plain-text inventory of the data files found in a folder: one
entry per file, one sub-entry per stored object, followed by the object's
column (field) names.

Object model per format:
    .parquet / .csv   one object named after the file stem, names = columns
    .npz              one object per stored array, names = structured dtype
                      fields; arrays without fields are not listed

Usage:
    from day2day.db.summarize import db_summarize

    db_summarize('data/', filename='data/summary.txt')
"""

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from day2day.db.polars_io import table_columns

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "summary-databases.txt"
DEFAULT_PATTERNS = ("*.parquet", "*.csv", "*.npz")

RULE = "------------------------------------------------"
TITLE = "Summary of databases inside the provided folder."


def list_data_files(path_data: Union[str, Path],
                    patterns: Sequence[str] = DEFAULT_PATTERNS) -> List[Path]:
    """Data files directly inside path_data matching any pattern, sorted by name."""
    folder = Path(path_data)
    if not folder.is_dir():
        raise FileNotFoundError(f"Directory not found: {folder}")

    found = {p for pattern in patterns for p in folder.glob(pattern) if p.is_file()}
    return sorted(found, key=lambda p: p.name)


def iter_objects(path: Path) -> Iterator[Tuple[str, Optional[List[str]]]]:
    """Yield (object_name, names) for every object stored in a data file."""
    if path.suffix.lower() == '.npz':
        with np.load(path, allow_pickle=False) as archive:
            for key in archive.files:
                names = archive[key].dtype.names
                yield key, list(names) if names else None
    else:
        yield path.stem, table_columns(path)


def db_summarize(
    path_data: Union[str, Path],
    filename: Union[str, Path] = DEFAULT_FILENAME,
    patterns: Optional[Sequence[str]] = None,
) -> Path:
    """
    Summarize the data files inside a folder into a text file.

    Args:
        path_data: Folder to scan (not recursive)
        filename: Output text file (overwritten)
        patterns: Glob patterns selecting data files

    Returns:
        Path of the written summary
    """
    files = list_data_files(path_data, patterns or DEFAULT_PATTERNS)
    out_path = Path(filename)

    lines = [RULE, TITLE, RULE]
    for i, data_file in enumerate(files, start=1):
        lines.append("")
        lines.append(f"{i}) Data file: {data_file.name}")
        for j, (obj_name, names) in enumerate(iter_objects(data_file), start=1):
            if names is None:
                continue
            lines.append(f"{i}.{j}) Object: {obj_name}")
            lines.append(" ".join(names))

    out_path.write_text("\n".join(lines) + "\n")
    logger.info(f"Summarized {len(files)} data files from {path_data} into {out_path}")

    return out_path
