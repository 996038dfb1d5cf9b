"""
day2day Polars I/O Utilities

Tabular reads and atomic Parquet writes.

Key Functions:
    read_table(path) - Read parquet or csv, return empty DataFrame if missing
    table_columns(path) - Column names without loading the data
    write_parquet_atomic(df, path) - Write to temp file, rename (atomic)
"""

from pathlib import Path
from typing import List, Optional, Union

import polars as pl

from day2day.engines.validation import InvalidArgument

TABLE_SUFFIXES = ('.parquet', '.csv')


def _check_suffix(path: Path) -> str:
    suffix = path.suffix.lower()
    if suffix not in TABLE_SUFFIXES:
        raise InvalidArgument(
            f"Unsupported table format: {path.name}. Supported: {list(TABLE_SUFFIXES)}"
        )
    return suffix


def read_table(
    path: Union[str, Path],
    columns: Optional[List[str]] = None,
) -> pl.DataFrame:
    """
    Read a parquet or csv file, returning empty DataFrame if file doesn't exist.

    Args:
        path: Path to the table
        columns: Optional list of columns to read (projection pushdown)

    Returns:
        Polars DataFrame (empty if file doesn't exist)
    """
    path = Path(path)
    suffix = _check_suffix(path)
    if not path.exists():
        return pl.DataFrame()

    if suffix == '.parquet':
        return pl.read_parquet(path, columns=columns)
    return pl.read_csv(path, columns=columns)


def table_columns(path: Union[str, Path]) -> List[str]:
    """Column names of a parquet or csv file, read from the schema only."""
    path = Path(path)
    suffix = _check_suffix(path)
    if suffix == '.parquet':
        return pl.scan_parquet(path).collect_schema().names()
    return pl.scan_csv(path).collect_schema().names()


def write_parquet_atomic(
    df: pl.DataFrame,
    path: Union[str, Path],
    compression: str = "zstd",
) -> int:
    """
    Atomically write a DataFrame to a parquet file.

    Writes to a temporary file first, then renames to target path.
    This ensures the target file is never in a partial/corrupt state.

    Args:
        df: Polars DataFrame to write
        path: Target path for parquet file
        compression: Compression algorithm (zstd, snappy, lz4, etc.)

    Returns:
        Number of rows written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = path.with_suffix(".parquet.tmp")

    try:
        df.write_parquet(temp_path, compression=compression)
        temp_path.replace(path)
        return len(df)
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
