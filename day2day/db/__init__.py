"""
day2day Data Layer

Tabular I/O with Polars and folder summaries.

Usage:
    from day2day.db import read_table, write_parquet_atomic, db_summarize

    observations = read_table('observations.parquet')
    write_parquet_atomic(smoothed, 'smoothed.parquet')
    db_summarize('data/')
"""

from day2day.db.polars_io import (
    read_table,
    table_columns,
    write_parquet_atomic,
    TABLE_SUFFIXES,
)

from day2day.db.summarize import (
    db_summarize,
    list_data_files,
    iter_objects,
    DEFAULT_FILENAME,
    DEFAULT_PATTERNS,
)

__all__ = [
    'read_table',
    'table_columns',
    'write_parquet_atomic',
    'TABLE_SUFFIXES',
    'db_summarize',
    'list_data_files',
    'iter_objects',
    'DEFAULT_FILENAME',
    'DEFAULT_PATTERNS',
]
