"""
pagesync: in-place, page-wise incremental file copy.

This package copies large page-aligned files (SQLite databases and the like)
onto a destination in place, comparing the files page by page across a pool of
workers and only writing the pages that differ.
"""

from .main import (
    CLIProcessor,
    ConsistencyError,
    CopyCancelledError,
    CopyConfig,
    CopyError,
    CopyStats,
    NotRegularFileError,
    Page,
    PageCopier,
    PageIOError,
    ProgressReporter,
    copy,
    copy_async,
    discard_logf,
    enumerate_pages,
    main,
    page_count,
)

__version__ = "1.0.0"
__author__ = "pagesync project"
__description__ = "In-place incremental copy of page-aligned files"

__all__ = [
    "CLIProcessor",
    "ConsistencyError",
    "CopyCancelledError",
    "CopyConfig",
    "CopyError",
    "CopyStats",
    "NotRegularFileError",
    "Page",
    "PageCopier",
    "PageIOError",
    "ProgressReporter",
    "copy",
    "copy_async",
    "discard_logf",
    "enumerate_pages",
    "main",
    "page_count",
]
