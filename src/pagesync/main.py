#!/usr/bin/env python3
"""
pagesync - In-place, page-wise incremental file copy.

Copies a large file onto a new or existing destination in fixed-size pages and
only writes the pages whose content differs. Meant for files that are written
at page granularity (SQLite databases and the like): run a bulk copy while the
source is still live, then a fast incremental copy once it is quiesced.

Architecture:
- Core engine is UI-agnostic (logs through an injected logf, raises on error)
- Fixed worker pool draining a page queue that is filled before dispatch
- First error wins, every other worker stops before its next page
- CLI layer resolves file vs. directory destinations and picks exit codes
"""

import argparse
import asyncio
import logging
import os
import queue
import signal
import stat
import sys
import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

# Constants
PAGE_SIZE = 4 * 1024  # 4KB, the usual SQLite page
PROGRESS_BATCH = 100  # Report on every Nth completed page...
PROGRESS_INTERVAL = 1.0  # ...but at most once per second

# printf-style logger, e.g. logger.info
Logf = Callable[..., None]


def discard_logf(msg: str, *args) -> None:
    """Logf that throws away everything given to it."""


# ============================================================================
# Errors
# ============================================================================


class CopyError(Exception):
    """Base class for errors raised by the copy engine."""


class NotRegularFileError(CopyError, ValueError):
    """
    Source exists but is not a regular file.

    Parameters
    ----------
    path : Path
        Offending source path
    mode : int
        ``st_mode`` reported by stat
    """

    def __init__(self, path: Path, mode: int):
        super().__init__(
            f"only copies regular files; source {path} is {stat.filemode(mode)}"
        )
        self.path = path
        self.mode = mode


class PageIOError(CopyError, OSError):
    """A read or write of one page failed or came up short."""

    def __init__(self, message: str, *, offset: int | None = None):
        super().__init__(message)
        self.offset = offset


class CopyCancelledError(CopyError, InterruptedError):
    """The caller's cancellation token fired before the copy finished."""


class ConsistencyError(CopyError, RuntimeError):
    """Written and unmodified pages don't add up to the pages enumerated."""


# ============================================================================
# Data Models
# ============================================================================


@dataclass(frozen=True)
class Page:
    """
    A byte range of the file, the unit of comparison and copying.

    Attributes
    ----------
    offset : int
        Start of the range, always a multiple of the page size
    length : int
        Page size, or less for the tail page
    """

    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass
class CopyConfig:
    """
    Configuration for page copy operations.

    Attributes
    ----------
    page_size : int, default=4096
        Granularity pages are compared and written at
    workers : int, default=os.cpu_count()
        Number of parallel workers
    progress_batch : int, default=100
        Progress is considered every this many completed pages
    progress_interval : float, default=1.0
        Minimum seconds between two progress reports
    """

    page_size: int = PAGE_SIZE
    workers: int = field(default_factory=lambda: os.cpu_count() or 1)
    progress_batch: int = PROGRESS_BATCH
    progress_interval: float = PROGRESS_INTERVAL

    def __post_init__(self):
        """Validate configuration."""
        if self.page_size <= 0:
            raise ValueError(f"Page size must be positive, got {self.page_size}")
        if self.workers <= 0:
            raise ValueError(f"Worker count must be positive, got {self.workers}")
        if self.progress_batch <= 0:
            raise ValueError(
                f"Progress batch must be positive, got {self.progress_batch}"
            )
        if self.progress_interval < 0:
            raise ValueError(
                f"Progress interval can't be negative, got {self.progress_interval}"
            )

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "CopyConfig":
        """Create config from command-line arguments."""
        kwargs = {
            "page_size": args.page_size,
            "progress_batch": args.progress_batch,
            "progress_interval": args.progress_interval,
        }
        # Leave workers to the CPU-count default unless given
        if args.workers is not None:
            kwargs["workers"] = args.workers
        return cls(**kwargs)


@dataclass
class CopyStats:
    """
    Statistics of one successful copy.

    Attributes
    ----------
    duration : float
        Wall-clock seconds from opening the source to the last page
    page_size : int
        Page size used
    pages_written : int
        Pages that differed and were written to the destination
    pages_unmodified : int
        Pages that were already identical and left alone
    size : int
        Source (and final destination) length in bytes
    """

    duration: float
    page_size: int
    pages_written: int = 0
    pages_unmodified: int = 0
    size: int = 0

    @property
    def pages_total(self) -> int:
        return self.pages_written + self.pages_unmodified

    @property
    def bytes_total(self) -> int:
        return self.size

    @property
    def speed_mb_sec(self) -> float:
        """Calculate effective throughput in MB/s."""
        if self.duration > 0:
            return (self.size / (1024 * 1024)) / self.duration
        return 0.0


@dataclass
class WorkerTally:
    """Per-worker page counts, merged once every worker has exited."""

    written: int = 0
    unmodified: int = 0

    def add(self, written: bool) -> None:
        if written:
            self.written += 1
        else:
            self.unmodified += 1


# ============================================================================
# Page Enumeration
# ============================================================================


def page_count(size: int, page_size: int = PAGE_SIZE) -> int:
    """Number of pages a file of ``size`` bytes splits into."""
    if size < 0:
        raise ValueError(f"File size can't be negative, got {size}")
    if page_size <= 0:
        raise ValueError(f"Page size must be positive, got {page_size}")
    return -(-size // page_size)


def enumerate_pages(size: int, page_size: int = PAGE_SIZE) -> Iterator[Page]:
    """
    Split ``size`` bytes into consecutive pages.

    Parameters
    ----------
    size : int
        File length in bytes
    page_size : int, default=4096
        Length of every page but the last

    Yields
    ------
    Page
        Pages in ascending offset order, covering ``[0, size)`` exactly. The
        last page holds the remainder when ``size`` isn't a multiple of
        ``page_size``. Nothing is yielded for an empty file.

    Raises
    ------
    ValueError
        If size is negative or page_size isn't positive
    """
    page_count(size, page_size)

    offset = 0
    while offset < size:
        length = min(page_size, size - offset)
        yield Page(offset=offset, length=length)
        offset += length


# ============================================================================
# Progress Reporting & Cancellation
# ============================================================================


class ProgressReporter:
    """
    Count completed pages and log progress now and then.

    A report is emitted when the completed count is a multiple of ``batch``
    and at least ``interval`` seconds have passed since the previous one.
    Reports are advisory and never affect the copy.

    Parameters
    ----------
    logf : Logf
        printf-style logging function
    total_pages : int
        Pages enumerated for this copy
    batch : int, default=100
        Report only on every Nth completed page
    interval : float, default=1.0
        Minimum seconds between reports
    clock : Callable[[], float], default=time.monotonic
        Time source
    """

    def __init__(
        self,
        logf: Logf,
        total_pages: int,
        batch: int = PROGRESS_BATCH,
        interval: float = PROGRESS_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.logf = logf
        self.total_pages = total_pages
        self.batch = batch
        self.interval = interval
        self.clock = clock
        self.completed = 0
        self.written = 0
        self.unmodified = 0
        self.last_report: float | None = None
        self.lock = threading.Lock()

    def page_done(self, written: bool) -> None:
        """Record one finished page, reporting if it's time to."""
        with self.lock:
            self.completed += 1
            if written:
                self.written += 1
            else:
                self.unmodified += 1

            if self.completed % self.batch != 0:
                return
            now = self.clock()
            if self.last_report is not None and now - self.last_report < self.interval:
                return
            self.last_report = now
            snapshot = (self.completed, self.written, self.unmodified)

        self._emit(*snapshot)

    def report(self) -> None:
        """Log the current state unconditionally."""
        with self.lock:
            snapshot = (self.completed, self.written, self.unmodified)
        self._emit(*snapshot)

    def _emit(self, completed: int, written: int, unmodified: int) -> None:
        percent = completed * 100 / self.total_pages if self.total_pages else 100.0
        self.logf(
            "%0.2f%% done; %d pages written, %d unchanged",
            percent,
            written,
            unmodified,
        )


class FirstError:
    """
    First-error-wins cell shared by the workers of one copy.

    The first recorded error sets ``stop`` so every other worker exits before
    touching another page. Later errors are dropped.

    Parameters
    ----------
    cancel_event : threading.Event | None, default=None
        Caller's cancellation token
    """

    def __init__(self, cancel_event: threading.Event | None = None) -> None:
        self.cancel_event = cancel_event
        self.stop = threading.Event()
        self._error: BaseException | None = None
        self._lock = threading.Lock()

    @property
    def error(self) -> BaseException | None:
        return self._error

    def set(self, error: BaseException) -> bool:
        """Record ``error`` if nothing was recorded yet; True if it was kept."""
        with self._lock:
            if self._error is None:
                self._error = error
                self.stop.set()
                return True
        logger.debug("dropping error after the first one: %s", error)
        return False

    def checkpoint(self) -> bool:
        """
        Check whether a worker should stop before its next page.

        Returns
        -------
        bool
            True if another worker already failed

        Raises
        ------
        CopyCancelledError
            If the caller's cancellation token is set
        """
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise CopyCancelledError("copy cancelled")
        return self.stop.is_set()


def aggregate(
    tallies: list[WorkerTally],
    total_pages: int,
    duration: float,
    page_size: int,
    size: int = 0,
) -> CopyStats:
    """
    Merge per-worker tallies into the final stats.

    Raises
    ------
    ConsistencyError
        If written + unmodified pages don't match ``total_pages``
    """
    written = sum(t.written for t in tallies)
    unmodified = sum(t.unmodified for t in tallies)
    if written + unmodified != total_pages:
        raise ConsistencyError(
            f"not consistent; expected {total_pages} pages total, "
            f"got {written} written + {unmodified} unmodified"
        )
    return CopyStats(
        duration=duration,
        page_size=page_size,
        pages_written=written,
        pages_unmodified=unmodified,
        size=size,
    )


def _format_duration(seconds: float) -> str:
    return f"{seconds:.3f}s"


# ============================================================================
# Page I/O
# ============================================================================


def _read_page(fd: int, view: memoryview, offset: int, what: str) -> None:
    """Fill ``view`` from ``fd`` at ``offset``, failing on EOF."""
    done = 0
    while done < len(view):
        try:
            n = os.preadv(fd, [view[done:]], offset + done)
        except OSError as e:
            raise PageIOError(
                f"reading {what} at offset {offset}: {e}", offset=offset
            ) from e
        if n == 0:
            raise PageIOError(
                f"short read of {what} at offset {offset}: "
                f"got {done} of {len(view)} bytes",
                offset=offset,
            )
        done += n


def _write_page(fd: int, view: memoryview, offset: int) -> None:
    done = 0
    while done < len(view):
        try:
            done += os.pwrite(fd, view[done:], offset + done)
        except OSError as e:
            raise PageIOError(
                f"writing destination at offset {offset}: {e}", offset=offset
            ) from e


def copy_page(
    src_fd: int, dst_fd: int, page: Page, buf_src: bytearray, buf_dst: bytearray
) -> bool:
    """
    Copy one page if it differs.

    Returns
    -------
    bool
        True if the page was written, False if it was already identical
    """
    src_view = memoryview(buf_src)[: page.length]
    dst_view = memoryview(buf_dst)[: page.length]
    _read_page(src_fd, src_view, page.offset, "source")
    _read_page(dst_fd, dst_view, page.offset, "destination")
    if src_view == dst_view:
        return False
    _write_page(dst_fd, src_view, page.offset)
    return True


async def _read_page_async(f, view: memoryview, offset: int, what: str) -> None:
    done = 0
    try:
        await f.seek(offset)
        while done < len(view):
            n = await f.readinto(view[done:])
            if not n:
                break
            done += n
    except OSError as e:
        raise PageIOError(
            f"reading {what} at offset {offset}: {e}", offset=offset
        ) from e
    if done < len(view):
        raise PageIOError(
            f"short read of {what} at offset {offset}: "
            f"got {done} of {len(view)} bytes",
            offset=offset,
        )


async def _write_page_async(f, view: memoryview, offset: int) -> None:
    done = 0
    try:
        await f.seek(offset)
        while done < len(view):
            done += await f.write(view[done:])
    except OSError as e:
        raise PageIOError(
            f"writing destination at offset {offset}: {e}", offset=offset
        ) from e


async def copy_page_async(
    src, dst, page: Page, buf_src: bytearray, buf_dst: bytearray
) -> bool:
    """Async twin of :func:`copy_page` over aiofiles handles."""
    src_view = memoryview(buf_src)[: page.length]
    dst_view = memoryview(buf_dst)[: page.length]
    await _read_page_async(src, src_view, page.offset, "source")
    await _read_page_async(dst, dst_view, page.offset, "destination")
    if src_view == dst_view:
        return False
    await _write_page_async(dst, src_view, page.offset)
    return True


# ============================================================================
# Core Copy Engine (UI-agnostic)
# ============================================================================


def _creating_opener(mode: int) -> Callable[[str, int], int]:
    """Opener for open()/aiofiles.open() that creates missing files with ``mode``."""

    def opener(path: str, flags: int) -> int:
        return os.open(path, flags | os.O_CREAT, mode)

    return opener


class PageCopier:
    """
    Concurrent page-wise copy of ``source`` onto ``destination``.

    The destination is opened read-write (created with the source's
    permission bits if missing) and forced to the source's length before any
    page is looked at. Each page is read from both files, compared, and
    written only when the bytes differ.

    Parameters
    ----------
    source : Path
        Regular file to copy from
    destination : Path
        File to update in place
    config : CopyConfig | None, default=None
        Page size, worker count and progress settings
    logf : Logf | None, default=None
        printf-style logging function (defaults to the module logger at INFO)
    cancel_event : threading.Event | None, default=None
        Set it to abort the copy with CopyCancelledError
    """

    def __init__(
        self,
        source: Path,
        destination: Path,
        config: CopyConfig | None = None,
        logf: Logf | None = None,
        cancel_event: threading.Event | None = None,
    ):
        self.source = Path(source)
        self.destination = Path(destination)
        self.config = config or CopyConfig()
        self.logf = logf or logger.info
        self.cancel_event = cancel_event

    def copy(self) -> CopyStats:
        """
        Execute the copy with a pool of worker threads.

        Returns
        -------
        CopyStats
            Page counts and timing

        Raises
        ------
        OSError
            If source or destination can't be opened or stat'ed
        NotRegularFileError
            If the source isn't a regular file
        PageIOError
            If reading or writing a page failed
        CopyCancelledError
            If the cancellation token was set
        ConsistencyError
            If the page counts don't add up
        """
        start_time = time.monotonic()
        # Path stat first so FIFOs and devices are rejected before open blocks
        self._stat_source(os.stat(self.source))

        src_fd = os.open(self.source, os.O_RDONLY)
        try:
            st = self._stat_source(os.fstat(src_fd))
            size = st.st_size
            dst_fd = os.open(
                self.destination, os.O_RDWR | os.O_CREAT, stat.S_IMODE(st.st_mode)
            )
            try:
                os.ftruncate(dst_fd, size)
                return self._dispatch(src_fd, dst_fd, size, start_time)
            finally:
                os.close(dst_fd)
        finally:
            os.close(src_fd)

    async def copy_async(self) -> CopyStats:
        """
        Execute the copy with a pool of asyncio tasks over aiofiles.

        Each task opens its own unbuffered handles on both files. Cancelling
        the calling task cancels and awaits every worker before
        ``asyncio.CancelledError`` propagates. Raises the same errors as
        :meth:`copy`.
        """
        start_time = time.monotonic()
        st = self._stat_source(await aiofiles.os.stat(self.source))
        size = st.st_size

        async with aiofiles.open(
            self.destination,
            "r+b",
            buffering=0,
            opener=_creating_opener(stat.S_IMODE(st.st_mode)),
        ) as dst:
            await dst.truncate(size)

        pages: asyncio.Queue = asyncio.Queue()
        for page in enumerate_pages(size, self.config.page_size):
            pages.put_nowait(page)
        total_pages = pages.qsize()
        reporter, first_error = self._prepare(size, total_pages)

        tasks = [
            asyncio.create_task(self._async_worker(pages, reporter, first_error))
            for _ in range(self.config.workers)
        ]
        try:
            tallies = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return self._finish(
            first_error, reporter, tallies, total_pages, size, start_time
        )

    # ------------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------------

    def _stat_source(self, st: os.stat_result) -> os.stat_result:
        if not stat.S_ISREG(st.st_mode):
            raise NotRegularFileError(self.source, st.st_mode)
        return st

    def _prepare(
        self, size: int, total_pages: int
    ) -> tuple[ProgressReporter, FirstError]:
        workers = self.config.workers
        self.logf("file %s is %d bytes, %d pages", self.source, size, total_pages)
        self.logf(
            "over %d workers, %d pages per worker", workers, total_pages // workers
        )
        reporter = ProgressReporter(
            self.logf,
            total_pages,
            batch=self.config.progress_batch,
            interval=self.config.progress_interval,
        )
        return reporter, FirstError(self.cancel_event)

    def _dispatch(
        self, src_fd: int, dst_fd: int, size: int, start_time: float
    ) -> CopyStats:
        pages: queue.Queue = queue.Queue()
        for page in enumerate_pages(size, self.config.page_size):
            pages.put_nowait(page)
        total_pages = pages.qsize()
        reporter, first_error = self._prepare(size, total_pages)

        with ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="pagesync"
        ) as executor:
            futures = [
                executor.submit(
                    self._worker, src_fd, dst_fd, pages, reporter, first_error
                )
                for _ in range(self.config.workers)
            ]
            tallies = [future.result() for future in futures]

        return self._finish(
            first_error, reporter, tallies, total_pages, size, start_time
        )

    def _finish(
        self,
        first_error: FirstError,
        reporter: ProgressReporter,
        tallies: list[WorkerTally],
        total_pages: int,
        size: int,
        start_time: float,
    ) -> CopyStats:
        if first_error.error is not None:
            raise first_error.error

        reporter.report()
        duration = time.monotonic() - start_time
        self.logf("Done in %s", _format_duration(duration))
        return aggregate(
            tallies, total_pages, duration, self.config.page_size, size=size
        )

    def _worker(
        self,
        src_fd: int,
        dst_fd: int,
        pages: queue.Queue,
        reporter: ProgressReporter,
        first_error: FirstError,
    ) -> WorkerTally:
        """
        Worker thread: drain the page queue until it's empty or we must stop.

        Buffers are allocated once and reused for every page this worker
        handles. Any exception is handed to ``first_error``.
        """
        tally = WorkerTally()
        buf_src = bytearray(self.config.page_size)
        buf_dst = bytearray(self.config.page_size)

        try:
            while not first_error.checkpoint():
                try:
                    page = pages.get_nowait()
                except queue.Empty:
                    break
                written = copy_page(src_fd, dst_fd, page, buf_src, buf_dst)
                tally.add(written)
                reporter.page_done(written)
        except Exception as e:
            first_error.set(e)

        return tally

    async def _async_worker(
        self,
        pages: asyncio.Queue,
        reporter: ProgressReporter,
        first_error: FirstError,
    ) -> WorkerTally:
        tally = WorkerTally()
        buf_src = bytearray(self.config.page_size)
        buf_dst = bytearray(self.config.page_size)

        try:
            async with aiofiles.open(
                self.source, "rb", buffering=0
            ) as src, aiofiles.open(self.destination, "r+b", buffering=0) as dst:
                while not first_error.checkpoint():
                    try:
                        page = pages.get_nowait()
                    except asyncio.QueueEmpty:
                        break
                    written = await copy_page_async(src, dst, page, buf_src, buf_dst)
                    tally.add(written)
                    reporter.page_done(written)
        except Exception as e:
            first_error.set(e)

        return tally


def copy(
    source: Path,
    destination: Path,
    *,
    logf: Logf | None = None,
    cancel_event: threading.Event | None = None,
    config: CopyConfig | None = None,
) -> CopyStats:
    """
    Copy ``source`` onto ``destination`` in place, skipping identical pages.

    See :class:`PageCopier` for parameters and :meth:`PageCopier.copy` for
    the errors raised.
    """
    return PageCopier(source, destination, config, logf, cancel_event).copy()


async def copy_async(
    source: Path,
    destination: Path,
    *,
    logf: Logf | None = None,
    cancel_event: threading.Event | None = None,
    config: CopyConfig | None = None,
) -> CopyStats:
    """Coroutine version of :func:`copy`."""
    return await PageCopier(
        source, destination, config, logf, cancel_event
    ).copy_async()


# ============================================================================
# CLI Layer (Presentation)
# ============================================================================


def plan_copies(sources: list[Path], destination: Path) -> list[tuple[Path, Path]]:
    """
    Pair every source with the file it's copied onto.

    Parameters
    ----------
    sources : list[Path]
        One or more source files
    destination : Path
        Destination file, or an existing directory

    Returns
    -------
    list[tuple[Path, Path]]
        (source, destination file) pairs in argument order

    Raises
    ------
    ValueError
        If several sources are given and the destination isn't a directory
    """
    if destination.is_dir():
        return [(source, destination / source.name) for source in sources]
    if len(sources) > 1:
        raise ValueError(
            "with more than two arguments, final one must be a directory"
        )
    return [(sources[0], destination)]


class CLIProcessor:
    """
    Run one copy per (source, destination) pair, stopping at the first failure.

    Parameters
    ----------
    sources : list[Path]
        Source files
    destination : Path
        Destination file or directory
    config : CopyConfig
        Engine configuration
    cancel_event : threading.Event | None, default=None
        Token shared by every copy of this run
    """

    def __init__(
        self,
        sources: list[Path],
        destination: Path,
        config: CopyConfig,
        cancel_event: threading.Event | None = None,
    ):
        self.sources = sources
        self.destination = destination
        self.config = config
        self.cancel_event = cancel_event or threading.Event()

    def run(self) -> list[CopyStats]:
        """
        Execute every planned copy in order.

        Returns
        -------
        list[CopyStats]
            Stats of each copy

        Raises
        ------
        Exception
            Whatever the first failing copy raised
        """
        results = []
        jobs = plan_copies(self.sources, self.destination)

        for i, (source, dest) in enumerate(jobs, 1):
            if len(jobs) > 1:
                logging.info(f"File {i}/{len(jobs)}: {source.name}")
            stats = copy(
                source,
                dest,
                logf=logger.info,
                cancel_event=self.cancel_event,
                config=self.config,
            )
            self._show_result_summary(source, dest, stats)
            results.append(stats)

        return results

    def _show_result_summary(self, source: Path, dest: Path, stats: CopyStats) -> None:
        logging.info(
            f"{source} -> {dest}: {stats.pages_written} pages written, "
            f"{stats.pages_unmodified} unchanged "
            f"({stats.speed_mb_sec:.2f} MB/s, {stats.size / (1024 * 1024):.2f} MB)"
        )


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Configure logging for the application.

    Parameters
    ----------
    verbose : bool
        Enable debug logging
    quiet : bool
        Only log warnings and errors
    """
    if verbose:
        log_level = logging.DEBUG
    elif quiet:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns
    -------
    argparse.Namespace
        Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        prog="pagesync",
        description="Copy a file in place, writing only the pages that changed",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s live.db /mnt/new/live.db          # Bulk copy, then rerun once quiesced
  %(prog)s a.db b.db /mnt/new/               # Copy several files into a directory
  %(prog)s -j 4 -p 8192 big.db /mnt/new/     # 4 workers, 8KB pages
        """,
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )

    parser.add_argument(
        "-q", "--quiet", action="store_true", help="Only report warnings and errors"
    )

    parser.add_argument(
        "-j",
        "--workers",
        type=int,
        default=None,
        help="Number of parallel workers (default: CPU count)",
    )

    parser.add_argument(
        "-p",
        "--page-size",
        type=int,
        default=PAGE_SIZE,
        help=f"Page size in bytes (default: {PAGE_SIZE})",
    )

    parser.add_argument(
        "--progress-batch",
        type=int,
        default=PROGRESS_BATCH,
        help=f"Consider reporting progress every N pages (default: {PROGRESS_BATCH})",
    )

    parser.add_argument(
        "--progress-interval",
        type=float,
        default=PROGRESS_INTERVAL,
        help=f"Minimum seconds between progress reports (default: {PROGRESS_INTERVAL})",
    )

    parser.add_argument("sources", nargs="+", type=Path, help="Source file(s)")

    parser.add_argument(
        "destination", type=Path, help="Destination file or directory"
    )

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = parse_arguments(argv)
    setup_logging(args.verbose, args.quiet)

    cancel_event = threading.Event()
    interrupted = False

    def handle_interrupt(signum, frame):
        nonlocal interrupted
        if not interrupted:
            interrupted = True
            cancel_event.set()
            print("\n\nCopy interrupted.", file=sys.stderr)

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        config = CopyConfig.from_args(args)
        processor = CLIProcessor(
            sources=args.sources,
            destination=args.destination,
            config=config,
            cancel_event=cancel_event,
        )
        processor.run()
        return 0

    except CopyCancelledError as e:
        logging.error(f"Copy cancelled: {e}")
        return 130
    except NotRegularFileError as e:
        logging.error(f"Invalid source: {e}")
        return 1
    except FileNotFoundError as e:
        logging.error(f"File not found: {e}")
        return 1
    except ValueError as e:
        logging.error(f"Invalid parameter: {e}")
        return 1
    except OSError as e:
        logging.error(f"I/O error: {e}")
        return 1
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)


if __name__ == "__main__":
    sys.exit(main())
