#!/usr/bin/env python3
"""
Tests for the pagesync command-line layer.

Covers argument parsing, destination planning, logging setup and end-to-end
runs of main().
"""

import logging
import os
import shutil
import signal
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pagesync import CopyCancelledError, CopyConfig
from pagesync.main import CLIProcessor, main, parse_arguments, plan_copies, setup_logging


class TestArgumentParsing(unittest.TestCase):
    """Test cases for command-line argument parsing."""

    def test_basic_argument_parsing(self) -> None:
        """Test basic argument parsing."""
        args = parse_arguments(["source.db", "dest.db"])

        self.assertEqual(args.sources, [Path("source.db")])
        self.assertEqual(args.destination, Path("dest.db"))
        self.assertFalse(args.verbose)
        self.assertFalse(args.quiet)
        self.assertIsNone(args.workers)
        self.assertEqual(args.page_size, 4096)

    def test_multiple_sources(self) -> None:
        """The last positional argument is always the destination."""
        args = parse_arguments(["a.db", "b.db", "c.db", "backup"])

        self.assertEqual(args.sources, [Path("a.db"), Path("b.db"), Path("c.db")])
        self.assertEqual(args.destination, Path("backup"))

    def test_engine_options(self) -> None:
        """Test worker, page size and progress options."""
        args = parse_arguments(
            [
                "-j",
                "3",
                "-p",
                "8192",
                "--progress-batch",
                "10",
                "--progress-interval",
                "0.5",
                "source.db",
                "dest.db",
            ]
        )

        config = CopyConfig.from_args(args)
        self.assertEqual(config.workers, 3)
        self.assertEqual(config.page_size, 8192)
        self.assertEqual(config.progress_batch, 10)
        self.assertEqual(config.progress_interval, 0.5)

    def test_workers_default_to_cpu_count(self) -> None:
        config = CopyConfig.from_args(parse_arguments(["s", "d"]))
        self.assertEqual(config.workers, os.cpu_count() or 1)

    def test_single_argument_is_usage_error(self) -> None:
        with patch("sys.stderr"):
            with self.assertRaises(SystemExit) as cm:
                parse_arguments(["only-source.db"])
        self.assertEqual(cm.exception.code, 2)

    def test_verbose_flag(self) -> None:
        args = parse_arguments(["-v", "source.db", "dest.db"])
        self.assertTrue(args.verbose)


class TestLoggingSetup(unittest.TestCase):
    """Test cases for logging setup."""

    def test_setup_logging_info_level(self) -> None:
        setup_logging()
        self.assertEqual(logging.getLogger().level, logging.INFO)

    def test_setup_logging_debug_level(self) -> None:
        setup_logging(verbose=True)
        self.assertEqual(logging.getLogger().level, logging.DEBUG)

    def test_setup_logging_quiet_level(self) -> None:
        setup_logging(quiet=True)
        self.assertEqual(logging.getLogger().level, logging.WARNING)


class TestCopyPlanning(unittest.TestCase):
    """Test cases for resolving destination files."""

    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()
        self.test_path = Path(self.test_dir)

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_file_to_file(self) -> None:
        dest = self.test_path / "new.db"
        self.assertEqual(
            plan_copies([Path("/data/live.db")], dest), [(Path("/data/live.db"), dest)]
        )

    def test_into_existing_directory(self) -> None:
        """Sources land in the directory under their base names."""
        jobs = plan_copies([Path("/data/a.db"), Path("/other/b.db")], self.test_path)

        self.assertEqual(
            jobs,
            [
                (Path("/data/a.db"), self.test_path / "a.db"),
                (Path("/other/b.db"), self.test_path / "b.db"),
            ],
        )

    def test_single_source_into_directory(self) -> None:
        jobs = plan_copies([Path("/data/a.db")], self.test_path)
        self.assertEqual(jobs, [(Path("/data/a.db"), self.test_path / "a.db")])

    def test_many_sources_need_directory(self) -> None:
        with self.assertRaises(ValueError):
            plan_copies([Path("a.db"), Path("b.db")], self.test_path / "not-a-dir")


class TestMain(unittest.TestCase):
    """End-to-end runs of the CLI entry point."""

    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()
        self.test_path = Path(self.test_dir)

        self.source_a = self.test_path / "a.db"
        self.data_a = os.urandom(5 * 4096 + 100)
        self.source_a.write_bytes(self.data_a)

        self.source_b = self.test_path / "b.db"
        self.data_b = os.urandom(4096)
        self.source_b.write_bytes(self.data_b)

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_single_file_copy(self) -> None:
        dest = self.test_path / "copy.db"

        self.assertEqual(main(["-q", str(self.source_a), str(dest)]), 0)
        self.assertEqual(dest.read_bytes(), self.data_a)

    def test_copy_into_directory(self) -> None:
        backup = self.test_path / "backup"
        backup.mkdir()

        exit_code = main(["-q", str(self.source_a), str(self.source_b), str(backup)])

        self.assertEqual(exit_code, 0)
        self.assertEqual((backup / "a.db").read_bytes(), self.data_a)
        self.assertEqual((backup / "b.db").read_bytes(), self.data_b)

    def test_many_sources_without_directory_fails(self) -> None:
        dest = self.test_path / "nowhere"

        exit_code = main(["-q", str(self.source_a), str(self.source_b), str(dest)])

        self.assertEqual(exit_code, 1)
        self.assertFalse(dest.exists())

    def test_stops_at_first_failure(self) -> None:
        """A failing copy ends the run before later sources are copied."""
        backup = self.test_path / "backup"
        backup.mkdir()
        missing = self.test_path / "missing.db"

        exit_code = main(["-q", str(missing), str(self.source_b), str(backup)])

        self.assertEqual(exit_code, 1)
        self.assertFalse((backup / "b.db").exists())

    def test_directory_source_fails(self) -> None:
        source_dir = self.test_path / "srcdir"
        source_dir.mkdir()
        dest = self.test_path / "copy.db"

        self.assertEqual(main(["-q", str(source_dir), str(dest)]), 1)
        self.assertFalse(dest.exists())

    def test_invalid_page_size_fails(self) -> None:
        dest = self.test_path / "copy.db"
        self.assertEqual(main(["-q", "-p", "0", str(self.source_a), str(dest)]), 1)

    def test_cancelled_run_exit_code(self) -> None:
        """A cancelled copy exits with 130, like an interrupted command."""
        dest = self.test_path / "copy.db"

        with patch(
            "pagesync.main.copy", side_effect=CopyCancelledError("copy cancelled")
        ):
            exit_code = main(["-q", str(self.source_a), str(dest)])

        self.assertEqual(exit_code, 130)

    def test_ctrl_c_cancels_run(self) -> None:
        """SIGINT sets the cancellation token and the handler is restored after."""
        dest = self.test_path / "copy.db"
        previous_handler = signal.getsignal(signal.SIGINT)

        def interrupt_on_start(msg, *args):
            if msg.startswith("file "):
                signal.raise_signal(signal.SIGINT)

        with patch("pagesync.main.logger.info", side_effect=interrupt_on_start):
            with patch("sys.stderr") as mock_stderr:
                exit_code = main(["-q", str(self.source_a), str(dest)])

        self.assertEqual(exit_code, 130)
        self.assertTrue(mock_stderr.write.called)
        self.assertIs(signal.getsignal(signal.SIGINT), previous_handler)

    def test_processor_returns_stats(self) -> None:
        dest = self.test_path / "copy.db"
        processor = CLIProcessor(
            sources=[self.source_a],
            destination=dest,
            config=CopyConfig(workers=2),
        )

        first = processor.run()
        second = processor.run()

        self.assertEqual(first[0].pages_total, 6)
        self.assertEqual(second[0].pages_written, 0)
        self.assertEqual(second[0].pages_unmodified, 6)


if __name__ == "__main__":
    unittest.main(verbosity=2)
