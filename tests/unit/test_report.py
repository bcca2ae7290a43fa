# tests/unit/test_report.py
"""Unit tests for the run report and the failed-key Parquet writer."""

from pathlib import Path

import polars as pl
import pytest

from bucket_sync.report import FAILED_KEYS_COLUMN, SyncReport, write_failed_keys


def test_write_failed_keys(tmp_path: Path) -> None:
    """
    Tests that failed keys are written sorted, in a single string column.

    Args:
        tmp_path (Path): The temporary Path to use.
    """
    path: Path = tmp_path / "nested" / "failed.parquet"

    write_failed_keys(path, ["z/1", "a/2", "m"])

    df: pl.DataFrame = pl.read_parquet(path)
    assert df.columns == [FAILED_KEYS_COLUMN]
    assert df.get_column(FAILED_KEYS_COLUMN).to_list() == ["a/2", "m", "z/1"]


def test_write_failed_keys_empty(tmp_path: Path) -> None:
    """
    Tests that an empty key list still produces a readable file.

    Args:
        tmp_path (Path): The temporary Path to use.
    """
    path: Path = tmp_path / "failed.parquet"

    write_failed_keys(path, [])

    assert pl.read_parquet(path).height == 0


def test_report_summary_lists_failed_keys(caplog: pytest.LogCaptureFixture) -> None:
    """
    Tests the success flag and that every failed key is logged.

    Args:
        caplog (pytest.LogCaptureFixture): Pytest fixture to capture log output.
    """
    report: SyncReport = SyncReport(
        source_count=4,
        destination_count=1,
        missing_count=3,
        copied_count=1,
        failed_keys=["b", "c"],
    )

    with caplog.at_level("INFO"):
        report.log_summary()

    assert not report.succeeded
    assert "Compared 4 source and 1 destination objects" in caplog.text
    assert "2 objects failed to copy" in caplog.text
    assert "  b" in caplog.text and "  c" in caplog.text
