"""Unit tests for collection lifecycle logging."""

from __future__ import annotations

import datetime as dt

import pytest

from restic_exporter.collection import (
    CollectionEventLogger,
    CollectionEventType,
    CollectionRun,
    RepositoryResult,
)
from restic_exporter.reader import RepositoryOpenError
from tests.helpers.femtologging_capture import capture_femto_logs

LOGGER_NAME = "restic_exporter.collection.observability"


class TestCollectionEventLogger:
    """Tests for ``CollectionEventLogger`` structured log events."""

    @pytest.fixture
    def events(self) -> CollectionEventLogger:
        """Return a fresh collection event logger."""
        return CollectionEventLogger()

    def test_run_completed_reports_errors_and_duration(
        self, events: CollectionEventLogger
    ) -> None:
        """Completion events carry repository and error totals."""
        run = CollectionRun.compose(
            [RepositoryResult(url="rest:http://a/"), RepositoryResult.failed("b2:x:y")],
            completed_at=dt.datetime(2024, 7, 1, tzinfo=dt.UTC),
        )
        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_run_completed(run=run, duration=dt.timedelta(seconds=1.5))
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "INFO"
        assert CollectionEventType.RUN_COMPLETED in record.message
        assert "repositories=2 errors=1 duration_seconds=1.500" in record.message

    def test_run_rejected_is_a_warning(self, events: CollectionEventLogger) -> None:
        """Dropped run requests are logged with their reason."""
        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_run_rejected(reason="busy")
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level in {"WARN", "WARNING"}
        assert "reason=busy" in record.message

    def test_repository_failed_names_stage_and_error(
        self, events: CollectionEventLogger
    ) -> None:
        """Failure events identify the repository, stage and error type."""
        error = RepositoryOpenError.unsupported_backend("s3:bucket")
        with capture_femto_logs(LOGGER_NAME) as capture:
            events.log_repository_failed(url="s3:bucket", stage="open", error=error)
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "ERROR"
        assert CollectionEventType.REPOSITORY_FAILED in record.message
        assert "url=s3:bucket stage=open error_type=RepositoryOpenError" in record.message
