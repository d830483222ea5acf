"""Unit tests for single-repository collection."""

from __future__ import annotations

import asyncio

import pytest

from restic_exporter.collection import CollectionEventType, collect_repository
from tests.helpers.fake_reader import FakeReader, ScriptedRepository, repo, summary
from tests.helpers.femtologging_capture import capture_femto_logs

URL = "rest:http://nas/"


@pytest.mark.asyncio
async def test_success_aggregates_and_releases_once() -> None:
    """A readable repository yields its backup sets and is released once."""
    reader = FakeReader(
        {
            URL: ScriptedRepository(
                snapshots=[
                    summary("u1", "h1", hours=1),
                    summary("u1", "h1", hours=5),
                    summary("u2", "h1", hours=2),
                ]
            )
        }
    )

    result = await collect_repository(reader, repo(URL))

    assert result.ok
    assert [(s.host, s.owner, s.snapshot_count) for s in result.backup_sets] == [
        ("h1", "u1", 2),
        ("h1", "u2", 1),
    ]
    assert reader.releases == [URL]


@pytest.mark.asyncio
async def test_open_failure_reports_error_without_release() -> None:
    """A failed open is a read error and nothing needs releasing."""
    reader = FakeReader({URL: ScriptedRepository(fail_open=True)})

    result = await collect_repository(reader, repo(URL))

    assert result.read_error_count == 1
    assert result.backup_sets == ()
    assert reader.releases == []


@pytest.mark.asyncio
async def test_mid_enumeration_failure_discards_partial_sets() -> None:
    """A read failure after some snapshots yields no partial sets."""
    reader = FakeReader(
        {
            URL: ScriptedRepository(
                snapshots=[summary("u1", "h1"), summary("u1", "h1"), summary("u2", "h2")],
                fail_after=2,
            )
        }
    )

    result = await collect_repository(reader, repo(URL))

    assert result.read_error_count == 1
    assert result.backup_sets == ()
    assert reader.releases == [URL]


@pytest.mark.asyncio
async def test_release_failure_is_a_read_error() -> None:
    """A releaser that raises turns an otherwise good read into an error."""
    reader = FakeReader(
        {URL: ScriptedRepository(snapshots=[summary("u1", "h1")], fail_release=True)}
    )

    with capture_femto_logs("restic_exporter.collection.observability") as capture:
        result = await collect_repository(reader, repo(URL))
        record = capture.wait_for_message(CollectionEventType.RELEASE_FAILED)

    assert result.read_error_count == 1
    assert result.backup_sets == ()
    assert reader.releases == [URL]
    assert record.level == "ERROR"
    assert URL in record.message


@pytest.mark.asyncio
async def test_cancellation_still_releases() -> None:
    """Cancelling a task mid-enumeration runs the releaser before propagating."""
    gate = asyncio.Event()
    reader = FakeReader({URL: ScriptedRepository(snapshots=[summary("u", "h")], gate=gate)})

    task = asyncio.create_task(collect_repository(reader, repo(URL)))
    while not reader.opens:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert reader.releases == [URL]


@pytest.mark.asyncio
async def test_credentials_are_passed_to_reader() -> None:
    """The resolved credential and backend extra reach the reader."""
    reader = FakeReader()

    await collect_repository(reader, repo(URL))

    assert reader.credentials[URL] == ("hunter2", None)
