"""
test_feed_generator.py — Tests for alert → feed aggregation.

Covers:
    • Entry projection (info[0] only, leading "; " area separator,
      parallel geocode lists, polygons and circles)
    • Directory walk (lexicographic order, subdirectories skipped)
    • Aborting on unreadable / undecodable alerts
    • The aggregation job (publish, keep previous feed on failure)

Run with:
    pytest tests/test_feed_generator.py -v
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from capship.app.atom.models import feed_to_xml, parse_feed
from capship.app.cap.models import Alert, Area, Info, parse_alert
from capship.app.core.errors import DecodeError
from capship.app.feeds.generator import FeedIdentity, alert_files, alert_to_entry, generate_feed
from capship.app.feeds.jobs import AggregationJob, JobStatus
from capship.app.shared.named_value import NamedValue
from capship.app.storage.store import DocumentKind, DocumentStore

HOST = "http://foo.com/"


def _make_identity() -> FeedIdentity:
    return FeedIdentity(
        host_name=HOST,
        title="Current Alerts Issued by foo.com",
        author="w-capship.webmaster@foo.com",
        generator="capship CAP Server",
        logo="http://alerts.weather.gov/images/xml_logo.gif",
    )


def _make_alert(identifier: str = "A-1", areas=None, infos=None) -> Alert:
    if infos is None:
        infos = [Info(
            category=["Met", "Safety"],
            event="Flood Warning",
            urgency="Immediate",
            severity="Severe",
            certainty="Observed",
            effective="2018-08-15T14:52:00-08:00",
            expires="2018-08-16T07:00:00-08:00",
            headline="Flood Warning for Zone 1",
            description="River above flood stage.",
            area=areas if areas is not None else [Area(area_desc="Zone 1")],
        )]
    return Alert(
        identifier=identifier,
        sender="ops@foo.com",
        sent="2018-08-15T14:52:00-08:00",
        status="Actual",
        msg_type="Alert",
        scope="Public",
        info=infos,
    )


def _write_alert(directory: Path, name: str, alert: Alert) -> Path:
    path = directory / name
    path.write_bytes(alert.to_xml())
    return path


# ═══════════════════════════════════════════════════════════════════════════
# Section 1: Projection
# ═══════════════════════════════════════════════════════════════════════════

class TestAlertToEntry:
    """One alert → one entry."""

    def test_header_fields(self):
        entry = alert_to_entry(_make_alert(), HOST + "alerts/a1.xml")
        assert entry.id == "A-1"
        assert entry.title.content == "Flood Warning for Zone 1"
        assert entry.updated == "2018-08-15T14:52:00-08:00"
        assert entry.published == "2018-08-15T14:52:00-08:00"
        assert entry.author[0].name == "ops@foo.com"
        assert entry.summary.content == "River above flood stage."
        assert entry.link[0].href == "http://foo.com/alerts/a1.xml"
        assert [c.content for c in entry.category] == ["Met", "Safety"]

    def test_cap_fields(self):
        entry = alert_to_entry(_make_alert(), "x")
        assert entry.event == "Flood Warning"
        assert entry.effective == "2018-08-15T14:52:00-08:00"
        assert entry.expires == "2018-08-16T07:00:00-08:00"
        assert entry.status == "Actual"
        assert entry.msg_type == "Alert"
        assert entry.urgency == "Immediate"
        assert entry.severity == "Severe"
        assert entry.certainty == "Observed"

    def test_leading_area_separator(self):
        areas = [Area(area_desc="Zone 1"), Area(area_desc="Zone 2")]
        entry = alert_to_entry(_make_alert(areas=areas), "x")
        assert entry.area_desc == "; Zone 1; Zone 2"

    def test_single_area_keeps_separator(self):
        assert alert_to_entry(_make_alert(), "x").area_desc == "; Zone 1"

    def test_no_areas(self):
        entry = alert_to_entry(_make_alert(areas=[]), "x")
        assert entry.area_desc == ""
        assert entry.geocode.names == []

    def test_polygons_and_circles_concatenated(self):
        areas = [
            Area(area_desc="A", polygon=["1,1 1,2 2,2 1,1"], circle=["32.9,-115.5 0"]),
            Area(area_desc="B", polygon=["3,3 3,4 4,4 3,3", "5,5 5,6 6,6 5,5"]),
        ]
        entry = alert_to_entry(_make_alert(areas=areas), "x")
        assert entry.polygon == ["1,1 1,2 2,2 1,1", "3,3 3,4 4,4 3,3", "5,5 5,6 6,6 5,5"]
        assert entry.circle == ["32.9,-115.5 0"]

    def test_geocodes_are_parallel_and_unmerged(self):
        areas = [
            Area(area_desc="A", geocode=[NamedValue("UGC", "TXZ001"), NamedValue("FIPS6", "048001")]),
            Area(area_desc="B", geocode=[NamedValue("UGC", "TXZ002")]),
        ]
        geocode = alert_to_entry(_make_alert(areas=areas), "x").geocode
        assert geocode.names == ["UGC", "FIPS6", "UGC"]
        assert geocode.values == ["TXZ001", "048001", "TXZ002"]

    def test_only_first_info_projected(self):
        first = Info(event="First", urgency="Past", severity="Minor", certainty="Unlikely",
                     headline="first", area=[Area(area_desc="One")])
        second = Info(event="Second", urgency="Future", severity="Extreme", certainty="Observed",
                      headline="second", area=[Area(area_desc="Two")])
        entry = alert_to_entry(_make_alert(infos=[first, second]), "x")
        assert entry.event == "First"
        assert entry.title.content == "first"
        assert entry.area_desc == "; One"

    def test_alert_without_info(self):
        with pytest.raises(DecodeError):
            alert_to_entry(_make_alert(infos=[]), "x")

    def test_amber_alert(self, amber_alert_bytes):
        entry = alert_to_entry(parse_alert(amber_alert_bytes), "x")
        assert entry.id == "KAR0-0306112239-SW"
        assert entry.area_desc == "; Los Angeles County"
        assert entry.geocode.get_geocodes("SAME") == ["006037"]


# ═══════════════════════════════════════════════════════════════════════════
# Section 2: Directory aggregation
# ═══════════════════════════════════════════════════════════════════════════

class TestGenerateFeed:

    def test_empty_directory(self, tmp_path, logger):
        feed = generate_feed(tmp_path, _make_identity(), logger)
        assert feed.entries == []
        assert feed.id == "http://foo.com/cap/"
        assert feed.link[0].href == "http://foo.com/cap/"
        assert feed.title.content == "Current Alerts Issued by foo.com"
        assert feed.author[0].name == "w-capship.webmaster@foo.com"
        assert feed.generator.content == "capship CAP Server"
        assert feed.logo == "http://alerts.weather.gov/images/xml_logo.gif"
        assert feed.updated_time().tzinfo is not None

    def test_lexicographic_order(self, tmp_path, logger):
        _write_alert(tmp_path, "b.xml", _make_alert("B"))
        _write_alert(tmp_path, "a.xml", _make_alert("A"))
        _write_alert(tmp_path, "c.xml", _make_alert("C"))
        feed = generate_feed(tmp_path, _make_identity(), logger)
        assert [e.id for e in feed.entries] == ["A", "B", "C"]
        assert feed.entries[0].link[0].href == "http://foo.com/alerts/a.xml"

    def test_subdirectories_skipped(self, tmp_path, logger):
        _write_alert(tmp_path, "a.xml", _make_alert("A"))
        nested = tmp_path / "nested"
        nested.mkdir()
        _write_alert(nested, "z.xml", _make_alert("Z"))
        assert [p.name for p in alert_files(tmp_path)] == ["a.xml"]
        assert len(generate_feed(tmp_path, _make_identity(), logger).entries) == 1

    def test_malformed_alert_aborts(self, tmp_path, logger):
        _write_alert(tmp_path, "a.xml", _make_alert("A"))
        (tmp_path / "b.xml").write_bytes(b"not xml at all")
        with pytest.raises(DecodeError) as exc_info:
            generate_feed(tmp_path, _make_identity(), logger)
        assert exc_info.value.details["file"] == "b.xml"

    def test_cap11_alert_accepted(self, tmp_path, logger, cap11_alert_bytes):
        (tmp_path / "wind.xml").write_bytes(cap11_alert_bytes)
        entry = generate_feed(tmp_path, _make_identity(), logger).entries[0]
        assert entry.event == "High Wind Warning"
        assert entry.geocode.names == ["FIPS6", "UGC"]

    def test_feed_serializes(self, tmp_path, logger, amber_alert_bytes):
        (tmp_path / "amber.xml").write_bytes(amber_alert_bytes)
        feed = generate_feed(tmp_path, _make_identity(), logger)
        again = parse_feed(feed_to_xml(feed))
        assert again.entries[0].id == "KAR0-0306112239-SW"


# ═══════════════════════════════════════════════════════════════════════════
# Section 3: Aggregation job
# ═══════════════════════════════════════════════════════════════════════════

class TestAggregationJob:

    @pytest.fixture
    def store(self, tmp_path, logger) -> DocumentStore:
        return DocumentStore(str(tmp_path), logger=logger)

    def test_run_once_publishes(self, store, logger):
        store.store(DocumentKind.ALERTS, "a.xml", _make_alert("A").to_xml())
        job = AggregationJob(store, _make_identity(), logger)
        run = job.run_once()
        assert run.status == JobStatus.COMPLETED
        assert run.entries == 1
        assert run.bytes_written > 0
        assert job.last_run is run
        assert parse_feed(store.retrieve_feed()).entries[0].id == "A"

    def test_failure_keeps_previous_feed(self, store, logger):
        store.store(DocumentKind.ALERTS, "a.xml", _make_alert("A").to_xml())
        job = AggregationJob(store, _make_identity(), logger)
        job.run_once()
        before = store.retrieve_feed()

        store.store(DocumentKind.ALERTS, "b.xml", b"<broken")
        run = job.run_once()
        assert run.status == JobStatus.FAILED
        assert run.error
        assert store.retrieve_feed() == before
        assert run.to_dict()["status"] == "failed"

    def test_run_in_background(self, store, logger):
        job = AggregationJob(store, _make_identity(), logger)
        run = asyncio.run(job.run_in_background())
        assert run.status == JobStatus.COMPLETED
        assert run.entries == 0

    def test_start_is_noop_without_interval(self, store, logger):
        job = AggregationJob(store, _make_identity(), logger, interval_seconds=0)

        async def _cycle():
            await job.start()
            assert job._task is None
            await job.stop()

        asyncio.run(_cycle())

    def test_scheduled_loop_runs_and_stops(self, store, logger):
        job = AggregationJob(store, _make_identity(), logger, interval_seconds=3600)

        async def _cycle():
            await job.start()
            for _ in range(100):
                if job.last_run.status == JobStatus.COMPLETED:
                    break
                await asyncio.sleep(0.01)
            await job.stop()

        asyncio.run(_cycle())
        assert job.last_run.status == JobStatus.COMPLETED
        assert job._task is None
