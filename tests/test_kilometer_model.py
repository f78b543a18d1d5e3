"""Tests for the last-known merge and the batch job bookkeeping."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from fleetlog.db.models import LogType
from fleetlog.model.batch import BatchJob, UnitRef
from fleetlog.model.kilometers import KilometerSource, LastKnownKilometer, merge_last_known


def _reading(value: str, when: datetime, source: KilometerSource, source_id: int = 1) -> LastKnownKilometer:
    return LastKnownKilometer(value=Decimal(value), date=when, source=source, source_id=source_id)


class TestMergeLastKnown:
    """Tests for merging the shift-log and fuel-record candidates."""

    def test_both_missing(self):
        assert merge_last_known(None, None) is None

    def test_only_one_side(self):
        log = _reading("100", datetime(2024, 1, 9, 8), KilometerSource.SHIFT_LOG)
        fuel = _reading("120", datetime(2024, 1, 9, 9), KilometerSource.FUEL_RECORD)

        assert merge_last_known(log, None) is log
        assert merge_last_known(None, fuel) is fuel

    def test_later_fuel_record_wins(self):
        log = _reading("100", datetime(2024, 1, 9, 8), KilometerSource.SHIFT_LOG)
        fuel = _reading("120", datetime(2024, 1, 9, 9), KilometerSource.FUEL_RECORD)

        assert merge_last_known(log, fuel) is fuel

    def test_later_shift_log_wins(self):
        log = _reading("150", datetime(2024, 1, 10, 7), KilometerSource.SHIFT_LOG)
        fuel = _reading("120", datetime(2024, 1, 9, 9), KilometerSource.FUEL_RECORD)

        assert merge_last_known(log, fuel) is log

    def test_tie_goes_to_shift_log(self):
        when = datetime(2024, 1, 9, 9)
        log = _reading("100", when, KilometerSource.SHIFT_LOG)
        fuel = _reading("100", when, KilometerSource.FUEL_RECORD)

        assert merge_last_known(log, fuel) is log


def _job(count: int = 3) -> BatchJob:
    units = [UnitRef(id=i, operator_name=f"Op {i}", unit_number=f"U{i}") for i in range(1, count + 1)]
    return BatchJob(log_type=LogType.SHIFT_START, log_date=date(2024, 1, 10), pending=units)


def _assert_complete_accounting(job: BatchJob) -> None:
    assert len(job.processed) + len(job.omitted) == job.current_index
    assert len(job.processed) + len(job.omitted) + job.remaining == job.total


class TestBatchJob:
    """Tests for BatchJob progress invariants."""

    def test_fresh_job(self):
        job = _job()

        assert job.total == 3
        assert job.remaining == 3
        assert not job.is_finished
        assert job.current_unit.id == 1
        _assert_complete_accounting(job)

    def test_every_outcome_advances_once(self):
        job = _job()

        job.record_omitted()
        _assert_complete_accounting(job)
        job.record_processed(Decimal("500"), entry_id=7)
        _assert_complete_accounting(job)
        job.record_already_logged()
        _assert_complete_accounting(job)

        assert job.is_finished
        assert job.current_index == job.total
        assert [o.unit.id for o in job.omitted] == [1]
        assert [p.unit.id for p in job.processed] == [2, 3]
        assert job.processed[1].already_logged
        assert job.processed[1].kilometers is None

    def test_omitted_with_error(self):
        job = _job(1)

        omitted = job.record_omitted(error="disk full")

        assert omitted.error == "disk full"
        assert job.is_finished

    def test_current_unit_after_finish_raises(self):
        job = _job(1)
        job.record_omitted()

        with pytest.raises(IndexError):
            _ = job.current_unit

    def test_unit_label(self):
        assert UnitRef(id=1, operator_name="Ana", unit_number="12").label == "Ana - 12"
