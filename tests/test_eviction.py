"""
Tests for the eviction policy.
"""

from __future__ import annotations

from datetime import timedelta

from filestore.eviction import EvictionPlan, EvictionReport, plan_eviction
from filestore.types import StoreConfig

from conftest import BASE_TIME, make_record

DAY_MINUTES = 24 * 60


def _config(**overrides: object) -> StoreConfig:
    values: dict[str, object] = {
        "max_files": 100,
        "max_storage_bytes": 10_000,
        "auto_cleanup": True,
        "retention_period": timedelta(days=30),
    }
    values.update(overrides)
    return StoreConfig(**values)  # type: ignore[arg-type]


class TestExpiryPass:
    """Test the retention pass."""

    def test_expired_regardless_of_access(self) -> None:
        """Test that a record uploaded 2 days ago goes with a 1 day retention, even if just read."""
        now = BASE_TIME + timedelta(days=2)
        old = make_record("file_old", uploaded_minutes=0, accessed_minutes=2 * DAY_MINUTES)
        fresh = make_record("file_new", uploaded_minutes=2 * DAY_MINUTES - 60)

        plan = plan_eviction(
            [old, fresh], _config(retention_period=timedelta(days=1)), now=now
        )

        assert plan.expired == ("file_old",)
        assert plan.over_count == ()
        assert plan.over_size == ()

    def test_exactly_at_retention_is_kept(self) -> None:
        """Test that age equal to the retention period is not yet expired."""
        record = make_record("file_a")
        plan = plan_eviction(
            [record], _config(retention_period=timedelta(days=1)), now=BASE_TIME + timedelta(days=1)
        )
        assert not plan


class TestCountCapPass:
    """Test the max_files pass."""

    def test_keeps_most_recently_accessed(self) -> None:
        """Test that 5 records with max_files=3 keep the 3 most recently accessed."""
        records = [
            make_record("file_a", accessed_minutes=50),
            make_record("file_b", accessed_minutes=10),
            make_record("file_c", accessed_minutes=40),
            make_record("file_d", accessed_minutes=20),
            make_record("file_e", accessed_minutes=30),
        ]

        plan = plan_eviction(records, _config(max_files=3), now=BASE_TIME)

        assert plan.over_count == ("file_b", "file_d")
        survivors = {r.id for r in records} - set(plan.file_ids)
        assert survivors == {"file_a", "file_c", "file_e"}

    def test_tie_on_access_evicts_older_upload(self) -> None:
        """Test that equal last_accessed falls back to uploaded_at."""
        records = [
            make_record("file_newer", uploaded_minutes=5, accessed_minutes=10),
            make_record("file_older", uploaded_minutes=1, accessed_minutes=10),
        ]

        plan = plan_eviction(records, _config(max_files=1), now=BASE_TIME + timedelta(hours=1))

        assert plan.over_count == ("file_older",)

    def test_runs_on_expiry_survivors(self) -> None:
        """Test that expired records count toward neither cap."""
        now = BASE_TIME + timedelta(days=3)
        records = [
            make_record("file_old", uploaded_minutes=0, accessed_minutes=3 * DAY_MINUTES),
            make_record("file_a", uploaded_minutes=2 * DAY_MINUTES + 10),
            make_record("file_b", uploaded_minutes=2 * DAY_MINUTES + 20),
        ]

        plan = plan_eviction(
            records, _config(max_files=2, retention_period=timedelta(days=2)), now=now
        )

        assert plan.expired == ("file_old",)
        assert plan.over_count == ()


class TestSizeCapPass:
    """Test the max_storage_bytes pass."""

    def test_largest_first(self) -> None:
        """Test that [10, 90, 5] with a 100 byte cap drops the 90 byte record."""
        records = [
            make_record("file_10", size=10),
            make_record("file_90", size=90),
            make_record("file_5", size=5),
        ]

        plan = plan_eviction(records, _config(max_storage_bytes=100), now=BASE_TIME)

        assert plan.over_size == ("file_90",)
        remaining = [r.size for r in records if r.id not in plan.file_ids]
        assert remaining == [10, 5]
        assert sum(remaining) == 15

    def test_removes_until_at_or_below_cap(self) -> None:
        """Test that several large records go until the total fits."""
        records = [make_record(f"file_{i}", size=40) for i in range(5)]

        plan = plan_eviction(records, _config(max_storage_bytes=80), now=BASE_TIME)

        assert len(plan.over_size) == 3

    def test_tie_on_size_evicts_least_recently_accessed(self) -> None:
        """Test that equal sizes fall back to last_accessed."""
        records = [
            make_record("file_recent", size=60, accessed_minutes=30),
            make_record("file_stale", size=60, accessed_minutes=5),
        ]

        plan = plan_eviction(records, _config(max_storage_bytes=100), now=BASE_TIME)

        assert plan.over_size == ("file_stale",)

    def test_runs_after_count_cap(self) -> None:
        """Test that the size pass only sees count-cap survivors."""
        records = [
            make_record("file_big_stale", size=500, accessed_minutes=1),
            make_record("file_a", size=30, accessed_minutes=10),
            make_record("file_b", size=30, accessed_minutes=20),
        ]

        plan = plan_eviction(
            records, _config(max_files=2, max_storage_bytes=100), now=BASE_TIME
        )

        assert plan.over_count == ("file_big_stale",)
        assert plan.over_size == ()


class TestPlanAndReport:
    """Test the result containers."""

    def test_no_pressure_empty_plan(self) -> None:
        """Test that a store within limits plans nothing."""
        records = [make_record(f"file_{i}") for i in range(3)]
        plan = plan_eviction(records, _config(), now=BASE_TIME)

        assert plan == EvictionPlan()
        assert len(plan) == 0

    def test_file_ids_in_pass_order(self) -> None:
        """Test that file_ids concatenates passes in order."""
        plan = EvictionPlan(expired=("a",), over_count=("b",), over_size=("c",))
        assert plan.file_ids == ("a", "b", "c")

    def test_report_removed_and_dict(self) -> None:
        """Test report aggregation."""
        report = EvictionReport(
            expired=["a"], over_size=["c"], missing_content=["m"], failed=["f"]
        )

        assert report.removed == ["m", "a", "c"]
        assert report.to_dict()["removed"] == 3
        assert report.to_dict()["failed"] == ["f"]
