from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional

from solar_monitor.models.report import PeriodSummaryReport, ReportType
from solar_monitor.services.period_summary import PeriodSummaryBuilder
from solar_monitor.services.repository import ReadingStore, ReportSink


def day_bounds(day: date, tz: Optional[tzinfo]) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day, time.max, tzinfo=tz)
    return start, end


class DailySummaryService:
    """Builds period reports straight from the store, batch by batch, and hands them to a sink."""

    def __init__(
        self,
        store: ReadingStore,
        builder: PeriodSummaryBuilder,
        log,
        *,
        sink: Optional[ReportSink] = None,
        tz: Optional[tzinfo] = None,
        batch_size: int = 1000,
    ):
        self.store = store
        self.builder = builder
        self.log = log
        self.sink = sink
        self.tz = tz
        self.batch_size = batch_size

    # ------------------------------------------------------------------
    def _state_key(self, device_id: Optional[str]) -> str:
        return f"last_summary_date:{device_id or '*'}"

    def _has_run(self, day: date, device_id: Optional[str] = None) -> bool:
        return self.store.get(self._state_key(device_id)) == day.isoformat()

    def mark_ran(self, day: date, device_id: Optional[str] = None) -> None:
        self.store.set(self._state_key(device_id), day.isoformat())

    # ------------------------------------------------------------------
    def should_run(self, day: date, device_id: Optional[str] = None) -> bool:
        return not self._has_run(day, device_id)

    # ------------------------------------------------------------------
    def build(
        self,
        start: datetime,
        end: datetime,
        *,
        report_type: ReportType = ReportType.CUSTOM,
        device_id: Optional[str] = None,
    ) -> PeriodSummaryReport:
        batches = self.store.iter_range(device_id, start, end, self.batch_size)
        return self.builder.build_batched(batches, start, end, report_type=report_type, device_id=device_id)

    def run(self, day: date, device_id: Optional[str] = None) -> Optional[PeriodSummaryReport]:
        """Report on `day` once; later calls for the same day return None."""
        if self._has_run(day, device_id):
            self.log.debug("Daily summary for %s already sent", day.isoformat())
            return None

        start, end = day_bounds(day, self.tz)
        report = self.build(start, end, report_type=ReportType.DAILY, device_id=device_id)

        if report.summary.data_points == 0:
            self.log.info("No readings for %s; daily summary skipped", day.isoformat())
        elif self.sink is not None:
            self.sink.deliver(report)

        self.mark_ran(day, device_id)
        return report

    def run_for_yesterday(self, now: datetime, device_id: Optional[str] = None) -> Optional[PeriodSummaryReport]:
        local_now = now.astimezone(self.tz) if (self.tz and now.tzinfo) else now
        return self.run(local_now.date() - timedelta(days=1), device_id)
