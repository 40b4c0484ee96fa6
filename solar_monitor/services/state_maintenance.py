from __future__ import annotations

import datetime as dt

from solar_monitor.services.repository import to_db_timestamp


def _cutoff(days: int, now: dt.datetime | None = None) -> str:
    now = now or dt.datetime.now(dt.timezone.utc)
    return to_db_timestamp(now - dt.timedelta(days=days))


def prune(store, reading_days: int, alert_days: int, *, vacuum: bool = True, now: dt.datetime | None = None) -> tuple[int, int]:
    """Delete readings and alerts older than their retention windows; returns (readings, alerts) removed."""
    conn = getattr(store, "_conn", None)
    if conn is None:
        return 0, 0
    reading_cutoff = _cutoff(reading_days, now)
    alert_cutoff = _cutoff(alert_days, now)
    with conn:
        readings = conn.execute(
            "DELETE FROM readings WHERE timestamp < ?",
            (reading_cutoff,),
        ).rowcount
        alerts = conn.execute(
            "DELETE FROM alerts WHERE created_at < ?",
            (alert_cutoff,),
        ).rowcount
    if vacuum and getattr(store, "_persist", False):
        conn.execute("VACUUM")
    return readings, alerts
