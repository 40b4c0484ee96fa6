from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Protocol

from solar_monitor.models.alert import AlertDispatch, AlertType, CandidateAlert
from solar_monitor.util.numbers import round_half_up


class RecentAlertLookup(Protocol):
    def has_recent_alert(self, device_id: Optional[str], alert_type: AlertType, since: datetime) -> bool:
        ...


def dedupe_key(alert: CandidateAlert) -> tuple[str, int]:
    """Alerts are 'the same' when type matches and value agrees to one decimal."""
    return alert.type.value, int(round_half_up(alert.value * 10))


def deduplicate(alerts: Iterable[CandidateAlert]) -> List[CandidateAlert]:
    seen: set[tuple[str, int]] = set()
    unique: list[CandidateAlert] = []
    for alert in alerts:
        key = dedupe_key(alert)
        if key in seen:
            continue
        seen.add(key)
        unique.append(alert)
    return unique


class AlertStateManager:
    """
    Applies suppression rules to candidate alerts and decides which ones are
    handed to the notification sink.

    Same-call duplicates are always dropped. Suppression against alerts that
    were raised earlier is only applied when a `recent_alerts` lookup (usually
    the reading store) is supplied.
    """

    def __init__(
        self,
        log,
        *,
        recent_alerts: RecentAlertLookup | None = None,
        window_minutes: int = 60,
    ):
        self.log = log
        self.recent_alerts = recent_alerts
        self.window = timedelta(minutes=max(0, int(window_minutes)))

    def _filter_recent(self, alerts: List[CandidateAlert], now: datetime) -> tuple[List[CandidateAlert], List[CandidateAlert]]:
        if self.recent_alerts is None or not self.window:
            return alerts, []
        since = now - self.window
        kept: list[CandidateAlert] = []
        dropped: list[CandidateAlert] = []
        for alert in alerts:
            if self.recent_alerts.has_recent_alert(alert.device_id, alert.type, since):
                dropped.append(alert)
            else:
                kept.append(alert)
        return kept, dropped

    def process(self, candidates: Iterable[CandidateAlert], now: datetime) -> AlertDispatch:
        candidates = list(candidates)
        unique = deduplicate(candidates)
        if len(unique) != len(candidates):
            self.log.debug("Dropped %d duplicate alert(s) in batch", len(candidates) - len(unique))

        kept, suppressed = self._filter_recent(unique, now)
        for alert in suppressed:
            self.log.debug(
                "Suppressed %s alert for %s; already raised within %s",
                alert.type.value,
                alert.device_id,
                self.window,
            )

        notify = [alert for alert in kept if alert.should_notify]
        return AlertDispatch(alerts=kept, notify=notify, suppressed=suppressed)
