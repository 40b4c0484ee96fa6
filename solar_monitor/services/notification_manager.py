# solar_monitor/services/notification_manager.py

from __future__ import annotations

from typing import Iterable, List, Optional

from solar_monitor.config import PushoverConfig, ReportWebhookConfig
from solar_monitor.models.alert import CandidateAlert
from solar_monitor.models.report import PeriodSummaryReport
from solar_monitor.services.notifiers.pushover import PushoverNotifier
from solar_monitor.services.notifiers.webhook import ReportWebhookSink
from solar_monitor.services.period_summary import format_summary


class NotificationManager:
    """Coordinates outbound notifications (Pushover alerts + report webhook)."""

    def __init__(
        self,
        pushover_cfg: PushoverConfig,
        webhook_cfg: ReportWebhookConfig,
        log,
        *,
        pushover: Optional[PushoverNotifier] = None,
        webhook: Optional[ReportWebhookSink] = None,
    ):
        self.log = log
        self.pushover = pushover or PushoverNotifier(pushover_cfg, log)
        self.webhook = webhook or ReportWebhookSink(webhook_cfg, log)

    # ------------------------------------------------------------------
    def notify(self, alert: CandidateAlert) -> bool:
        return self.pushover.notify(alert)

    def handle_alerts(self, alerts: Iterable[CandidateAlert]) -> int:
        """Deliver alerts that qualify for notification; returns how many went out."""

        alerts_list: List[CandidateAlert] = [a for a in alerts if a.should_notify]
        if not alerts_list:
            return 0

        self.log.warning("%d alert(s) qualify for notification.", len(alerts_list))
        return self.pushover.send_alerts(alerts_list)

    # ------------------------------------------------------------------
    def deliver(self, report: PeriodSummaryReport) -> bool:
        """Hand a report to the webhook and push a short text version."""
        delivered = self.webhook.deliver(report)
        title = f"{report.title}: {report.summary.total_energy:.3f} kWh"
        pushed = self.pushover.send_message(title, format_summary(report))
        return delivered or pushed

    # ------------------------------------------------------------------
    def send_test_notifications(self) -> None:
        """Trigger a manual test message."""

        self.log.info("Sending test notification via Pushover...")
        self.pushover.send_test()
