# solar_monitor/services/notifiers/webhook.py

from __future__ import annotations

from typing import Optional

import requests

from solar_monitor.config import ReportWebhookConfig
from solar_monitor.models.report import PeriodSummaryReport


class ReportWebhookSink:
    """Posts period reports as JSON to a rendering/archiving endpoint."""

    def __init__(self, cfg: ReportWebhookConfig, log, session: Optional[requests.Session] = None):
        self.cfg = cfg
        self.log = log
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    @property
    def enabled(self) -> bool:
        return bool(self.cfg.enabled and self.cfg.url)

    # ------------------------------------------------------------------
    def deliver(self, report: PeriodSummaryReport) -> bool:
        if not self.enabled:
            self.log.debug("[Webhook] Disabled; skipping report: %s", report.title)
            return False

        try:
            resp = self.session.post(self.cfg.url, json=report.as_dict(), timeout=self.cfg.timeout)
        except requests.RequestException as exc:
            self.log.warning("[Webhook] Report delivery failed: %s", exc)
            return False

        if resp.status_code >= 400:
            self.log.warning("[Webhook] Report endpoint returned HTTP %s", resp.status_code)
            return False

        self.log.info("[Webhook] Delivered report: %s", report.title)
        return True
