# solar_monitor/services/notifiers/pushover.py

from __future__ import annotations

import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime
from typing import Iterable

from solar_monitor.config import PushoverConfig
from solar_monitor.models.alert import CandidateAlert, Severity
from solar_monitor.services.power_model import format_value, unit_for


class PushoverNotifier:
    """Minimal Pushover client with helpful logging and validation."""

    API_URL = "https://api.pushover.net/1/messages.json"

    def __init__(self, cfg: PushoverConfig, log):
        self.cfg = cfg
        self.log = log
        self._enabled = bool(cfg.enabled and cfg.token and cfg.user)

    @property
    def enabled(self) -> bool:
        return self._enabled

    # ------------------------------------------------------------------
    def _post(self, title: str, message: str, priority: int = 0) -> bool:
        if not self._enabled:
            self.log.debug("[Pushover] Disabled; skipping message: %s", title)
            return False

        data = urllib.parse.urlencode(
            {
                "token": self.cfg.token,
                "user": self.cfg.user,
                "title": title,
                "message": message,
                "priority": priority,
            }
        ).encode("utf-8")

        req = urllib.request.Request(self.API_URL, data=data)

        try:
            urllib.request.urlopen(req, timeout=10)
            self.log.info("[Pushover] Sent notification: %s", title)
            return True
        except urllib.error.URLError as exc:
            self.log.warning("[Pushover] Failed to send message: %s", exc)
            return False

    # ------------------------------------------------------------------
    def format_alert(self, alert: CandidateAlert) -> tuple[str, str]:
        title = f"Solar Alert [{alert.severity.value.upper()}]: {alert.type.value.replace('_', ' ')}"
        lines = [
            alert.message,
            f"Value: {format_value(alert.value, unit_for(alert.type))}",
        ]
        if alert.previous_value is not None:
            lines.append(f"Previous: {format_value(alert.previous_value, unit_for(alert.type))}")
        if alert.threshold:
            lines.append(f"Threshold: {alert.threshold}")
        if alert.device_id:
            lines.append(f"Device: {alert.device_id}")
        if alert.action_required:
            lines.append("Action required")
        return title, "\n".join(lines)

    def notify(self, alert: CandidateAlert) -> bool:
        title, message = self.format_alert(alert)
        priority = 1 if alert.severity is Severity.CRITICAL else 0
        return self._post(title, message, priority=priority)

    def send_alerts(self, alerts: Iterable[CandidateAlert]) -> int:
        return sum(1 for alert in alerts if self.notify(alert))

    # ------------------------------------------------------------------
    def send_test(self) -> bool:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        msg = f"Test message from solar monitor at {timestamp}"
        return self._post("Solar Monitor Test", msg)

    # ------------------------------------------------------------------
    def send_message(self, title: str, message: str) -> bool:
        return self._post(title, message)
