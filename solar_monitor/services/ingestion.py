# solar_monitor/services/ingestion.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Any, Iterable, List, Mapping, Optional

from solar_monitor.logging import IngestLogEntry, StructuredLog
from solar_monitor.models.alert import Anomaly, CandidateAlert
from solar_monitor.models.reading import (
    DEFAULT_DEVICE_ID,
    Reading,
    ReadingStatus,
    ReadingValidationError,
    validate_reading,
)
from solar_monitor.services.alert_logic import ThresholdConfig, evaluate_alerts
from solar_monitor.services.alert_state import AlertStateManager
from solar_monitor.services.anomaly_detector import anomaly_reason, detect_anomalies
from solar_monitor.services.repository import AlertRecorder, NotificationSink, ReadingRepository
from solar_monitor.services.status_classifier import classify_reading, reading_recommendations
from solar_monitor.util.numbers import iter_batches


@dataclass
class IngestResult:
    reading_id: int
    reading: Reading
    anomalies: List[Anomaly] = field(default_factory=list)
    alerts: List[CandidateAlert] = field(default_factory=list)
    notified: int = 0
    recommendations: List[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.reading_id,
            "reading": self.reading.as_dict(),
            "anomalies": [
                {"type": a.kind.value, "severity": a.severity.value, "message": a.message, "value": a.value}
                for a in self.anomalies
            ],
            "alerts": [a.as_dict() for a in self.alerts],
            "notified": self.notified,
            "recommendations": list(self.recommendations),
        }


class IngestionService:
    """
    Runs one device payload through the evaluation pipeline.

    parse -> validate -> classify (status/anomaly fixed before storage)
    -> store -> threshold alerts -> suppression -> record -> notify.
    """

    def __init__(
        self,
        repository: ReadingRepository,
        thresholds: ThresholdConfig,
        log,
        *,
        alert_manager: Optional[AlertStateManager] = None,
        alert_recorder: Optional[AlertRecorder] = None,
        notifier: Optional[NotificationSink] = None,
        structured_log: Optional[StructuredLog] = None,
        tz: Optional[tzinfo] = None,
        default_device_id: str = DEFAULT_DEVICE_ID,
        batch_size: int = 1000,
    ):
        self.repository = repository
        self.thresholds = thresholds
        self.log = log
        self.alert_manager = alert_manager or AlertStateManager(log)
        self.alert_recorder = alert_recorder
        self.notifier = notifier
        self.structured_log = structured_log
        self.tz = tz
        self.default_device_id = default_device_id
        self.batch_size = batch_size

    # ------------------------------------------------------------------
    def _notify(self, alerts: Iterable[CandidateAlert]) -> int:
        if self.notifier is None:
            return 0
        sent = 0
        for alert in alerts:
            if self.notifier.notify(alert):
                sent += 1
        return sent

    def ingest(self, payload: Mapping[str, Any], now: Optional[datetime] = None) -> IngestResult:
        now = now or datetime.now(timezone.utc)
        reading = Reading.from_payload(
            payload,
            received_at=now,
            default_device_id=self.default_device_id,
            tz=self.tz,
        )
        problems = validate_reading(reading)
        if problems:
            self.log.warning("Rejected reading from %s: %s", reading.device_id, "; ".join(problems))
            raise ReadingValidationError(problems)

        previous = self.repository.get_latest(reading.device_id)
        anomalies = list(detect_anomalies(reading, previous))
        status = classify_reading(reading)
        reading = reading.with_classification(
            status=status,
            is_anomaly=status is not ReadingStatus.NORMAL or bool(anomalies),
            anomaly_reason=anomaly_reason(anomalies),
        )
        reading_id = self.repository.insert(reading)

        candidates = evaluate_alerts(reading, previous, self.thresholds, tz=self.tz)
        dispatch = self.alert_manager.process(candidates, now)
        if dispatch.alerts and self.alert_recorder is not None:
            self.alert_recorder.record_alerts(dispatch.alerts, now)
        notified = self._notify(dispatch.notify)

        self.log.debug(
            "Ingested %s reading #%s status=%s anomalies=%d alerts=%d",
            reading.device_id,
            reading_id,
            status.value,
            len(anomalies),
            len(dispatch.alerts),
        )
        for alert in dispatch.alerts:
            self.log.info("[%s] %s alert: %s", reading.device_id, alert.severity.value, alert.message)

        if self.structured_log is not None and self.structured_log.enabled:
            self.structured_log.write(
                IngestLogEntry(
                    timestamp=now.isoformat(),
                    device_id=reading.device_id,
                    reading=reading.as_dict(),
                    status=status.value,
                    anomalies=[{"type": a.kind.value, "severity": a.severity.value} for a in anomalies] or None,
                    alerts=[a.as_dict() for a in dispatch.alerts] or None,
                    notified=notified,
                )
            )

        return IngestResult(
            reading_id=reading_id,
            reading=reading,
            anomalies=anomalies,
            alerts=dispatch.alerts,
            notified=notified,
            recommendations=reading_recommendations(reading),
        )

    def ingest_many(self, payloads: Iterable[Mapping[str, Any]], now: Optional[datetime] = None) -> List[IngestResult]:
        """
        Ingest payloads in order, `batch_size` at a time.

        Rejected payloads are logged and skipped so one bad sample does not
        stop a backlog upload.
        """
        results: list[IngestResult] = []
        rejected = 0
        for batch in iter_batches(payloads, self.batch_size):
            for payload in batch:
                try:
                    results.append(self.ingest(payload, now=now))
                except ReadingValidationError:
                    rejected += 1
        if rejected:
            self.log.warning("Skipped %d invalid payload(s)", rejected)
        return results
