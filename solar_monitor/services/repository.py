# solar_monitor/services/repository.py

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence, Union

from solar_monitor.models.alert import AlertType, CandidateAlert
from solar_monitor.models.reading import Reading, ReadingStatus
from solar_monitor.models.report import PeriodSummaryReport
from solar_monitor.util.numbers import iter_batches


DEFAULT_BATCH_SIZE = 1000


class ReadingRepository(Protocol):
    def get_latest(self, device_id: str) -> Optional[Reading]:
        ...

    def get_range(self, device_id: Optional[str], start: datetime, end: datetime) -> List[Reading]:
        ...

    def insert(self, reading: Reading) -> int:
        ...


class AlertRecorder(Protocol):
    def record_alerts(self, alerts: Sequence[CandidateAlert], now: datetime) -> List[int]:
        ...

    def has_recent_alert(self, device_id: Optional[str], alert_type: AlertType, since: datetime) -> bool:
        ...


class NotificationSink(Protocol):
    def notify(self, alert: CandidateAlert) -> bool:
        ...


class ReportSink(Protocol):
    def deliver(self, report: PeriodSummaryReport) -> bool:
        ...


def to_db_timestamp(value: datetime, tz: Optional[tzinfo] = None) -> str:
    """
    Fixed-width UTC text so SQL string comparison orders chronologically.

    A naive value is wall-clock time in `tz` (UTC when no zone is given).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=tz or timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def _parse_ts(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


class ReadingStore:
    """SQLite-backed reading/alert history plus a small key-value area."""

    def __init__(
        self,
        path: Optional[Union[Path, str]] = None,
        *,
        persist: bool = True,
        tz: Optional[tzinfo] = None,
    ):
        default_path = Path.home() / ".solar_monitor.db"
        self._persist = persist
        self._tz = tz
        self._log = logging.getLogger("solar.store")
        if self._persist:
            resolved = Path(path) if path else default_path
            resolved.parent.mkdir(parents=True, exist_ok=True)
            self.path: Optional[Path] = resolved
            self._conn = sqlite3.connect(self.path)
            self._conn.execute("PRAGMA journal_mode=WAL")
        else:
            self.path = None
            self._conn = sqlite3.connect(":memory:")
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    # ------------------------------------------------------------------
    def _init_schema(self) -> None:
        stmts = [
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS readings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                device_id TEXT NOT NULL,
                timestamp TEXT NOT NULL,
                voltage REAL,
                current REAL,
                temperature REAL,
                power REAL,
                battery_level REAL,
                status TEXT NOT NULL,
                is_anomaly INTEGER NOT NULL,
                anomaly_reason TEXT,
                location TEXT,
                panel_id TEXT
            )
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_readings_device_ts
            ON readings(device_id, timestamp)
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_readings_ts
            ON readings(timestamp)
            """,
            """
            CREATE TABLE IF NOT EXISTS alerts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                device_id TEXT,
                type TEXT NOT NULL,
                severity TEXT NOT NULL,
                message TEXT NOT NULL,
                value REAL,
                previous_value REAL,
                threshold TEXT,
                action_required INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                resolved INTEGER NOT NULL DEFAULT 0,
                resolved_at TEXT
            )
            """,
            """
            CREATE INDEX IF NOT EXISTS idx_alerts_type_created
            ON alerts(type, created_at)
            """,
        ]
        for stmt in stmts:
            self._conn.execute(stmt)
        self._conn.commit()

    # ------------------------------------------------------------------
    def flush(self) -> None:
        if self._conn:
            self._conn.commit()

    def close(self) -> None:
        if self._conn:
            self._conn.commit()
            self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------
    def get(self, key: str, default=None):
        cur = self._conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cur.fetchone()
        if not row:
            return default
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError:
            return default

    def set(self, key: str, value) -> None:
        payload = json.dumps(value)
        self._conn.execute(
            """
            INSERT INTO kv_store(key, value)
            VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value=excluded.value
            """,
            (key, payload),
        )
        self._conn.commit()

    def _db_ts(self, value: datetime) -> str:
        return to_db_timestamp(value, self._tz)

    # Readings --------------------------------------------------------
    def _reading_params(self, reading: Reading) -> tuple:
        return (
            reading.device_id,
            self._db_ts(reading.timestamp),
            reading.voltage,
            reading.current,
            reading.temperature,
            reading.power,
            reading.battery_level,
            reading.status.value,
            1 if reading.is_anomaly else 0,
            reading.anomaly_reason,
            reading.location,
            reading.panel_id,
        )

    _INSERT_READING = """
        INSERT INTO readings (
            device_id,
            timestamp,
            voltage,
            current,
            temperature,
            power,
            battery_level,
            status,
            is_anomaly,
            anomaly_reason,
            location,
            panel_id
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
    """

    @staticmethod
    def _row_to_reading(row: sqlite3.Row) -> Reading:
        return Reading(
            device_id=row["device_id"],
            timestamp=_parse_ts(row["timestamp"]),
            voltage=row["voltage"],
            current=row["current"],
            temperature=row["temperature"],
            power=row["power"],
            battery_level=row["battery_level"],
            status=ReadingStatus(row["status"]),
            is_anomaly=bool(row["is_anomaly"]),
            anomaly_reason=row["anomaly_reason"],
            location=row["location"],
            panel_id=row["panel_id"],
        )

    def insert(self, reading: Reading) -> int:
        cur = self._conn.execute(self._INSERT_READING, self._reading_params(reading))
        self._conn.commit()
        return int(cur.lastrowid)

    def insert_many(self, readings: Iterable[Reading], batch_size: int = DEFAULT_BATCH_SIZE) -> int:
        """Insert in chunks of `batch_size`, one transaction per chunk."""
        inserted = 0
        for chunk in iter_batches(readings, batch_size):
            with self._conn:
                self._conn.executemany(self._INSERT_READING, [self._reading_params(r) for r in chunk])
            inserted += len(chunk)
            self._log.debug("Inserted batch of %d readings", len(chunk))
        return inserted

    def get_latest(self, device_id: str) -> Optional[Reading]:
        cur = self._conn.execute(
            """
            SELECT * FROM readings
            WHERE device_id = ?
            ORDER BY timestamp DESC, id DESC
            LIMIT 1
            """,
            (device_id,),
        )
        row = cur.fetchone()
        return self._row_to_reading(row) if row else None

    def _range_clause(self, device_id: Optional[str], start: datetime, end: datetime) -> tuple[str, list]:
        clause = "timestamp >= ? AND timestamp <= ?"
        params: list = [self._db_ts(start), self._db_ts(end)]
        if device_id is not None:
            clause = "device_id = ? AND " + clause
            params.insert(0, device_id)
        return clause, params

    def get_range(self, device_id: Optional[str], start: datetime, end: datetime) -> List[Reading]:
        """Readings in [start, end], oldest first. `device_id=None` spans all devices."""
        clause, params = self._range_clause(device_id, start, end)
        cur = self._conn.execute(
            f"SELECT * FROM readings WHERE {clause} ORDER BY timestamp ASC, id ASC",
            params,
        )
        return [self._row_to_reading(row) for row in cur.fetchall()]

    def iter_range(
        self,
        device_id: Optional[str],
        start: datetime,
        end: datetime,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Iterator[List[Reading]]:
        """Same rows as get_range, yielded in ascending batches of at most `batch_size`."""
        if batch_size <= 0:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        clause, params = self._range_clause(device_id, start, end)
        last_ts: Optional[str] = None
        last_id = 0
        while True:
            page_clause = clause
            page_params = list(params)
            if last_ts is not None:
                page_clause += " AND (timestamp > ? OR (timestamp = ? AND id > ?))"
                page_params.extend([last_ts, last_ts, last_id])
            rows = self._conn.execute(
                f"SELECT * FROM readings WHERE {page_clause} ORDER BY timestamp ASC, id ASC LIMIT ?",
                page_params + [batch_size],
            ).fetchall()
            if not rows:
                return
            yield [self._row_to_reading(row) for row in rows]
            if len(rows) < batch_size:
                return
            last_ts = rows[-1]["timestamp"]
            last_id = rows[-1]["id"]

    def count_range(self, device_id: Optional[str], start: datetime, end: datetime) -> int:
        clause, params = self._range_clause(device_id, start, end)
        row = self._conn.execute(f"SELECT COUNT(*) FROM readings WHERE {clause}", params).fetchone()
        return int(row[0])

    def devices(self) -> List[str]:
        cur = self._conn.execute("SELECT DISTINCT device_id FROM readings ORDER BY device_id")
        return [row["device_id"] for row in cur.fetchall()]

    # Alerts ----------------------------------------------------------
    def record_alerts(self, alerts: Sequence[CandidateAlert], now: datetime) -> List[int]:
        ids: list[int] = []
        created = self._db_ts(now)
        with self._conn:
            for alert in alerts:
                cur = self._conn.execute(
                    """
                    INSERT INTO alerts (
                        device_id,
                        type,
                        severity,
                        message,
                        value,
                        previous_value,
                        threshold,
                        action_required,
                        created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        alert.device_id,
                        alert.type.value,
                        alert.severity.value,
                        alert.message,
                        alert.value,
                        alert.previous_value,
                        alert.threshold,
                        1 if alert.action_required else 0,
                        created,
                    ),
                )
                ids.append(int(cur.lastrowid))
        return ids

    def has_recent_alert(self, device_id: Optional[str], alert_type: AlertType, since: datetime) -> bool:
        params: list = [AlertType(alert_type).value, self._db_ts(since)]
        clause = "type = ? AND created_at >= ? AND resolved = 0"
        if device_id is not None:
            clause += " AND device_id = ?"
            params.append(device_id)
        row = self._conn.execute(f"SELECT 1 FROM alerts WHERE {clause} LIMIT 1", params).fetchone()
        return row is not None

    def resolve_alert(self, alert_id: int, now: datetime) -> bool:
        cur = self._conn.execute(
            "UPDATE alerts SET resolved = 1, resolved_at = ? WHERE id = ? AND resolved = 0",
            (self._db_ts(now), alert_id),
        )
        self._conn.commit()
        return cur.rowcount > 0

    def list_alerts(self, device_id: Optional[str] = None, *, unresolved_only: bool = True, limit: int = 50) -> List[dict]:
        clauses = []
        params: list = []
        if unresolved_only:
            clauses.append("resolved = 0")
        if device_id is not None:
            clauses.append("device_id = ?")
            params.append(device_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cur = self._conn.execute(
            f"SELECT * FROM alerts {where} ORDER BY created_at DESC, id DESC LIMIT ?",
            params + [limit],
        )
        return [dict(row) for row in cur.fetchall()]

    # ------------------------------------------------------------------
    def __del__(self):
        try:
            self.close()
        except Exception:
            pass
