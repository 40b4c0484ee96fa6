# solar_monitor/config.py
from dataclasses import dataclass, field
from pathlib import Path
import configparser

from solar_monitor.models.reading import DEFAULT_DEVICE_ID
from solar_monitor.services.alert_logic import ThresholdConfig


@dataclass
class DeviceConfig:
    default_device_id: str = DEFAULT_DEVICE_ID
    timezone: str = "UTC"
    location: str | None = None


@dataclass
class SystemConfig:
    rated_power_w: float = 100.0
    peak_sun_hours: float = 5.0
    log_interval_seconds: int = 600
    offline_after_minutes: int = 10
    batch_size: int = 1000


@dataclass
class AlertsConfig:
    dedup_window_minutes: int = 60
    persist_alerts: bool = True


@dataclass
class PushoverConfig:
    token: str | None = None
    user: str | None = None
    enabled: bool = False


@dataclass
class ReportWebhookConfig:
    url: str | None = None
    enabled: bool = False
    timeout: float = 10.0


@dataclass
class StateConfig:
    path: str | None = None


@dataclass
class RetentionConfig:
    reading_days: int = 90
    alert_days: int = 180
    vacuum_after_prune: bool = True


@dataclass
class LoggingConfig:
    console_level: str = "INFO"
    console_quiet: bool = False
    debug_modules: list[str] = field(default_factory=list)
    structured_enabled: bool = False
    structured_path: str | None = None


@dataclass
class AppConfig:
    device: DeviceConfig
    thresholds: ThresholdConfig
    system: SystemConfig
    alerts: AlertsConfig
    pushover: PushoverConfig
    report_webhook: ReportWebhookConfig
    state: StateConfig
    retention: RetentionConfig
    logging: LoggingConfig


class Config:
    def __init__(self, path: str):
        self.path = Path(path)
        self.parser = configparser.ConfigParser(inline_comment_prefixes=("#",))
        read = self.parser.read(self.path)
        if not read:
            raise FileNotFoundError(f"Config file not found: {self.path}")

    @classmethod
    def load(cls, path: str) -> AppConfig:
        cfg = cls(path)

        p = cfg.parser

        def _as_bool(value: str) -> bool:
            return value.strip().lower() == "true"

        def _number(sec, key: str, cast):
            raw = sec[key].strip()
            try:
                return cast(raw)
            except ValueError:
                raise ValueError(f"[{sec.name}] {key} must be numeric, got {raw!r}") from None

        # --- Device ---
        device_kwargs = {}
        if "device" in p:
            device_sec = p["device"]
            if device_sec.get("default_device_id", "").strip():
                device_kwargs["default_device_id"] = device_sec["default_device_id"].strip()
            if "timezone" in device_sec:
                device_kwargs["timezone"] = device_sec["timezone"].strip()
            if "location" in device_sec:
                device_kwargs["location"] = device_sec["location"].strip() or None
        device_cfg = DeviceConfig(**device_kwargs)

        # --- Thresholds ---
        threshold_kwargs = {}
        if "thresholds" in p:
            th_sec = p["thresholds"]
            for key in (
                "voltage_low_pct",
                "voltage_critical_pct",
                "current_low_pct",
                "temperature_high_c",
                "nominal_voltage",
                "nominal_current",
            ):
                if key in th_sec:
                    threshold_kwargs[key] = _number(th_sec, key, float)
        thresholds = ThresholdConfig(**threshold_kwargs)

        # --- System ---
        system_kwargs = {}
        if "system" in p:
            sys_sec = p["system"]
            if "rated_power_w" in sys_sec:
                system_kwargs["rated_power_w"] = _number(sys_sec, "rated_power_w", float)
            if "peak_sun_hours" in sys_sec:
                system_kwargs["peak_sun_hours"] = _number(sys_sec, "peak_sun_hours", float)
            if "log_interval_seconds" in sys_sec:
                system_kwargs["log_interval_seconds"] = _number(sys_sec, "log_interval_seconds", int)
            if "offline_after_minutes" in sys_sec:
                system_kwargs["offline_after_minutes"] = _number(sys_sec, "offline_after_minutes", int)
            if "batch_size" in sys_sec:
                system_kwargs["batch_size"] = _number(sys_sec, "batch_size", int)
        system_cfg = SystemConfig(**system_kwargs)
        if system_cfg.batch_size <= 0:
            raise ValueError("[system] batch_size must be positive")

        # --- Alerts ---
        alerts_kwargs = {}
        if "alerts" in p:
            alerts_sec = p["alerts"]
            if "dedup_window_minutes" in alerts_sec:
                alerts_kwargs["dedup_window_minutes"] = _number(alerts_sec, "dedup_window_minutes", int)
            if "persist_alerts" in alerts_sec:
                alerts_kwargs["persist_alerts"] = _as_bool(alerts_sec["persist_alerts"])
        alerts_cfg = AlertsConfig(**alerts_kwargs)

        # --- Pushover ---
        pushover_kwargs = {}
        if "pushover" in p:
            pushover_sec = p["pushover"]
            if "token" in pushover_sec:
                pushover_kwargs["token"] = pushover_sec["token"]
            if "user" in pushover_sec:
                pushover_kwargs["user"] = pushover_sec["user"]
            if "enabled" in pushover_sec:
                pushover_kwargs["enabled"] = _as_bool(pushover_sec["enabled"])
        pushover = PushoverConfig(**pushover_kwargs)

        # --- Report webhook ---
        webhook_kwargs = {}
        if "report_webhook" in p:
            hook_sec = p["report_webhook"]
            if "url" in hook_sec:
                webhook_kwargs["url"] = hook_sec["url"].strip() or None
            if "enabled" in hook_sec:
                webhook_kwargs["enabled"] = _as_bool(hook_sec["enabled"])
            if "timeout" in hook_sec:
                webhook_kwargs["timeout"] = _number(hook_sec, "timeout", float)
        report_webhook = ReportWebhookConfig(**webhook_kwargs)

        # --- State ---
        state_kwargs = {}
        if "state" in p and "path" in p["state"]:
            state_kwargs["path"] = p["state"]["path"]
        state_cfg = StateConfig(**state_kwargs)

        if "retention" in p:
            retention_sec = p["retention"]
        else:
            retention_sec = {}

        retention_cfg = RetentionConfig(
            reading_days=int(retention_sec.get("reading_days", 90) or 90),
            alert_days=int(retention_sec.get("alert_days", 180) or 180),
            vacuum_after_prune=(retention_sec.get("vacuum_after_prune", "true").strip().lower() == "true")
            if retention_sec
            else True,
        )

        logging_kwargs = {}
        if "logging" in p:
            logging_sec = p["logging"]
            if "console_level" in logging_sec:
                logging_kwargs["console_level"] = logging_sec["console_level"]
            if "console_quiet" in logging_sec:
                logging_kwargs["console_quiet"] = _as_bool(logging_sec["console_quiet"])
            if "debug_modules" in logging_sec:
                raw = logging_sec["debug_modules"]
                logging_kwargs["debug_modules"] = [x.strip() for x in raw.split(",") if x.strip()]
            if "structured_enabled" in logging_sec:
                logging_kwargs["structured_enabled"] = _as_bool(logging_sec["structured_enabled"])
            if "structured_path" in logging_sec:
                logging_kwargs["structured_path"] = logging_sec["structured_path"]
        logging_cfg = LoggingConfig(**logging_kwargs)

        return AppConfig(
            device=device_cfg,
            thresholds=thresholds,
            system=system_cfg,
            alerts=alerts_cfg,
            pushover=pushover,
            report_webhook=report_webhook,
            state=state_cfg,
            retention=retention_cfg,
            logging=logging_cfg,
        )
