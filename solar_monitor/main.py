# solar_monitor/main.py

from datetime import datetime, timedelta
import json
import sys
from pathlib import Path
from zoneinfo import ZoneInfo

from .cli import build_parser
from .config import Config
from .logging import ConsoleLog, StructuredLog

from .models.report import ReportType
from .services import aggregation
from .services import state_maintenance
from .services.alert_state import AlertStateManager
from .services.daily_summary import DailySummaryService
from .services.ingestion import IngestionService
from .services.notification_manager import NotificationManager
from .services.output_formatter import (
    emit_human_health,
    emit_human_ingest,
    emit_human_insights,
    emit_human_stats,
    emit_human_summary,
    emit_json,
)
from .services.period_summary import PeriodSummaryBuilder, SummarySettings
from .services.repository import ReadingStore
from .services.status_classifier import check_device_health, check_system_offline
from .services.trend_analyzer import InsightInputs, insights_from_inputs


REPORT_DAYS = {
    ReportType.DAILY: 1,
    ReportType.WEEKLY: 7,
    ReportType.MONTHLY: 30,
    ReportType.CUSTOM: 7,
}


def load_payloads(path: str) -> list:
    """Accept a JSON array, a single JSON object, or JSON lines."""
    if path == "-":
        text = sys.stdin.read()
    else:
        text = Path(path).expanduser().read_text(encoding="utf-8")
    stripped = text.strip()
    if not stripped:
        return []
    if stripped[0] == "[":
        return list(json.loads(stripped))
    try:
        return [json.loads(stripped)]
    except json.JSONDecodeError:
        return [json.loads(line) for line in stripped.splitlines() if line.strip()]


def run_notify_test(notifier: NotificationManager, log) -> None:
    log.info("[notify-test] Sending test notification.")
    notifier.send_test_notifications()


def main():
    parser = build_parser()
    args = parser.parse_args()

    app_cfg = Config.load(args.config)
    console_logger = ConsoleLog(
        level="DEBUG" if args.debug else app_cfg.logging.console_level,
        quiet=args.quiet or app_cfg.logging.console_quiet,
        debug_modules=app_cfg.logging.debug_modules,
    )
    log = console_logger.setup()
    structured_logger = StructuredLog(
        app_cfg.logging.structured_path,
        app_cfg.logging.structured_enabled,
    )

    tz = ZoneInfo(app_cfg.device.timezone)
    now = datetime.now(tz)
    state_path = Path(app_cfg.state.path).expanduser() if app_cfg.state.path else None
    store = ReadingStore(path=state_path, tz=tz)

    if args.command == "maintain-db":
        reading_days = args.reading_days if args.reading_days is not None else app_cfg.retention.reading_days
        alert_days = args.alert_days if args.alert_days is not None else app_cfg.retention.alert_days
        vacuum = not args.no_vacuum and app_cfg.retention.vacuum_after_prune
        removed_readings, removed_alerts = state_maintenance.prune(store, reading_days, alert_days, vacuum=vacuum)
        log.info(
            "Database maintenance complete (%d readings >%sdays, %d alerts >%sdays removed)",
            removed_readings,
            reading_days,
            removed_alerts,
            alert_days,
        )
        store.close()
        return

    notifier = NotificationManager(app_cfg.pushover, app_cfg.report_webhook, log)
    settings = SummarySettings(
        rated_power_w=app_cfg.system.rated_power_w,
        peak_sun_hours=app_cfg.system.peak_sun_hours,
        log_interval_seconds=app_cfg.system.log_interval_seconds,
    )
    builder = PeriodSummaryBuilder(settings, app_cfg.thresholds, log, tz=tz)
    summary_service = DailySummaryService(
        store,
        builder,
        log,
        sink=notifier,
        tz=tz,
        batch_size=app_cfg.system.batch_size,
    )

    if args.command == "ingest":
        alert_manager = AlertStateManager(
            log,
            recent_alerts=store if app_cfg.alerts.persist_alerts else None,
            window_minutes=app_cfg.alerts.dedup_window_minutes,
        )
        service = IngestionService(
            store,
            app_cfg.thresholds,
            log,
            alert_manager=alert_manager,
            alert_recorder=store if app_cfg.alerts.persist_alerts else None,
            notifier=notifier,
            structured_log=structured_logger,
            tz=tz,
            default_device_id=app_cfg.device.default_device_id,
            batch_size=app_cfg.system.batch_size,
        )
        results = service.ingest_many(load_payloads(args.file))
        log.info("Ingested %d reading(s)", len(results))
        if not args.quiet:
            if args.json:
                emit_json([r.as_dict() for r in results])
            else:
                emit_human_ingest(results)

    elif args.command == "summary":
        report_type = ReportType(args.type)
        days = args.days if args.days is not None else REPORT_DAYS[report_type]
        start = now - timedelta(days=days)
        report = summary_service.build(start, now, report_type=report_type, device_id=args.device)
        if args.deliver:
            notifier.deliver(report)
        if not args.quiet:
            if args.json:
                emit_json(report)
            else:
                emit_human_summary(report)

    elif args.command == "stats":
        start = now - timedelta(days=args.days)
        summary = aggregation.EMPTY_SUMMARY
        detailed_acc = aggregation.DetailedAccumulator()
        for batch in store.iter_range(args.device, start, now, app_cfg.system.batch_size):
            summary = aggregation.summarize(batch, summary)
            detailed_acc = detailed_acc.extend(batch)
        detailed = detailed_acc.result()
        stats = aggregation.finalize_statistics(
            summary,
            rated_power_w=settings.rated_power_w,
            peak_sun_hours=settings.peak_sun_hours,
        )
        if not args.quiet:
            if args.json:
                emit_json({"statistics": detailed.as_dict(), "summary": stats.as_dict()})
            else:
                emit_human_stats(detailed, stats)

    elif args.command == "health":
        device_id = args.device or app_cfg.device.default_device_id
        latest = store.get_latest(device_id)
        health = check_device_health(
            device_id,
            latest,
            now,
            offline_after_minutes=app_cfg.system.offline_after_minutes,
        )
        if args.alert_offline:
            offline = check_system_offline(device_id, latest, now)
            if offline is not None:
                dispatch = AlertStateManager(
                    log,
                    recent_alerts=store,
                    window_minutes=app_cfg.alerts.dedup_window_minutes,
                ).process([offline], now)
                store.record_alerts(dispatch.alerts, now)
                notifier.handle_alerts(dispatch.notify)
        if not args.quiet:
            if args.json:
                emit_json(health)
            else:
                emit_human_health(health)

    elif args.command == "insights":
        inputs = InsightInputs()
        for batch in store.iter_range(args.device, now - timedelta(days=args.days), now, app_cfg.system.batch_size):
            inputs = inputs.extend(batch, app_cfg.thresholds)
        insights = insights_from_inputs(inputs)
        if not args.quiet:
            if args.json:
                emit_json({"insights": [i.as_dict() for i in insights], "readings": inputs.readings})
            else:
                emit_human_insights(insights)

    elif args.command == "daily-summary":
        report = summary_service.run_for_yesterday(now)
        if report is not None and not args.quiet:
            if args.json:
                emit_json(report)
            else:
                emit_human_summary(report)

    elif args.command == "notify-test":
        run_notify_test(notifier, log)
    else:
        raise ValueError(f"Unsupported command: {args.command}")

    store.close()


if __name__ == "__main__":
    main()
