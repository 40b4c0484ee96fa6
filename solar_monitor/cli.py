# solar_monitor/cli.py
import argparse

def build_parser():
    parser = argparse.ArgumentParser(
        prog="solar-monitor",
        description="Solar telemetry evaluation and reporting"
    )

    parser.add_argument(
        "--config",
        default="solar_monitor.conf",
        help="Path to configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress stdout output (cron-friendly)"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Emit JSON instead of human-readable text"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    # Ingest device payloads from a file
    cmd_ingest = sub.add_parser("ingest", help="Ingest readings from a JSON or JSON-lines file")
    cmd_ingest.add_argument("file", help="Path to payload file ('-' for stdin)")

    # Period report
    cmd_summary = sub.add_parser("summary", help="Build a period summary report")
    cmd_summary.add_argument("--device", help="Device id (default: all devices)")
    cmd_summary.add_argument(
        "--type",
        choices=("daily", "weekly", "monthly", "custom"),
        default="daily",
        help="Report type; sets the default period length",
    )
    cmd_summary.add_argument("--days", type=int, help="Override the period length in days")
    cmd_summary.add_argument(
        "--deliver",
        action="store_true",
        help="Send the report to the configured sinks",
    )

    # Descriptive statistics
    cmd_stats = sub.add_parser("stats", help="Show reading statistics")
    cmd_stats.add_argument("--device", help="Device id (default: all devices)")
    cmd_stats.add_argument("--days", type=int, default=1, help="Look-back window in days")

    # Device health
    cmd_health = sub.add_parser("health", help="Show device health from the latest reading")
    cmd_health.add_argument("--device", help="Device id (default: configured device)")
    cmd_health.add_argument(
        "--alert-offline",
        action="store_true",
        help="Raise a system_offline alert when the device has gone quiet",
    )

    # Predictive insights
    cmd_insights = sub.add_parser("insights", help="Trend-based maintenance insights")
    cmd_insights.add_argument("--device", help="Device id (default: all devices)")
    cmd_insights.add_argument("--days", type=int, default=7, help="Look-back window in days")

    # Daily summary (cron)
    sub.add_parser("daily-summary", help="Send yesterday's report once per day")

    # Retention
    cmd_maint = sub.add_parser("maintain-db", help="Prune old readings and alerts")
    cmd_maint.add_argument("--reading-days", type=int, help="Override [retention] reading_days")
    cmd_maint.add_argument("--alert-days", type=int, help="Override [retention] alert_days")
    cmd_maint.add_argument("--no-vacuum", action="store_true", help="Skip VACUUM after pruning")

    # Notification test helper
    sub.add_parser("notify-test", help="Send a test notification")

    return parser
