import argparse
import json
import time

from loguru import logger

from match_alerts.config import get_settings
from match_alerts.db.database import create_db_engine, get_session_factory, init_db
from match_alerts.exceptions import PersistenceError
from match_alerts.log import configure_logging
from match_alerts.milestones import Milestone
from match_alerts.scheduler.runner import AlertScheduler

settings = get_settings()


def build_scheduler() -> AlertScheduler:
    engine = create_db_engine()
    init_db(engine)
    return AlertScheduler.from_config(get_session_factory(engine))


def run_forever():
    """啟動排程器直到 Ctrl+C"""
    alert_scheduler = build_scheduler()
    alert_scheduler.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    finally:
        alert_scheduler.stop()


def run_check():
    """立即執行一次比賽檢查"""
    alert_scheduler = build_scheduler()
    try:
        alert_scheduler.dedup.load()
    except PersistenceError as e:
        logger.error(f"Could not load dedup keys: {e}")
    result = alert_scheduler.force_check_now()
    logger.info(
        f"Result: skipped={result.skipped} matches={result.event_count} "
        f"sent={result.dispatched} failed={result.failed}"
    )


def main():
    parser = argparse.ArgumentParser(description="Match Alerts CLI")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("init", help="Initialize database")
    subparsers.add_parser("run", help="Run the alert scheduler in the foreground")
    subparsers.add_parser("check", help="Run one match check now")

    test_parser = subparsers.add_parser("test", help="Send a test notification")
    test_parser.add_argument(
        "--milestone",
        "-m",
        choices=[m.value for m in Milestone],
        help="Preview the alert for this milestone",
    )

    subparsers.add_parser("stats", help="Print scheduler statistics")
    subparsers.add_parser("serve", help="Start API server")

    args = parser.parse_args()
    configure_logging()

    if args.command == "init":
        init_db(create_db_engine())
    elif args.command == "run":
        run_forever()
    elif args.command == "check":
        run_check()
    elif args.command == "test":
        milestone = Milestone(args.milestone) if args.milestone else None
        sent = build_scheduler().send_test_notification(milestone)
        logger.info(f"Test notification {'sent' if sent else 'not sent'}")
    elif args.command == "stats":
        alert_scheduler = build_scheduler()
        alert_scheduler.dedup.load()
        print(json.dumps(alert_scheduler.get_stats(), indent=2, ensure_ascii=False))
    elif args.command == "serve":
        import uvicorn

        uvicorn.run(
            "match_alerts.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.debug,
        )
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
