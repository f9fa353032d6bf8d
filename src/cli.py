import argparse

from loguru import logger

from src.catalog.base import FetchFailed
from src.catalog.epic import EpicGamesFetcher
from src.config import get_settings
from src.db.database import Base, get_sync_engine, get_sync_session
from src.notifications.formatter import format_end_date
from src.notifications.ledger import AnnouncementLedger
from src.scheduler.jobs import FreeGamesWatcher, build_pipeline
from src.subscribers import SubscriberDirectory

settings = get_settings()


def init_database():
    """Create all tables."""
    import src.models  # noqa: F401

    Base.metadata.create_all(get_sync_engine())
    logger.info("Database initialized")


def run_check():
    """Run one fetch -> filter -> record -> dispatch cycle now."""
    init_database()
    watcher = FreeGamesWatcher(build_pipeline(settings))
    result = watcher.run_once()
    logger.info(f"Result: {result}")


def show_free_games():
    fetcher = EpicGamesFetcher.from_settings(settings)
    games = fetcher.get_free_games()
    if not games:
        print("No free games right now.")
        return
    for index, game in enumerate(games, start=1):
        print(f"{index}. {game.title} (until {format_end_date(game.end_date)})")
        print(f"   {game.url}")


def run_api_test():
    """Query the catalog once and print a summary of what it contains."""
    fetcher = EpicGamesFetcher.from_settings(settings)
    try:
        summary = fetcher.catalog_summary()
    except FetchFailed as e:
        logger.error(f"Catalog API test failed: {e}")
        return
    for key, value in summary.items():
        print(f"{key}: {value}")


def subscribe(chat_id: int, username: str = None, first_name: str = None):
    init_database()
    with get_sync_session() as session:
        SubscriberDirectory(session).subscribe(chat_id, username, first_name)


def unsubscribe(chat_id: int):
    init_database()
    with get_sync_session() as session:
        SubscriberDirectory(session).unsubscribe(chat_id)


def show_status(limit: int = 10):
    """Print subscriber counts and the latest announcements."""
    init_database()
    with get_sync_session() as session:
        counts = SubscriberDirectory(session).counts()
        announced = AnnouncementLedger(session).list_announced(limit=limit)

    print(f"Database: {settings.sync_database_url}")
    print(
        f"Subscribers: {counts['total']} total, {counts['subscribed']} subscribed, "
        f"{counts['unsubscribed']} unsubscribed"
    )
    print(f"Last {len(announced)} announced games:")
    for record in announced:
        print(f"  {record.announced_at:%d/%m/%Y} {record.title} [{record.id}]")


def main():
    parser = argparse.ArgumentParser(description="Free Game Radar CLI")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # init command
    subparsers.add_parser("init", help="Initialize database")

    # check command
    subparsers.add_parser("check", help="Check for new free games and notify now")

    # free command
    subparsers.add_parser("free", help="List games that are free right now")

    # api-test command
    subparsers.add_parser("api-test", help="Summarize the upstream catalog response")

    # subscribe / unsubscribe commands
    sub_parser = subparsers.add_parser("subscribe", help="Add or reactivate a subscriber")
    sub_parser.add_argument("--chat-id", "-c", type=int, required=True)
    sub_parser.add_argument("--username", "-u")
    sub_parser.add_argument("--first-name", "-f")

    unsub_parser = subparsers.add_parser("unsubscribe", help="Deactivate a subscriber")
    unsub_parser.add_argument("--chat-id", "-c", type=int, required=True)

    # status command
    status_parser = subparsers.add_parser("status", help="Show diagnostics")
    status_parser.add_argument("--limit", "-n", type=int, default=10)

    # serve command
    subparsers.add_parser("serve", help="Start API server and scheduler")

    args = parser.parse_args()

    if args.command == "init":
        init_database()
    elif args.command == "check":
        run_check()
    elif args.command == "free":
        show_free_games()
    elif args.command == "api-test":
        run_api_test()
    elif args.command == "subscribe":
        subscribe(args.chat_id, args.username, args.first_name)
    elif args.command == "unsubscribe":
        unsubscribe(args.chat_id)
    elif args.command == "status":
        show_status(args.limit)
    elif args.command == "serve":
        import uvicorn

        uvicorn.run(
            "src.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=settings.debug,
        )
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
