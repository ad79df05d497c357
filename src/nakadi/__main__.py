"""Nakadi command line client. Use --help for usage."""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from pathlib import Path

from dotenv import load_dotenv

from config.config import load_config
from core.errors.exceptions import NakadiError
from core.logging.context import set_log_context
from core.logging.setup import setup_logging
from nakadi.client import Client
from nakadi.stream import StreamOptions

# Project root directory (where .env file is located)
# __main__.py is at src/nakadi/__main__.py, so root is 3 levels up
PROJECT_ROOT = Path(__file__).parent.parent.parent

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m nakadi",
        description="Nakadi event broker client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create (or fetch) a subscription
  python -m nakadi subscribe my-app order.created --read-from begin

  # Publish the events of a JSON file (array or single object)
  python -m nakadi publish order.created events.json

  # Print the first 10 batches of a subscription, one JSON object per line
  python -m nakadi stream 038fc871-1d2c-4e2e-aa29-1579e8f2e71f --max-batches 10
        """,
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.yaml file (default: src/config/config.yaml)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Write logs to stderr as JSON lines instead of human-readable text",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subscribe = subparsers.add_parser("subscribe", help="Create or fetch a subscription")
    subscribe.add_argument("owning_application", help="Application owning the subscription")
    subscribe.add_argument("event_type", help="Event type to subscribe to")
    subscribe.add_argument("--consumer-group", default="default", help="Consumer group (default: default)")
    subscribe.add_argument(
        "--read-from",
        choices=["begin", "end"],
        default="end",
        help="Where a new subscription starts reading (default: end)",
    )

    publish = subparsers.add_parser("publish", help="Publish events from a JSON file")
    publish.add_argument("event_type", help="Event type to publish to")
    publish.add_argument("file", type=Path, help="JSON file holding an event or an array of events")

    stream = subparsers.add_parser("stream", help="Print the event batches of a subscription")
    stream.add_argument("subscription_id", help="Subscription id")
    stream.add_argument(
        "--max-batches",
        type=int,
        default=None,
        help="Stop after this many batches (default: run until interrupted)",
    )
    stream.add_argument(
        "--batch-limit",
        type=int,
        default=None,
        help="Max events per batch (broker default when unset)",
    )

    return parser.parse_args(argv)


def _load_events(path: Path) -> list:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, list) else [data]


async def _subscribe(client: Client, args: argparse.Namespace) -> int:
    subscription = await client.subscribe(
        args.owning_application,
        args.event_type,
        consumer_group=args.consumer_group,
        read_from=args.read_from,
    )
    print(subscription.model_dump_json(exclude_none=True))
    return EXIT_OK


async def _publish(client: Client, args: argparse.Namespace) -> int:
    events = _load_events(args.file)
    set_log_context(event_type=args.event_type)
    await client.publish(args.event_type, *events)
    print(json.dumps({"event_type": args.event_type, "published": len(events)}))
    return EXIT_OK


async def _stream(client: Client, args: argparse.Namespace) -> int:
    set_log_context(subscription_id=args.subscription_id)
    options = StreamOptions(batch_limit=args.batch_limit)
    stream = await client.stream(args.subscription_id, options)
    set_log_context(stream_id=stream.stream_id or "")

    async with stream:
        async for batch in stream:
            print(batch.model_dump_json(exclude_none=True), flush=True)
            if args.max_batches is not None and stream.batches_read >= args.max_batches:
                break

    logger.info(
        "Stream consumption finished",
        extra={"batches_read": stream.batches_read, "heartbeats": stream.heartbeats},
    )
    return EXIT_OK


COMMANDS = {
    "subscribe": _subscribe,
    "publish": _publish,
    "stream": _stream,
}


async def run(args: argparse.Namespace, client: Client) -> int:
    """Run one command against the client, closing the client afterwards."""
    async with client:
        return await COMMANDS[args.command](client, args)


def main(argv: list[str] | None = None) -> int:
    global logger

    load_dotenv(PROJECT_ROOT / ".env")
    args = parse_args(argv)

    setup_logging(
        console_level=getattr(logging, args.log_level),
        json_format=args.json_logs,
    )
    logger = logging.getLogger(__name__)
    set_log_context(trace_id=uuid.uuid4().hex[:8])

    try:
        settings = load_config(config_path=args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    try:
        return asyncio.run(run(args, Client.from_config(settings)))
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
        return EXIT_INTERRUPTED
    except NakadiError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except (OSError, ValueError) as e:
        # Unreadable or invalid events file
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
