import argparse
import time

from rxquartz import (
    CrosspointChanged,
    DirectoryChanged,
    LockChanged,
    QuartzConfig,
    QuartzRouter,
)


def build_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("monitor", help="connect to a router and print its events.")
    parser.add_argument("--host", type=str, required=True)
    parser.add_argument("--port", type=int, default=23)
    parser.add_argument("--max-destinations", type=int, default=16)
    parser.add_argument("--max-sources", type=int, default=16)
    parser.add_argument("--poll-interval", type=float, default=5.0)
    parser.add_argument("--levels", type=str, default="V")
    parser.add_argument("--verbose", action="store_true")
    parser.set_defaults(func=task)


def _describe(event) -> str:
    if isinstance(event, CrosspointChanged):
        return f"xpt {event.level} dest {event.destination} <- src {event.source}"
    if isinstance(event, DirectoryChanged):
        return f"{event.kind.value} {event.id}: {event.name}"
    if isinstance(event, LockChanged):
        return f"lock dest {event.destination}: {event.state.value}"
    return repr(event)


def task(parsed_args: argparse.Namespace):
    config = QuartzConfig(
        host=parsed_args.host,
        port=parsed_args.port,
        max_destinations=parsed_args.max_destinations,
        max_sources=parsed_args.max_sources,
        poll_interval=parsed_args.poll_interval,
        poll_levels=parsed_args.levels.upper(),
        verbose=parsed_args.verbose,
    )
    router = QuartzRouter(config)
    router.events.subscribe(
        on_next=lambda event: print(_describe(event)),
        on_error=print,
    )
    router.connect()

    try:
        while True:
            time.sleep(0.5)
    except KeyboardInterrupt:
        print("\nKeyboard Interrupt.")
    finally:
        router.close()
