import argparse
import asyncio

from reactivex import operators as ops
from reactivex.subject import BehaviorSubject

from rxquartz import (
    QuartzConfig,
    QuartzRouter,
    execute_console_action,
    from_cli,
    parse_console_line,
)
from rxquartz.cli import CONSOLE_HELP


def build_parser(subparsers: argparse._SubParsersAction):
    parser = subparsers.add_parser("console", help="drive a router from an interactive prompt.")
    parser.add_argument("--host", type=str, required=True)
    parser.add_argument("--port", type=int, default=23)
    parser.add_argument("--max-destinations", type=int, default=16)
    parser.add_argument("--max-sources", type=int, default=16)
    parser.add_argument("--verbose", action="store_true")
    parser.set_defaults(func=task)


def task(parsed_args: argparse.Namespace):
    config = QuartzConfig(
        host=parsed_args.host,
        port=parsed_args.port,
        max_destinations=parsed_args.max_destinations,
        max_sources=parsed_args.max_sources,
        verbose=parsed_args.verbose,
    )
    router = QuartzRouter(config)

    def handle_line(line: str):
        if line.strip() in ("help", "?"):
            print(CONSOLE_HELP)
            return
        try:
            action = parse_console_line(line)
        except ValueError as e:
            print(e)
            return
        if action is not None and not execute_console_action(router, action):
            print("not sent: router is not connected")

    async def run_console():
        prompts = BehaviorSubject(f"{config.host} [{router.connection_state.value}]")
        router.status_changes.pipe(
            ops.map(lambda status: f"{config.host} [{status.state.value}]")
        ).subscribe(prompts.on_next)

        done = asyncio.Event()
        prompts.pipe(
            from_cli(asyncio.get_running_loop())
        ).subscribe(
            on_next=handle_line,
            on_error=lambda error: print(f"Error: {error}"),
            on_completed=done.set,
        )

        router.connect()
        await done.wait()

    try:
        asyncio.run(run_console())
    except KeyboardInterrupt:
        print("\nKeyboard Interrupt.")
    finally:
        router.close()
