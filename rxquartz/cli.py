"""Interactive console for driving a router by hand.

``parse_console_line`` turns one typed line into something the router can
execute; ``from_cli`` is the prompt_toolkit-backed operator that turns a
stream of prompt texts into a stream of typed lines.
"""

import asyncio
from enum import Enum
from typing import Literal

from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout
from reactivex import Observable

from .protocol.commands import (
    CommandIntent,
    FireSalvo,
    Interrogate,
    InterrogateLock,
    ListRoutes,
    LockDestination,
    Route,
    UnlockDestination,
)
from .protocol.messages import DELIMITER

CONSOLE_HELP = """\
route <levels> <dest> <src>   route a source, e.g. "route VA 1 5"
salvo <n>                     fire a salvo
lock <dest> / unlock <dest>   lock or unlock a destination
lockstatus <dest>             ask for the lock status of a destination
interrogate <level> <dest>    ask which source feeds a destination
list <level> [<start>]        list routes from a destination onwards
names                         re-read destination and source names
refresh                       re-read names and crosspoints
.<raw command>                send a command as typed"""


class ConsoleRequest(Enum):
    """Console verbs that map onto router operations rather than one command."""

    NAMES = "names"
    REFRESH = "refresh"


ConsoleAction = CommandIntent | ConsoleRequest | str


def _ints(args: list[str], count: int, usage: str) -> list[int]:
    if len(args) != count:
        raise ValueError(f"usage: {usage}")
    try:
        return [int(a) for a in args]
    except ValueError:
        raise ValueError(f"usage: {usage}") from None


def parse_console_line(line: str) -> ConsoleAction | None:
    """Parse one console line.

    Returns a command intent, a :class:`ConsoleRequest`, raw command text
    (for lines starting with ``.``), or None for a blank line.

    Raises:
        ValueError: For unknown verbs, wrong arity, or invalid ids and levels.
    """
    text = line.strip()
    if not text:
        return None
    if text.startswith(DELIMITER):
        return text

    verb, *args = text.split()
    verb = verb.lower()

    if verb == "route":
        if len(args) != 3:
            raise ValueError("usage: route <levels> <dest> <src>")
        destination, source = _ints(args[1:], 2, "route <levels> <dest> <src>")
        return Route(args[0].upper(), destination, source)
    if verb == "salvo":
        (salvo,) = _ints(args, 1, "salvo <n>")
        return FireSalvo(salvo)
    if verb == "lock":
        (destination,) = _ints(args, 1, "lock <dest>")
        return LockDestination(destination)
    if verb == "unlock":
        (destination,) = _ints(args, 1, "unlock <dest>")
        return UnlockDestination(destination)
    if verb == "lockstatus":
        (destination,) = _ints(args, 1, "lockstatus <dest>")
        return InterrogateLock(destination)
    if verb == "interrogate":
        if len(args) != 2:
            raise ValueError("usage: interrogate <level> <dest>")
        (destination,) = _ints(args[1:], 1, "interrogate <level> <dest>")
        return Interrogate(args[0].upper(), destination)
    if verb == "list":
        if len(args) not in (1, 2):
            raise ValueError("usage: list <level> [<start>]")
        start = _ints(args[1:], 1, "list <level> [<start>]")[0] if len(args) == 2 else 1
        return ListRoutes(args[0].upper(), start)
    if verb in ("names", "refresh"):
        if args:
            raise ValueError(f"usage: {verb}")
        return ConsoleRequest(verb)

    raise ValueError(f"unknown command: {verb!r}")


def execute_console_action(router, action: ConsoleAction) -> bool:
    """Run a parsed console action against a :class:`QuartzRouter`."""
    if action is ConsoleRequest.NAMES:
        return router.request_names()
    if action is ConsoleRequest.REFRESH:
        return router.refresh()
    return router.submit(action)


def from_cli(
    loop: asyncio.AbstractEventLoop | None = None,
    *,
    mode: Literal["queue", "loop"] = "loop",
):
    """
    Prompt the user for console lines and emit each reply downstream.

    Each element of the source Observable is a prompt text (for example the
    router endpoint and its connection state).

    Parameters
    ----------
    loop : asyncio.AbstractEventLoop | None
        Event loop to run the prompt on. If None, the running loop is used.
    mode : Literal["queue", "loop"], default "loop"
        * "queue" – every prompt text is asked once, in order.
        * "loop"  – keep prompting, always showing the latest prompt text.

    Ctrl-D or Ctrl-C completes the stream.
    """

    if mode not in ("queue", "loop"):
        raise ValueError(f"Invalid mode: {mode}. Choose from 'queue' or 'loop'.")

    def _from_cli(source: Observable) -> Observable:

        def subscribe(observer, scheduler=None):
            session = PromptSession()
            _loop = loop or asyncio.get_running_loop()
            waiting_prompts: asyncio.Queue[str] = asyncio.Queue()
            current_prompt = {"text": ""}
            done = asyncio.Event()

            async def prompt_loop():
                while not done.is_set():
                    if mode == "queue":
                        current_prompt["text"] = await waiting_prompts.get()
                    try:
                        with patch_stdout():
                            line = await session.prompt_async(
                                lambda: f"{current_prompt['text']}> "
                            )
                        observer.on_next(line)
                    except (EOFError, KeyboardInterrupt):
                        observer.on_completed()
                        done.set()
                    except Exception as exc:
                        observer.on_error(exc)
                        done.set()

            _loop.create_task(prompt_loop())

            def _on_next(value):
                async def _handle():
                    if mode == "queue":
                        await waiting_prompts.put(str(value))
                    else:
                        current_prompt["text"] = str(value)
                        if session.app.is_running:
                            session.app.invalidate()

                asyncio.run_coroutine_threadsafe(_handle(), _loop)

            return source.subscribe(
                on_next=_on_next,
                on_error=observer.on_error,
                on_completed=lambda: None,
                scheduler=scheduler,
            )

        return Observable(subscribe)

    return _from_cli
