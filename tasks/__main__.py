import argparse

from . import task_router_console, task_router_monitor


def main():
    parser = argparse.ArgumentParser(prog="python -m tasks", description="rxquartz tasks")
    subparsers = parser.add_subparsers(required=True)
    task_router_monitor.build_parser(subparsers)
    task_router_console.build_parser(subparsers)

    parsed_args = parser.parse_args()
    parsed_args.func(parsed_args)


if __name__ == "__main__":
    main()
