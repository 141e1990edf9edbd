"""Terminal front end for the search/select workflow."""
from __future__ import annotations

import argparse
import asyncio
import logging
import webbrowser
from pathlib import Path
from typing import Iterable

from pairing_search.config import settings
from pairing_search.models import WorkflowSnapshot
from pairing_search.off_client import OpenFoodFactsClient
from pairing_search.workflow import SearchWorkflow

MAX_RESULTS = 50
GREEN = "\033[92m"
RED = "\033[91m"
RESET = "\033[0m"
CLEAR_COMMAND = ":clear"


def print_banner() -> None:
    print("Search products by name or ingredients. Enter a number to select a result,")
    print(f"'{CLEAR_COMMAND}' to start over, 'exit' to quit.")


def pretty_print_snapshot(snapshot: WorkflowSnapshot) -> None:
    if snapshot.error is not None:
        print(f"{RED}{snapshot.error.operation} failed ({snapshot.error.kind}): {snapshot.error.message}{RESET}")
    if snapshot.selected is None:
        print(f"Query: {snapshot.query} | results: {len(snapshot.results)}")
        for idx, item in enumerate(snapshot.results[:MAX_RESULTS], start=1):
            print(f"  {idx:02d}. {item.name or '-'} | {item.code}")
        return
    print(f"Selected Result: {snapshot.selected.name or snapshot.selected.code}")
    if snapshot.pairings:
        print("Pairings:")
        for tag in snapshot.pairings:
            print(f"  {GREEN}{tag}{RESET}")


async def interactive_shell(workflow: SearchWorkflow) -> None:
    print_banner()
    while True:
        try:
            line = (await asyncio.to_thread(input, "> ")).strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not line:
            continue
        if line.lower() in {"exit", "quit"}:
            return
        if line == CLEAR_COMMAND:
            workflow.clear_search()
            continue
        if line.isdigit() and workflow.results:
            index = int(line) - 1
            if not 0 <= index < len(workflow.results):
                print(f"Pick a number between 1 and {len(workflow.results)}")
                continue
            workflow.select_result(workflow.results[index])
        else:
            workflow.update_query(line)
            workflow.submit_search()
        await workflow.wait_idle()
        pretty_print_snapshot(workflow.snapshot())


async def run_query(workflow: SearchWorkflow, query: str, select: int | None = None) -> WorkflowSnapshot:
    workflow.update_query(query)
    workflow.submit_search()
    await workflow.wait_idle()
    if select is not None and 0 < select <= len(workflow.results):
        workflow.select_result(workflow.results[select - 1])
        await workflow.wait_idle()
    return workflow.snapshot()


async def batch_mode(workflow: SearchWorkflow, file_path: Path) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            pretty_print_snapshot(await run_query(workflow, query))


async def _main(args: argparse.Namespace) -> int:
    open_url = None if args.no_open else webbrowser.open
    async with OpenFoodFactsClient() as client:
        workflow = SearchWorkflow(client, open_url=open_url, on_reset=print_banner)
        if args.batch:
            await batch_mode(workflow, args.batch)
        elif args.query:
            pretty_print_snapshot(await run_query(workflow, args.query, args.select))
        else:
            await interactive_shell(workflow)
    return 0


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Search Open Food Facts and show ingredient pairings")
    parser.add_argument("query", nargs="?", help="Query string. If omitted, starts REPL mode.")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    parser.add_argument("--select", type=int, help="With a query, select the N-th result and show its pairings")
    parser.add_argument("--no-open", action="store_true", help="Do not open selected products in a browser")
    args = parser.parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=logging.getLevelName(settings.log_level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        force=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    raise SystemExit(main())
