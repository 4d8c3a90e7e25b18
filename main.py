# main.py

import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from tallyguard import OperationResult, VotingSystem
from tallyguard.config import Config
from tallyguard.exceptions import VotingError
from tallyguard.logger import get_logger
from tallyguard.utils import Deadline

console = Console()
logger = get_logger("tallyguard.cli")

EXIT_OK = 0
EXIT_NOT_PERMITTED = 1
EXIT_TRY_AGAIN = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Election ledger: register, authorize, vote, tally")

    parser.add_argument(
        "--backend",
        choices=["json", "postgres"],
        help="Store backend (default: STORE_BACKEND or json)",
    )
    parser.add_argument(
        "--store-path",
        type=Path,
        help="Election file for the json backend (default: STORE_PATH or data/election.json)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Give up after this many seconds",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create the election tables or file")

    p = sub.add_parser("add-candidate", help="Add a candidate")
    p.add_argument("name")

    p = sub.add_parser("register", help="Register (or re-register) a voter address")
    p.add_argument("address")

    p = sub.add_parser("authorize", help="Authorize a registered voter")
    p.add_argument("address")

    p = sub.add_parser("vote", help="Cast a vote")
    p.add_argument("address")
    p.add_argument("candidate_id", type=int)

    p = sub.add_parser("status", help="Show a voter's authorization and voted status")
    p.add_argument("address")

    sub.add_parser("candidates", help="List candidates")
    sub.add_parser("results", help="Show the tally")

    return parser


def load_config(args) -> Config:
    config = Config()
    if args.backend:
        config.store_backend = args.backend
    if args.store_path:
        config.store_path = args.store_path
    return config


def report(result: OperationResult, success_message: str) -> int:
    """Print an operation outcome and map it to an exit code."""
    if result.success:
        console.print(f"[green]{success_message}[/green]")
        return EXIT_OK
    if result.retryable:
        console.print(f"[yellow]Please try again:[/yellow] {result.message}")
        return EXIT_TRY_AGAIN
    console.print(f"[red]Not permitted:[/red] {result.message}")
    return EXIT_NOT_PERMITTED


def print_candidates(system: VotingSystem, deadline) -> None:
    table = Table(title=system.election_name)
    table.add_column("ID", justify="right")
    table.add_column("Candidate")
    table.add_column("Votes", justify="right")
    table.add_column("Added")
    for candidate in system.list_candidates(deadline):
        table.add_row(
            str(candidate.id),
            candidate.name,
            str(candidate.vote_count),
            f"{candidate.created_at:%Y-%m-%d %H:%M}",
        )
    console.print(table)


def run(args, system: VotingSystem) -> int:
    deadline = Deadline.after(args.timeout) if args.timeout else None

    if args.command == "init":
        system.store.init_schema()
        console.print(f"[green]Initialized {system.store.backend} store[/green]")
        return EXIT_OK

    if args.command == "add-candidate":
        result = system.add_candidate(args.name, deadline)
        return report(result, f"Added candidate {args.name} (id={result.data})")

    if args.command == "register":
        result = system.register_voter(args.address, deadline)
        return report(result, "Registration Successful. You can now authorize and vote!")

    if args.command == "authorize":
        result = system.authorize_voter(args.address, deadline)
        return report(result, "You have been authorized to vote!")

    if args.command == "vote":
        result = system.cast_vote(args.address, args.candidate_id, deadline)
        code = report(result, f"Vote cast successfully for candidate {args.candidate_id}")
        if result.success:
            console.print(system.results_text(deadline), end="")
        return code

    if args.command == "status":
        result = system.voter_status(args.address, deadline)
        if result.success:
            status = result.data
            console.print(f"{args.address}: authorized={status.authorized} voted={status.voted}")
        return report(result, "OK")

    if args.command == "candidates":
        print_candidates(system, deadline)
        return EXIT_OK

    if args.command == "results":
        console.print(f"[bold]{system.election_name}[/bold]")
        console.print(system.results_text(deadline), end="")
        return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
        with VotingSystem.from_config(config) as system:
            code = run(args, system)
            logger.debug(system.timer.summary())
            return code
    except VotingError as e:
        # Reads and init raise directly instead of returning a result
        logger.error(f"{args.command} failed: {e}")
        return EXIT_TRY_AGAIN if e.recoverable else EXIT_NOT_PERMITTED
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_TRY_AGAIN


if __name__ == "__main__":
    sys.exit(main())
