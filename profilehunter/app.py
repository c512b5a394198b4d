import argparse
import json
from pathlib import Path
from typing import List

from . import __version__
from .candidates import generate_usernames
from .config import ConfigError, Settings, load_env
from .logger import get_logger
from .schema import InvalidEmailError, batch_request
from .service import ResolutionService
from .storage import ReportStore, list_reports, load_last_report


def read_email_file(path: Path) -> List[str]:
    """One email per line; blank lines and # comments are ignored."""
    if not path.exists():
        raise SystemExit(f"Input file not found: {path}")
    emails = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            emails.append(line)
    return emails


def _settings(args: argparse.Namespace) -> Settings:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        raise SystemExit(str(e))
    if getattr(args, "db", None):
        settings.db_path = Path(args.db)
    if getattr(args, "delay", None) is not None:
        if args.delay < 0:
            raise SystemExit("--delay must not be negative")
        settings.delay_seconds = args.delay
    if getattr(args, "credits", None) is not None:
        if args.credits < 0:
            raise SystemExit("--credits must not be negative")
        settings.initial_credits = args.credits
    return settings


def print_results(results: List[dict]) -> None:
    for r in results:
        if r.get("error"):
            print(f"[invalid] {r['email']} - {r['error']}")
        elif r.get("linkedin"):
            print(f"[{r['layers'][0]}] {r['email']} -> {r['linkedin']} (confidence {r['confidence']})")
        else:
            print(f"[not-found] {r['email']}")


def cmd_resolve(args: argparse.Namespace) -> None:
    batches: List[List[str]] = []
    if args.emails:
        batches.append([e.strip() for e in args.emails.split(",") if e.strip()])
    for input_path in args.input or []:
        batches.append(read_email_file(Path(input_path)))
    batches = [b for b in batches if b]
    if not batches:
        raise SystemExit("No emails given. Use --emails \"a@x.com,b@y.com\" or --input FILE")

    settings = _settings(args)
    logger = get_logger(level=settings.log_level)
    service = ResolutionService(settings, store=ReportStore(settings.db_path, logger=logger), logger=logger)

    # batches share one ledger for the life of this process
    for emails in batches:
        try:
            outcome = service.check_emails(batch_request(emails, args.api_key))
        except ValueError as e:
            raise SystemExit(str(e))
        if args.json:
            print(json.dumps(outcome, indent=2))
        else:
            print_results(outcome["results"])
            resolved = sum(1 for r in outcome["results"] if r.get("linkedin"))
            print(f"Done. total={len(outcome['results'])} resolved={resolved} "
                  f"apollo_credits={outcome['apolloCredits']}")


def cmd_results(args: argparse.Namespace) -> None:
    settings = _settings(args)
    report = load_last_report(settings.db_path)
    if args.json:
        print(json.dumps(report["results"] if report else [], indent=2))
        return
    if not report:
        print("No results yet.")
        return
    print(f"Last batch ({report['createdAt']}), apollo credits left: {report['apolloCredits']}\n")
    print_results(report["results"])


def cmd_history(args: argparse.Namespace) -> None:
    settings = _settings(args)
    runs = list_reports(settings.db_path, limit=args.limit)
    if not runs:
        print("No batches stored.")
        return
    for run in runs:
        print(f"#{run['id']} {run['createdAt']} resolved={run['resolved']}/{run['emails']} "
              f"apollo_credits={run['apolloCredits']}")


def cmd_usernames(args: argparse.Namespace) -> None:
    try:
        names = generate_usernames(args.email)
    except InvalidEmailError as e:
        raise SystemExit(f"Invalid email: {e}")
    for name in names:
        print(name)


def main(argv=None):
    # Load .env if present (APOLLO_API_KEY, PROFILEHUNTER_* settings)
    load_env()
    parser = argparse.ArgumentParser(prog="profilehunter", description="Find LinkedIn profiles from email addresses")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    res = subparsers.add_parser("resolve", help="Resolve a batch of emails to profile URLs")
    res.add_argument("--emails", help="Comma-separated emails")
    res.add_argument("--input", action="append", help="File with one email per line; repeat for several batches")
    res.add_argument("--api-key", help="Apollo API key (or set APOLLO_API_KEY)")
    res.add_argument("--delay", type=float, help="Seconds between emails (default 2)")
    res.add_argument("--credits", type=int, help="Apollo credit budget for this process (default 50)")
    res.add_argument("--db", help="SQLite results database (default: data/profilehunter.db)")
    res.add_argument("--json", action="store_true", help="Print the report as JSON")
    res.set_defaults(func=cmd_resolve)

    rst = subparsers.add_parser("results", help="Show the most recent batch")
    rst.add_argument("--db", help="SQLite results database")
    rst.add_argument("--json", action="store_true", help="Print results as JSON")
    rst.set_defaults(func=cmd_results)

    his = subparsers.add_parser("history", help="List recent batches")
    his.add_argument("--db", help="SQLite results database")
    his.add_argument("--limit", type=int, default=10, help="Number of batches to show")
    his.set_defaults(func=cmd_history)

    usr = subparsers.add_parser("usernames", help="Show candidate usernames for an email")
    usr.add_argument("--email", required=True, help="Email address")
    usr.set_defaults(func=cmd_usernames)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
