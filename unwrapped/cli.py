# # CLI entrypoint: parse args, load config, then generate / preview / debug-sample.

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from .config import Config, load_config
from .data.history_file import JsonHistorySource
from .data.tautulli_api import TautulliClient, TautulliConn
from .debug_views import render_debug_sample, render_stats_summary
from .distribution.mailer import Mailer, send_wrapped_emails
from .errors import UnwrappedError
from .layout import load_layout
from .logging_setup import setup_logging
from .metrics.engine import aggregate_user_year
from .metrics.normalize import events_frame, normalize_events
from .orchestrator import GenerationRunner, RetryPolicy, fetch_with_retry, load_supplementary
from .pages import render_generation
from .store import StatsStore

log = logging.getLogger("unwrapped")


def _common(p: argparse.ArgumentParser) -> None:
    # # Core IO
    p.add_argument("--config", default="config.json")
    p.add_argument("--history-file", default=None, help="Read history from a JSON export instead of Tautulli")
    p.add_argument("--year", type=int, default=None)
    p.add_argument("--timezone", default=None)

    # # CLI
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--log-file", default=None)
    p.add_argument("--console-width", type=int, default=None)
    p.add_argument("--no-color", action="store_true")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser("unwrapped")
    sub = p.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Compute and store stats for every (or selected) user")
    _common(gen)
    gen.add_argument("--users", default=None, help="Comma-separated user ids")
    gen.add_argument("--db", default=None)
    gen.add_argument("--workers", type=int, default=None)
    gen.add_argument("--replace", action="store_true", help="Overwrite existing stats for the year")
    gen.add_argument("--render", action="store_true", help="Write static HTML pages")
    gen.add_argument("--layout", default="layout.json")
    gen.add_argument("--out", default=None)
    gen.add_argument("--send-emails", action="store_true")

    prev = sub.add_parser("preview", help="Aggregate one user and print the summary")
    _common(prev)
    prev.add_argument("--user", required=True)
    prev.add_argument("--json", action="store_true", help="Print the stats document as JSON")

    dbg = sub.add_parser("debug-sample", help="Print normalized events for one user and exit")
    _common(dbg)
    dbg.add_argument("--user", default=None)
    dbg.add_argument("--rows", type=int, default=25)

    return p


def _apply_overrides(cfg: Config, args: argparse.Namespace) -> None:
    if args.history_file is not None:
        cfg.history_file = args.history_file
    if args.year is not None:
        cfg.year = args.year
    if args.timezone is not None:
        cfg.timezone = args.timezone
    if getattr(args, "db", None) is not None:
        cfg.db_path = args.db
    if getattr(args, "workers", None) is not None:
        cfg.max_workers = args.workers
    if getattr(args, "out", None) is not None:
        cfg.out_dir = args.out


def make_source(cfg: Config):
    if cfg.history_file:
        return JsonHistorySource(Path(cfg.history_file))
    if not cfg.tautulli_api_key:
        raise UnwrappedError("No history source: set tautulli_api_key or history_file")
    conn = TautulliConn(url=cfg.tautulli_url, api_key=cfg.tautulli_api_key, timeout_seconds=cfg.http_timeout_seconds)
    return TautulliClient(conn, page_size=cfg.history_page_size)


def cmd_generate(cfg: Config, args: argparse.Namespace) -> int:
    source = make_source(cfg)
    user_ids = [u.strip() for u in args.users.split(",") if u.strip()] if args.users else None

    # # First Ctrl-C stops new work; in-flight users still finish and get saved
    cancel = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda *_: cancel.set())

    with StatsStore(cfg.db_path) as store:
        runner = GenerationRunner(cfg, source, store)
        try:
            summary = runner.run(user_ids, cancel=cancel, replace=args.replace)
        finally:
            signal.signal(signal.SIGINT, previous)
        if summary.status == "failed":
            return 1

        users = source.list_users()
        if args.render:
            render_generation(store, summary.generation_id, cfg, load_layout(Path(args.layout)), users, summary.links)

        if args.send_emails:
            result = send_wrapped_emails(
                store,
                Mailer(cfg),
                cfg,
                store.list_stats_for_generation(summary.generation_id),
                {u["user_id"]: u for u in users},
                generation_id=summary.generation_id,
                links=summary.links,
            )
            log.info("Emails: %d sent, %d failed, %d skipped", result.sent, result.failed, result.skipped)

    for outcome in summary.outcomes:
        if outcome.ok and outcome.url:
            print(f"{outcome.user_id}\t{outcome.url}")
    return 0 if summary.status == "completed" else 1


def _fetch_one(cfg: Config, source, user_id: str) -> List[dict]:
    return fetch_with_retry(source, user_id, cfg.year, RetryPolicy.from_config(cfg))


def cmd_preview(cfg: Config, args: argparse.Namespace) -> int:
    source = make_source(cfg)
    records = _fetch_one(cfg, source, args.user)
    supp = load_supplementary(cfg, source)
    result = aggregate_user_year(records, cfg.engine(), supplementary=supp, user_id=args.user)
    if result.skipped_malformed:
        log.warning("Skipped %d malformed records", result.skipped_malformed)

    if args.json:
        print(result.stats.to_json(indent=2))
        return 0

    names = {u["user_id"]: u.get("friendly_name") or "" for u in source.list_users()}
    render_stats_summary(result.stats, user_name=names.get(args.user, ""), width=args.console_width, no_color=args.no_color)
    return 0


def cmd_debug_sample(cfg: Config, args: argparse.Namespace) -> int:
    source = make_source(cfg)
    user_id = args.user
    if user_id is None:
        users = source.list_users()
        if not users:
            log.error("No users found")
            return 1
        user_id = users[0]["user_id"]

    events, report = normalize_events(_fetch_one(cfg, source, user_id), year=cfg.year, timezone=cfg.timezone)
    render_debug_sample(
        events_frame(events),
        report,
        user_id=user_id,
        width=args.console_width,
        no_color=args.no_color,
        sample_rows=args.rows,
    )
    return 0


COMMANDS = {
    "generate": cmd_generate,
    "preview": cmd_preview,
    "debug-sample": cmd_debug_sample,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logging(
        level=args.log_level,
        log_file=args.log_file,
        console_width=args.console_width,
        no_color=args.no_color,
    )

    cfg = load_config(Path(args.config))
    _apply_overrides(cfg, args)

    try:
        return COMMANDS[args.command](cfg, args)
    except (UnwrappedError, FileNotFoundError) as exc:
        log.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
