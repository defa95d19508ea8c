# # Orchestrates one generation: list users, fetch + aggregate each user on a bounded worker pool,
# # persist one snapshot per user-year from this thread, issue share tokens, track partial failure.

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

from .config import Config
from .data.supplementary import Supplementary, load_request_counts
from .distribution.tokens import issue_token, wrapped_url
from .errors import DuplicateStatsError, HistorySourceError
from .metrics.engine import AggregationResult, aggregate_user_year
from .store import StatsStore, utcnow

log = logging.getLogger(__name__)


class HistorySource(Protocol):
    def list_users(self) -> List[Dict[str, str]]: ...

    def fetch_user_records(self, user_id: str, year: int) -> List[Dict[str, Any]]: ...


@dataclasses.dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 4
    backoff_seconds: float = 1.0
    backoff_max_seconds: float = 30.0

    @classmethod
    def from_config(cls, cfg: Config) -> "RetryPolicy":
        return cls(
            attempts=max(int(cfg.fetch_max_attempts), 1),
            backoff_seconds=float(cfg.fetch_backoff_seconds),
            backoff_max_seconds=float(cfg.fetch_backoff_max_seconds),
        )


@dataclasses.dataclass
class UserOutcome:
    user_id: str
    ok: bool
    stats_id: Optional[int] = None
    url: Optional[str] = None
    skipped_malformed: int = 0
    error: Optional[str] = None


@dataclasses.dataclass
class GenerationSummary:
    generation_id: int
    year: int
    status: str = "pending"
    total_users: int = 0
    outcomes: List[UserOutcome] = dataclasses.field(default_factory=list)

    @property
    def successful(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.ok)

    @property
    def links(self) -> Dict[str, str]:
        return {o.user_id: o.url for o in self.outcomes if o.ok and o.url}


def fetch_with_retry(
    source: HistorySource,
    user_id: str,
    year: int,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Dict[str, Any]]:
    """
    Fetch a user's complete history, retrying transient failures with doubling
    backoff. Every attempt starts from scratch; partial pages are never merged.
    """
    backoff = policy.backoff_seconds
    attempt = 0
    while True:
        attempt += 1
        try:
            return list(source.fetch_user_records(user_id, year))
        except HistorySourceError as exc:
            if not exc.transient or attempt >= policy.attempts:
                raise
            log.warning("Fetch for user %s failed (attempt %d/%d): %s", user_id, attempt, policy.attempts, exc)
            sleep(backoff)
            backoff = min(backoff * 2, policy.backoff_max_seconds)


def load_supplementary(
    cfg: Config, source: HistorySource, supplementary: Optional[Supplementary] = None
) -> Optional[Supplementary]:
    supp = supplementary
    fetch = getattr(source, "fetch_supplementary", None)
    if supp is None and fetch is not None:
        try:
            supp = fetch()
        except HistorySourceError as exc:
            # # Library share degrades to "unavailable"; the computation goes on
            log.warning("Supplementary metadata unavailable: %s", exc)
            supp = None

    if cfg.request_counts_file:
        counts = load_request_counts(Path(cfg.request_counts_file))
        supp = (supp or Supplementary()).merged(Supplementary(request_counts_by_title=counts))
    return supp


class GenerationRunner:
    def __init__(
        self,
        cfg: Config,
        source: HistorySource,
        store: StatsStore,
        *,
        supplementary: Optional[Supplementary] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = cfg
        self.source = source
        self.store = store
        self.supplementary = supplementary
        self.sleep = sleep
        self.engine_cfg = cfg.engine()
        self.retry = RetryPolicy.from_config(cfg)

    def compute_user(self, user_id: str, supplementary: Optional[Supplementary]) -> Tuple[AggregationResult, float]:
        # # Runs on a worker thread: network fetch, then the pure engine
        t0 = time.monotonic()
        records = fetch_with_retry(self.source, user_id, self.engine_cfg.year, self.retry, sleep=self.sleep)
        result = aggregate_user_year(records, self.engine_cfg, supplementary=supplementary, user_id=user_id)
        return result, time.monotonic() - t0

    def run(
        self,
        user_ids: Optional[List[str]] = None,
        *,
        cancel: Optional[threading.Event] = None,
        triggered_by: str = "cli",
        replace: bool = False,
        issue_tokens: bool = True,
    ) -> GenerationSummary:
        year = self.engine_cfg.year
        gid = self.store.create_generation(year, triggered_by=triggered_by)
        summary = GenerationSummary(generation_id=gid, year=year)

        try:
            users = self.source.list_users()
            if user_ids:
                wanted = {str(u) for u in user_ids}
                users = [u for u in users if u["user_id"] in wanted]
            supplementary = load_supplementary(self.cfg, self.source, self.supplementary)
        except Exception as exc:
            log.exception("Generation %d could not start", gid)
            summary.status = "failed"
            self.store.update_generation(gid, status="failed", completed_at=utcnow(), error_log=str(exc))
            return summary

        summary.total_users = len(users)
        summary.status = "processing"
        self.store.update_generation(gid, status="processing", started_at=utcnow(), total_users=len(users))
        log.info("Generation %d: %d users for %d", gid, len(users), year)

        try:
            cancelled = self._drain(users, supplementary, summary, cancel, replace, issue_tokens)
        except Exception as exc:
            log.exception("Generation %d aborted", gid)
            summary.outcomes.sort(key=lambda o: o.user_id)
            summary.status = "failed"
            self.store.update_generation(
                gid,
                status="failed",
                completed_at=utcnow(),
                successful_users=summary.successful,
                failed_users=summary.failed,
                error_log=str(exc),
            )
            return summary

        summary.outcomes.sort(key=lambda o: o.user_id)
        summary.status = "cancelled" if cancelled else "completed"
        self.store.update_generation(
            gid,
            status=summary.status,
            completed_at=utcnow(),
            successful_users=summary.successful,
            failed_users=summary.failed,
            error_log="\n".join(f"{o.user_id}: {o.error}" for o in summary.outcomes if o.error) or None,
        )
        log.info("Generation %d %s: %d successful, %d failed", gid, summary.status, summary.successful, summary.failed)
        return summary

    def _drain(
        self,
        users: List[Dict[str, str]],
        supplementary: Optional[Supplementary],
        summary: GenerationSummary,
        cancel: Optional[threading.Event],
        replace: bool,
        issue_tokens: bool,
    ) -> bool:
        workers = max(int(self.cfg.max_workers), 1)
        queue = iter(users)
        pending: Dict[Future, Dict[str, str]] = {}
        cancelled = False

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="unwrapped") as pool:
            while True:
                # # Keep at most `workers` users in flight; cancellation only stops new submissions
                while len(pending) < workers and not cancelled:
                    if cancel is not None and cancel.is_set():
                        cancelled = True
                        log.warning("Generation %d cancelled; finishing in-flight users", summary.generation_id)
                        break
                    user = next(queue, None)
                    if user is None:
                        break
                    pending[pool.submit(self.compute_user, user["user_id"], supplementary)] = user

                if not pending:
                    break

                done, _ = wait(list(pending), return_when=FIRST_COMPLETED)
                for fut in done:
                    user = pending.pop(fut)
                    outcome = self._persist(user, fut, summary.generation_id, replace, issue_tokens)
                    summary.outcomes.append(outcome)
                    self.store.record_user_outcome(summary.generation_id, outcome.ok)

        return cancelled

    def _persist(self, user: Dict[str, str], fut: Future, gid: int, replace: bool, issue_tokens: bool) -> UserOutcome:
        uid = user["user_id"]
        name = user.get("friendly_name") or user.get("username") or uid
        try:
            result, elapsed = fut.result()
        except Exception as exc:
            log.error("Failed to process user %s (%s): %s", uid, name, exc)
            return UserOutcome(user_id=uid, ok=False, error=str(exc))

        if result.skipped_malformed:
            log.warning("User %s: skipped %d malformed history records", uid, result.skipped_malformed)

        try:
            stats_id = self.store.save_user_stats(
                uid,
                result.stats,
                generation_id=gid,
                skipped_malformed=result.skipped_malformed,
                processing_time_seconds=round(elapsed, 3),
                replace=replace,
            )
        except DuplicateStatsError as exc:
            log.error("User %s: %s", uid, exc)
            return UserOutcome(user_id=uid, ok=False, skipped_malformed=result.skipped_malformed, error=str(exc))
        except Exception as exc:
            log.exception("Failed to save stats for user %s (%s)", uid, name)
            return UserOutcome(user_id=uid, ok=False, skipped_malformed=result.skipped_malformed, error=str(exc))

        url = None
        if issue_tokens:
            try:
                stored = self.store.get_stats_by_id(stats_id)
                issued = issue_token(self.store, stored, expiration_days=self.cfg.token_expiration_days)
            except Exception as exc:
                log.exception("Failed to issue a share token for user %s (%s)", uid, name)
                return UserOutcome(
                    user_id=uid, ok=False, stats_id=stats_id, skipped_malformed=result.skipped_malformed, error=str(exc)
                )
            url = wrapped_url(self.cfg.app_url, issued.token)

        log.info("Processed user %s (%s): %d plays", uid, name, result.stats.total_plays)
        return UserOutcome(user_id=uid, ok=True, stats_id=stats_id, url=url, skipped_malformed=result.skipped_malformed)
