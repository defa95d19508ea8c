# # Email distribution: build the "your year is ready" message and send it over SMTP.

from __future__ import annotations

import dataclasses
import logging
import smtplib
import time
from email.message import EmailMessage
from email.utils import formataddr, make_msgid
from html import escape
from typing import Callable, Dict, Iterable, Optional

from ..config import Config
from ..metrics.stats_model import UserYearStats
from ..store import StatsStore, StoredStats
from .tokens import issue_token, wrapped_url

log = logging.getLogger(__name__)

SEND_ATTEMPTS = 3


@dataclasses.dataclass(frozen=True)
class EmailContent:
    subject: str
    text: str
    html: str


@dataclasses.dataclass
class EmailSummary:
    sent: int = 0
    failed: int = 0
    skipped: int = 0


def build_email(stats: UserYearStats, display_name: str, url: str) -> EmailContent:
    name = display_name.strip() or "there"
    hours = int(stats.total_minutes // 60)
    subject = f"Your {stats.year} Plex Unwrapped is ready"

    text = (
        f"Hi {name},\n\n"
        f"Your {stats.year} year in review is ready.\n\n"
        f"- {hours} hours watched\n"
        f"- {stats.total_plays} plays\n"
        f"- {stats.days_active} days active\n\n"
        f"See the whole thing here: {url}\n"
    )

    html = f"""<!doctype html>
<html>
<body style="font-family: Arial, sans-serif; background:#0a0a0a; color:#e8e8e8; padding:24px;">
  <h1 style="color:#ff6b35;">Your {stats.year} Unwrapped</h1>
  <p>Hi {escape(name)},</p>
  <p>Here is a quick peek at your year:</p>
  <ul>
    <li><strong>{hours} hours</strong> watched</li>
    <li><strong>{stats.total_plays}</strong> plays</li>
    <li><strong>{stats.days_active}</strong> days active</li>
  </ul>
  <p><a href="{escape(url, quote=True)}" style="display:inline-block;padding:12px 20px;background:#ff6b35;color:#0a0a0a;border-radius:6px;text-decoration:none;">Open your {stats.year} Unwrapped</a></p>
</body>
</html>
"""
    return EmailContent(subject=subject, text=text, html=html)


class Mailer:
    def __init__(
        self,
        cfg: Config,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.cfg = cfg
        self.smtp_factory = smtp_factory
        self.sleep = sleep

    def _message(self, to_address: str, content: EmailContent) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((self.cfg.smtp_from_name, self.cfg.smtp_from_email))
        msg["To"] = to_address
        msg["Subject"] = content.subject
        msg["Message-ID"] = make_msgid(domain=(self.cfg.smtp_from_email.split("@")[-1] or None))
        msg.set_content(content.text)
        msg.add_alternative(content.html, subtype="html")
        return msg

    def send(self, to_address: str, content: EmailContent) -> str:
        msg = self._message(to_address, content)
        backoff = 1.0
        attempt = 0
        while True:
            attempt += 1
            try:
                with self.smtp_factory(self.cfg.smtp_host, int(self.cfg.smtp_port), timeout=30) as smtp:
                    if self.cfg.smtp_use_tls:
                        smtp.starttls()
                    if self.cfg.smtp_user:
                        smtp.login(self.cfg.smtp_user, self.cfg.smtp_password)
                    smtp.send_message(msg)
                return str(msg["Message-ID"])
            except (smtplib.SMTPException, OSError) as exc:
                if attempt >= SEND_ATTEMPTS:
                    raise
                log.warning("SMTP send to %s failed (attempt %d): %s", to_address, attempt, exc)
                self.sleep(backoff)
                backoff = min(backoff * 2, 4.0)


def send_wrapped_emails(
    store: StatsStore,
    mailer: Mailer,
    cfg: Config,
    stored: Iterable[StoredStats],
    users: Dict[str, Dict[str, str]],
    *,
    generation_id: Optional[int] = None,
    links: Optional[Dict[str, str]] = None,
) -> EmailSummary:
    """
    One email per stored snapshot. Users without an address are skipped.
    A fresh share token is issued for users that have no link yet.
    """
    summary = EmailSummary()
    links = dict(links or {})
    delay = 60.0 / cfg.email_rate_limit_per_minute if cfg.email_rate_limit_per_minute > 0 else 0.0

    for item in stored:
        user = users.get(item.user_id) or {}
        to_address = (user.get("email") or "").strip()
        if not to_address:
            log.warning("User %s has no email, skipping", item.user_id)
            summary.skipped += 1
            continue

        if cfg.test_mode:
            log.info("Test mode: not emailing %s", to_address)
            summary.skipped += 1
            continue

        url = links.get(item.user_id)
        if url is None:
            issued = issue_token(store, item, expiration_days=cfg.token_expiration_days, created_by="email")
            url = wrapped_url(cfg.app_url, issued.token)

        content = build_email(item.stats, user.get("friendly_name") or user.get("username") or "", url)
        log_id = store.create_email_log(item.user_id, generation_id, to_address, content.subject)
        try:
            message_id = mailer.send(to_address, content)
        except (smtplib.SMTPException, OSError) as exc:
            log.error("Failed to email %s: %s", to_address, exc)
            store.mark_email_failed(log_id, str(exc))
            summary.failed += 1
            continue

        store.mark_email_sent(log_id, message_id)
        summary.sent += 1
        log.info("Email sent to %s", to_address)
        if delay:
            mailer.sleep(delay)

    return summary
