"""
Email Notifier — sends one batched email per category sync listing the newly
discovered job posts. Uses stdlib smtplib (no extra dependencies).
"""

import html
import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Optional

from models.errors import NotificationError, SyncError
from models.job import JobListingEntry

logger = logging.getLogger(__name__)


def _build_html_email(new_jobs: list[JobListingEntry], category_name: str, category_url: str) -> str:
    """Build the HTML body for a batch of new job posts."""
    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

    rows = ""
    for i, job in enumerate(new_jobs, 1):
        title = html.escape(job.title)
        url = html.escape(job.link, quote=True)
        rows += f"""
            <tr style="border-bottom:1px solid #e5e7eb;">
                <td style="padding:10px 12px;color:#6b7280;">{i}</td>
                <td style="padding:10px 12px;"><a href="{url}" style="color:#2563eb;text-decoration:none;">{title}</a></td>
            </tr>"""

    label = html.escape(category_name or category_url)
    return f"""
    <html>
    <body style="font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background:#f9fafb;padding:20px;">
        <div style="max-width:700px;margin:0 auto;background:#fff;border-radius:10px;box-shadow:0 1px 3px rgba(0,0,0,0.1);overflow:hidden;">
            <div style="background:linear-gradient(135deg,#1e40af,#7c3aed);padding:24px 28px;">
                <h1 style="color:#fff;margin:0;font-size:22px;">New Govt Job Posts</h1>
                <p style="color:#c7d2fe;margin:6px 0 0;font-size:14px;">{len(new_jobs)} new post(s) in {label} • {now}</p>
            </div>
            <table style="width:100%;border-collapse:collapse;font-size:14px;">
                <tbody>
                    {rows}
                </tbody>
            </table>
            <div style="padding:16px 28px;background:#f9fafb;color:#9ca3af;font-size:12px;text-align:center;">
                Category: {html.escape(category_url)}
            </div>
        </div>
    </body>
    </html>
    """


def _build_plain_text(new_jobs: list[JobListingEntry], category_name: str, category_url: str) -> str:
    header = f"Category: {category_name} ({category_url})" if category_name else f"Category: {category_url}"
    body = "\n\n".join(f"{i}. {job.title}\n{job.link}" for i, job in enumerate(new_jobs, 1))
    return f"{header}\n\n{body}\n"


class Mailer:
    """
    Notification sink. Recipients are the active subscribers plus the static
    operator list, resolved at send time.
    """

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: str,
        smtp_password: str,
        sender: str = "",
        operator_emails: Optional[list[str]] = None,
        subscriber_source: Optional[Callable[[], list[str]]] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.sender = sender or smtp_user
        self.operator_emails = operator_emails or []
        self.subscriber_source = subscriber_source
        self.enabled = False

    def init(self) -> None:
        """Validate configuration once at process start."""
        self.enabled = bool(self.smtp_host and self.smtp_user and self.smtp_password)
        if self.enabled:
            logger.info(f"[Notifier] Mailer configured for {self.smtp_host}:{self.smtp_port}")
        else:
            logger.warning("[Notifier] SMTP_USER/SMTP_PASSWORD not set; email notifications disabled")

    def recipients(self) -> list[str]:
        """
        Active subscribers + operators, de-duplicated case-insensitively.

        Raises:
            NotificationError: if the subscriber lookup fails.
        """
        try:
            emails = list(self.subscriber_source() if self.subscriber_source else [])
        except SyncError as e:
            raise NotificationError(f"Subscriber lookup failed: {e}") from e
        emails += self.operator_emails

        seen, unique = set(), []
        for email in emails:
            key = (email or "").strip().lower()
            if key and key not in seen:
                seen.add(key)
                unique.append(email.strip())
        return unique

    def _connect(self) -> smtplib.SMTP:
        if self.smtp_port == 465:
            return smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, timeout=30)
        server = smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30)
        try:
            server.starttls()
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
        return server

    def send_new_posts_email(
        self,
        new_jobs: list[JobListingEntry],
        category_name: str,
        category_url: str,
    ) -> bool:
        """
        Send ONE email for the whole batch of new jobs.

        Returns:
            True if sent, False when there was nothing to send or no recipients.

        Raises:
            NotificationError: if the SMTP transaction fails.
        """
        if not new_jobs:
            return False
        if not self.enabled:
            logger.info(f"[Notifier] Mailer disabled; skipping email for {len(new_jobs)} new job(s)")
            return False

        recipients = self.recipients()
        if not recipients:
            logger.info("[Notifier] No recipients configured; skipping email")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = f"New Govt Job Posts ({len(new_jobs)})"
        msg["From"] = self.sender
        msg["To"] = self.sender
        msg.attach(MIMEText(_build_plain_text(new_jobs, category_name, category_url), "plain"))
        msg.attach(MIMEText(_build_html_email(new_jobs, category_name, category_url), "html"))

        try:
            server = self._connect()
            try:
                server.login(self.smtp_user, self.smtp_password)
                # Recipients go on the envelope only (BCC semantics)
                server.sendmail(self.sender, recipients, msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send email for {category_url}: {e}") from e

        logger.info(f"[Notifier] Email sent to {len(recipients)} recipient(s) ({len(new_jobs)} jobs)")
        return True
