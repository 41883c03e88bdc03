"""Email notifications for interview scheduling.

Participants get an invitation carrying their private voting link and, once
the recruiter confirms a slot, a confirmation. Delivery is best-effort: every
send is retried a bounded number of times and its outcome recorded in
``notification_logs``; nothing here raises into the scheduling workflow.

The SMTP password may be stored encrypted using Fernet (AES-128-CBC) derived
from SECRET_KEY.
"""

import base64
import hashlib
import logging
import smtplib
import time
from collections.abc import Callable, Sequence
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, make_msgid
from html import escape
from typing import Protocol
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from cryptography.fernet import Fernet
from sqlalchemy.orm import Session

from ..config import settings
from .models import NotificationLog

logger = logging.getLogger(__name__)

_SENDER_NAME = "Interview Scheduling"

INVITATION = "interview_invitation"
CONFIRMATION = "interview_confirmation"


# ── Credential encryption ─────────────────────────────────────────────


def _derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key from the app SECRET_KEY using SHA-256."""
    digest = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)


def encrypt_value(plaintext: str) -> str:
    """Encrypt a string value using the app's SECRET_KEY."""
    f = Fernet(_derive_fernet_key(settings.secret_key))
    return f.encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str) -> str:
    """Decrypt a string value using the app's SECRET_KEY."""
    f = Fernet(_derive_fernet_key(settings.secret_key))
    return f.decrypt(ciphertext.encode()).decode()


# ── Email building ─────────────────────────────────────────────────────


def _zone(name: str | None) -> ZoneInfo:
    try:
        return ZoneInfo(name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")


def format_slot(start, end, tz_name: str | None = None) -> str:
    """Human-readable slot, e.g. ``Wed, Jan 01 09:00 - 09:30 (UTC)``."""
    tz = _zone(tz_name)
    # SQLite hands datetimes back naive; they are stored in UTC
    if start.tzinfo is None:
        start = start.replace(tzinfo=ZoneInfo("UTC"))
    if end.tzinfo is None:
        end = end.replace(tzinfo=ZoneInfo("UTC"))
    local_start = start.astimezone(tz)
    local_end = end.astimezone(tz)
    return f"{local_start:%a, %b %d %H:%M} - {local_end:%H:%M} ({tz.key})"


def invitation_subject(schedule) -> str:
    candidate = schedule.candidate_name or "Candidate"
    title = schedule.job_title or "Position"
    return f"Interview Availability Request: {candidate} - {title}"


def confirmation_subject(schedule) -> str:
    candidate = schedule.candidate_name or "Candidate"
    title = schedule.job_title or "Position"
    return f"Interview Confirmed: {candidate} - {title}"


def _new_message(subject: str, to: str, from_email: str, from_name: str) -> MIMEMultipart:
    """Multipart message with the headers spam filters expect."""
    msg = MIMEMultipart("alternative")
    msg["From"] = formataddr((from_name or _SENDER_NAME, from_email))
    msg["To"] = to
    msg["Reply-To"] = from_email
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid(domain=from_email.split("@")[-1] if "@" in from_email else "local")
    msg["X-Mailer"] = "InterviewScheduling/1.0"
    msg["Subject"] = subject
    return msg


def build_invitation_email(
    participant,
    schedule,
    voting_link: str,
    *,
    from_email: str,
    from_name: str = _SENDER_NAME,
) -> MIMEMultipart:
    """Availability request listing every proposed slot and the voting link."""
    msg = _new_message(invitation_subject(schedule), participant.email, from_email, from_name)

    duration = schedule.interview_duration_minutes
    recruiter = schedule.recruiter_name or "Recruiter"
    company = schedule.company_name or "Company"
    candidate = schedule.candidate_name or "Candidate"
    title = schedule.job_title or "Position"
    slot_lines = [format_slot(s.start_time, s.end_time, participant.timezone) for s in schedule.time_slots]

    text_body = (
        f"Interview Scheduling Request\n"
        f"{'=' * 28}\n\n"
        f"Hello {participant.name},\n\n"
        f"{recruiter} from {company} is scheduling an interview for:\n\n"
        f"  Candidate: {candidate}\n"
        f"  Position:  {title}\n"
        f"  Duration:  {duration} minutes\n\n"
        f"Please select all time slots when you are available:\n"
        + "".join(f"  - {line}\n" for line in slot_lines)
        + f"\nVote on your availability: {voting_link}\n\n"
        f"Once all participants have responded, the recruiter will confirm the final\n"
        f"interview time and notify everyone involved.\n"
    )

    slots_html = "".join(f'<li style="margin:8px 0;">{escape(line)}</li>' for line in slot_lines)
    html_body = f"""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Interview Scheduling Request</title>
</head>
<body style="margin:0; padding:0; background-color:#f4f4f5; font-family:Arial,Helvetica,sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color:#f4f4f5;">
    <tr><td align="center" style="padding:24px 16px;">
      <table role="presentation" width="600" cellpadding="0" cellspacing="0"
             style="background-color:#ffffff; border-radius:8px;">
        <tr><td style="background-color:#3b82f6; padding:20px 32px; border-radius:8px 8px 0 0;">
          <h1 style="margin:0; color:#ffffff; font-size:20px;">Interview Scheduling Request</h1>
        </td></tr>
        <tr><td style="padding:32px; color:#374151; font-size:15px; line-height:1.6;">
          <p>Hello {escape(participant.name)},</p>
          <p><strong>{escape(recruiter)}</strong> from <strong>{escape(company)}</strong>
             is scheduling an interview for:</p>
          <p style="border-left:4px solid #3b82f6; padding-left:12px;">
            Candidate: <strong>{escape(candidate)}</strong><br>
            Position: {escape(title)}<br>
            Duration: {duration} minutes
          </p>
          <p>Please select all time slots when you are available:</p>
          <ul style="list-style-type:none; padding:0;">{slots_html}</ul>
          <p style="text-align:center; margin:30px 0;">
            <a href="{escape(voting_link)}"
               style="background:#3b82f6; color:#ffffff; padding:14px 28px; text-decoration:none;
                      border-radius:6px; font-weight:bold;">Select Your Availability</a>
          </p>
          <p style="font-size:13px; color:#6b7280;">
            Once all participants have responded, the recruiter will confirm the final
            interview time and notify everyone involved.
          </p>
        </td></tr>
      </table>
    </td></tr>
  </table>
</body>
</html>"""

    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    return msg


def build_confirmation_email(
    participant,
    schedule,
    *,
    from_email: str,
    from_name: str = _SENDER_NAME,
) -> MIMEMultipart:
    msg = _new_message(confirmation_subject(schedule), participant.email, from_email, from_name)

    when = format_slot(schedule.scheduled_start_time, schedule.scheduled_end_time, participant.timezone)
    candidate = schedule.candidate_name or "Candidate"
    title = schedule.job_title or "Position"

    text_body = (
        f"Interview Confirmed\n"
        f"{'=' * 19}\n\n"
        f"Hello {participant.name},\n\n"
        f"The interview with {candidate} for {title} has been scheduled:\n\n"
        f"  {when}\n"
        f"  Duration: {schedule.interview_duration_minutes} minutes\n\n"
        f"Thank you for sharing your availability.\n"
    )
    html_body = f"""\
<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>Interview Confirmed</title></head>
<body style="font-family:Arial,Helvetica,sans-serif; color:#374151;">
  <h1 style="font-size:20px; color:#15803d;">Interview Confirmed</h1>
  <p>Hello {escape(participant.name)},</p>
  <p>The interview with <strong>{escape(candidate)}</strong> for {escape(title)} has been scheduled:</p>
  <p style="font-size:16px; font-weight:600;">{escape(when)}</p>
  <p>Duration: {schedule.interview_duration_minutes} minutes</p>
</body>
</html>"""

    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    return msg


# ── Notifiers ──────────────────────────────────────────────────────────


class Notifier(Protocol):
    """Delivery interface used by the scheduling workflow."""

    def notify_participant(self, participant, schedule, voting_link: str) -> bool: ...
    def notify_confirmation(self, schedule, participants: Sequence) -> int: ...


class SmtpNotifier:
    """Sends mail through an SMTP server (implicit TLS on 465, STARTTLS otherwise)."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        from_email: str,
        from_name: str = _SENDER_NAME,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_email = from_email
        self.from_name = from_name

    @classmethod
    def from_settings(cls) -> "SmtpNotifier":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            from_email=settings.smtp_from_email,
            from_name=settings.smtp_from_name,
        )

    def _password(self) -> str:
        # Fernet tokens start with 'gAAAAA'
        if self.password.startswith("gAAAAA"):
            return decrypt_value(self.password)
        return self.password

    def _send(self, msg: MIMEMultipart) -> bool:
        """Send one message. Returns True on success."""
        try:
            if self.port == 465:
                server = smtplib.SMTP_SSL(self.host, self.port, timeout=15)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=15)
            with server:
                server.ehlo()
                if self.port != 465:
                    server.starttls()
                    server.ehlo()
                server.login(self.user, self._password())
                server.send_message(msg)
            return True
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s", msg["To"])
            return False

    def notify_participant(self, participant, schedule, voting_link: str) -> bool:
        msg = build_invitation_email(
            participant, schedule, voting_link, from_email=self.from_email, from_name=self.from_name
        )
        return self._send(msg)

    def notify_confirmation(self, schedule, participants: Sequence) -> int:
        sent = 0
        for participant in participants:
            msg = build_confirmation_email(participant, schedule, from_email=self.from_email, from_name=self.from_name)
            if self._send(msg):
                sent += 1
        return sent


class NullNotifier:
    """Used when SMTP is not configured: nothing is sent, every delivery reports failure."""

    def notify_participant(self, participant, schedule, voting_link: str) -> bool:
        logger.debug("SMTP not configured, skipping invitation to %s", participant.email)
        return False

    def notify_confirmation(self, schedule, participants: Sequence) -> int:
        logger.debug("SMTP not configured, skipping %d confirmation emails", len(participants))
        return 0


def create_notifier() -> Notifier:
    """Factory: SMTP when fully configured, otherwise the no-op notifier."""
    if not settings.smtp_configured:
        logger.warning("SMTP not configured: participant emails will not be sent")
        return NullNotifier()
    return SmtpNotifier.from_settings()


# ── Delivery bookkeeping ───────────────────────────────────────────────


def deliver_with_retry(
    send: Callable[[], bool],
    *,
    max_attempts: int = 2,
    delay_seconds: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "",
) -> tuple[bool, int]:
    """Call ``send`` until it succeeds or ``max_attempts`` is reached.

    Returns ``(delivered, attempts_made)``. An exception from ``send`` counts
    as a failed attempt.
    """
    attempts = 0
    for attempt in range(1, max(max_attempts, 1) + 1):
        attempts = attempt
        try:
            if send():
                return True, attempts
            logger.warning("Delivery to %s failed (attempt %d/%d)", label, attempt, max_attempts)
        except Exception:
            logger.exception("Delivery to %s raised (attempt %d/%d)", label, attempt, max_attempts)
        if attempt < max_attempts:
            sleep(delay_seconds)
    return False, attempts


def record_notification(
    db: Session,
    *,
    schedule_id: UUID,
    participant_id: UUID | None,
    notification_type: str,
    recipient: str,
    subject: str,
    delivered: bool,
    attempts: int,
    detail: str = "",
) -> NotificationLog:
    log = NotificationLog(
        schedule_id=schedule_id,
        participant_id=participant_id,
        notification_type=notification_type,
        recipient=recipient,
        subject=subject,
        status="sent" if delivered else "failed",
        attempts=attempts,
        detail=detail,
    )
    db.add(log)
    return log


def get_notification_logs(db: Session, schedule_id: UUID) -> list[NotificationLog]:
    return (
        db.query(NotificationLog)
        .filter(NotificationLog.schedule_id == schedule_id)
        .order_by(NotificationLog.sent_at.asc())
        .all()
    )
