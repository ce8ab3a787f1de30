import html
import logging
import smtplib
from email.message import EmailMessage

from app.config import settings
from app.services.mailroom import WEEKDAYS

logger = logging.getLogger(__name__)


def format_time(value: str) -> str:
    """Render "HH:MM" (24h) as "H:MM AM/PM"."""
    if not value:
        return ""
    hours, minutes = value.split(":")[:2]
    hour = int(hours)
    suffix = "PM" if hour >= 12 else "AM"
    display = 12 if hour % 12 == 0 else hour % 12
    return f"{display}:{minutes} {suffix}"


def format_hours(hours: dict | None) -> str:
    if not hours or not isinstance(hours, dict):
        return ""
    lines = []
    for day in WEEKDAYS:
        periods = hours.get(day)
        if not periods or not isinstance(periods, list):
            lines.append(f"{day.capitalize()}: Closed")
            continue
        spans = ", ".join(
            f"{format_time(p.get('start', ''))} - {format_time(p.get('end', ''))}"
            for p in periods
        )
        lines.append(f"{day.capitalize()}: {spans}")
    return "\n".join(lines)


def format_email_body(
    first_name: str | None,
    package_number: int | str,
    provider: str,
    mailroom_hours: dict | None,
    additional_text: str | None,
) -> str:
    name = html.escape(first_name or "Resident")
    body = (
        f"Hello {name},\n\n"
        f"You have a new package (#{html.escape(str(package_number))}) waiting for "
        f"you from {html.escape(provider)}.\n"
    )
    formatted_hours = format_hours(mailroom_hours)
    if formatted_hours:
        body += f"\nMailroom Hours:\n{formatted_hours}\n"
    body += "\nPlease bring your ID to collect it from the mailroom.\n"
    if additional_text:
        body += f"\n{html.escape(additional_text)}\n"
    body += "\nThank you."
    return body


def package_email_subject(package_number: int | str) -> str:
    return f"New Package Notification (#{package_number})"


MISSING_NAME_SUBJECT = "Missing Student Name Report"


def format_missing_name_body(name: str, email: str) -> str:
    return (
        "A missing name has been reported:\n\n"
        f"Student Name: {html.escape(name)}\n"
        f"Student Email: {html.escape(email)}\n\n"
        "Please review and add this student to the system."
    )


def send_email(
    to_email: str,
    subject: str,
    body: str,
    reply_to: str | None,
    from_email: str,
    from_password: str | None,
) -> None:
    if not from_password:
        raise ValueError("pass not set")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = from_email
    msg["To"] = to_email
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.set_content(body)

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as smtp:
        if settings.smtp_use_tls:
            smtp.starttls()
        smtp.login(settings.smtp_username or from_email, from_password)
        refused = smtp.send_message(msg)
    if refused:
        raise RuntimeError(f"Recipients refused: {', '.join(refused)}")
    logger.info("Sent email %r to %s", subject, to_email)
