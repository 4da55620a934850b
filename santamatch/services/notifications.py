from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Mapping, Protocol, Sequence

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from ..errors import NotificationError
from .stores import Contact

logger = logging.getLogger(__name__)

MATCHED_SUBJECT = "Your group is matched!"


class Transport(Protocol):
    def send(self, address: str, subject: str, body: str) -> None: ...


class SendGridTransport:
    def __init__(self, api_key: str, from_address: str):
        self.client = SendGridAPIClient(api_key)
        self.from_address = from_address

    def send(self, address: str, subject: str, body: str) -> None:
        message = Mail(
            from_email=self.from_address,
            to_emails=address,
            subject=subject,
            plain_text_content=body,
        )
        response = self.client.send(message)
        if response.status_code >= 400:
            raise NotificationError(f"SendGrid answered {response.status_code} for {address}")


class LogTransport:
    """Development transport: writes the message to the log instead of sending it."""

    def send(self, address: str, subject: str, body: str) -> None:
        logger.info("Mail to %s: %s | %s", address, subject, body)


def build_transport(config: Mapping) -> Transport:
    transport = config.get("NOTIFICATION_TRANSPORT")
    if transport is not None:
        return transport

    api_key = (config.get("SENDGRID_API_KEY") or "").strip()
    if api_key:
        return SendGridTransport(api_key, config.get("MAIL_FROM_ADDRESS") or "")

    logger.warning("SENDGRID_API_KEY is not set; notifications will only be logged.")
    return LogTransport()


def matched_message(display_name: str, group_name: str, link: str) -> str:
    return f"Hi {display_name}, your group {group_name} is matched! Visit {link}"


def notify_members(
    transport: Transport,
    contacts: Sequence[Contact],
    group_name: str,
    link: str,
    max_workers: int = 8,
) -> tuple[int, list[str]]:
    """
    Sends one "group matched" mail per contact, concurrently.

    A failed send is logged and reported in the returned list of member ids;
    it never stops the other sends and never raises.
    """
    if not contacts:
        return 0, []

    def _send(contact: Contact) -> bool:
        try:
            transport.send(
                contact.address,
                MATCHED_SUBJECT,
                matched_message(contact.display_name, group_name, link),
            )
            return True
        except Exception:
            logger.exception("Could not notify member %s", contact.id)
            return False

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(contacts)))) as pool:
        outcomes = list(pool.map(_send, contacts))

    failed = [c.id for c, ok in zip(contacts, outcomes) if not ok]
    return len(contacts) - len(failed), failed
