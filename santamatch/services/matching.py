from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from flask import current_app

from ..errors import (
    AlreadyMatched,
    Forbidden,
    GroupNotFound,
    InsufficientMembers,
    PersistenceConflict,
    Unauthenticated,
)
from .derangement import derange
from .notifications import Transport, build_transport, notify_members
from .stores import ContactDirectory, MembershipStore, SqlContactDirectory, SqlMembershipStore

logger = logging.getLogger(__name__)

MIN_MEMBERS = 3


@dataclass
class MatchingResult:
    assignments: dict[str, str]
    notified: int = 0
    failed: list[str] = field(default_factory=list)


def pair_assignments(member_ids: list[str]) -> dict[str, str]:
    receivers = derange(member_ids)
    return {giver: receivers[i] for i, giver in enumerate(member_ids)}


def execute_matching(
    group_id: str,
    caller_id: str | None,
    *,
    store: MembershipStore,
    contacts: ContactDirectory,
    transport: Transport,
    group_url: Callable[[str], str],
    max_workers: int = 8,
) -> MatchingResult:
    """
    Matches a group once: validate, pair, commit, then notify.

    Everything up to and including the commit either succeeds or raises a
    MatchingError with nothing written. Notifications happen after the commit
    and their failures are only logged.
    """
    if not caller_id:
        raise Unauthenticated()

    group = store.get_group(group_id)
    if group is None:
        raise GroupNotFound()
    if group.matched:
        raise AlreadyMatched()
    if group.moderator_id != caller_id:
        raise Forbidden()

    member_ids = store.list_member_ids(group_id)
    if len(member_ids) < MIN_MEMBERS:
        raise InsufficientMembers()

    assignments = pair_assignments(member_ids)

    if not store.apply_assignments(group_id, assignments):
        logger.info("Group %s was matched by a concurrent request", group_id)
        raise PersistenceConflict()

    logger.info("Matched group %s (%d members)", group_id, len(member_ids))
    result = MatchingResult(assignments=assignments)

    try:
        people = contacts.get_contacts(member_ids)
    except Exception:
        logger.exception("Could not load contacts for group %s; skipping notifications", group_id)
        result.failed = list(member_ids)
        return result

    result.notified, result.failed = notify_members(
        transport,
        people,
        group.name,
        group_url(group_id),
        max_workers=max_workers,
    )
    if result.failed:
        logger.warning("Group %s: %d notification(s) failed", group_id, len(result.failed))
    return result


class MatchingService:
    """Binds execute_matching to the app's store, directory and mail transport."""

    def __init__(
        self,
        store: MembershipStore,
        contacts: ContactDirectory,
        transport: Transport,
        base_url: str,
        max_workers: int = 8,
    ):
        self.store = store
        self.contacts = contacts
        self.transport = transport
        self.base_url = base_url.rstrip("/")
        self.max_workers = max_workers

    @classmethod
    def from_app(cls, app=None) -> "MatchingService":
        app = app or current_app
        transport = app.extensions.get("santamatch.transport")
        if transport is None:
            transport = build_transport(app.config)
            app.extensions["santamatch.transport"] = transport
        return cls(
            store=SqlMembershipStore(),
            contacts=SqlContactDirectory(),
            transport=transport,
            base_url=app.config["APP_BASE_URL"],
            max_workers=app.config["NOTIFY_MAX_WORKERS"],
        )

    def group_url(self, group_id: str) -> str:
        return f"{self.base_url}/groups/{group_id}"

    def execute(self, group_id: str, caller_id: str | None) -> MatchingResult:
        return execute_matching(
            group_id,
            caller_id,
            store=self.store,
            contacts=self.contacts,
            transport=self.transport,
            group_url=self.group_url,
            max_workers=self.max_workers,
        )
