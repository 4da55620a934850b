from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceFailure
from ..extensions import db
from ..models import Group, Membership, User
from ..security import decrypt_recipient, encrypt_recipient


@dataclass(frozen=True)
class GroupInfo:
    id: str
    name: str
    matched: bool
    moderator_id: str


@dataclass(frozen=True)
class Contact:
    id: str
    address: str
    display_name: str


class MembershipStore(Protocol):
    def get_group(self, group_id: str) -> GroupInfo | None: ...

    def list_member_ids(self, group_id: str) -> list[str]: ...

    def apply_assignments(self, group_id: str, assignments: Mapping[str, str]) -> bool: ...


class ContactDirectory(Protocol):
    def get_contacts(self, member_ids: Iterable[str]) -> list[Contact]: ...


class SqlMembershipStore:
    """Membership store backed by the Flask-SQLAlchemy session."""

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def get_group(self, group_id: str) -> GroupInfo | None:
        try:
            g = self.session.get(Group, group_id)
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not load the group.") from e
        if g is None:
            return None
        return GroupInfo(id=g.id, name=g.name, matched=g.is_matched, moderator_id=g.moderator_id)

    def list_member_ids(self, group_id: str) -> list[str]:
        try:
            rows = self.session.scalars(
                select(Membership.user_id)
                .where(Membership.group_id == group_id)
                .order_by(Membership.id)
            )
            return list(rows)
        except SQLAlchemyError as e:
            raise PersistenceFailure("Could not load the group members.") from e

    def apply_assignments(self, group_id: str, assignments: Mapping[str, str]) -> bool:
        """
        Writes every recipient and flips ``is_matched`` in one transaction.

        The flag is flipped with a conditional UPDATE first, so of two
        concurrent callers only one can see a row change; the other gets
        ``False`` and nothing is written.
        """
        try:
            result = self.session.execute(
                update(Group)
                .where(Group.id == group_id, Group.is_matched.is_(False))
                .values(is_matched=True, matched_at=datetime.utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.session.rollback()
                return False

            memberships = self.session.scalars(
                select(Membership).where(Membership.group_id == group_id)
            ).all()
            by_user = {m.user_id: m for m in memberships}
            if set(by_user) != set(assignments):
                # Someone joined or left after the member snapshot was taken.
                self.session.rollback()
                raise PersistenceFailure("Group membership changed while matching; nothing was saved.")

            for giver_id, recipient_id in assignments.items():
                by_user[giver_id].recipient_ciphertext = encrypt_recipient(recipient_id)

            self.session.commit()
            return True
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceFailure() from e

    def get_recipient(self, group_id: str, user_id: str) -> str | None:
        m = self.session.scalar(
            select(Membership).where(Membership.group_id == group_id, Membership.user_id == user_id)
        )
        if m is None or not m.recipient_ciphertext:
            return None
        return decrypt_recipient(m.recipient_ciphertext)


class SqlContactDirectory:
    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def get_contacts(self, member_ids: Iterable[str]) -> list[Contact]:
        ids = list(member_ids)
        if not ids:
            return []
        users = self.session.scalars(select(User).where(User.id.in_(ids))).all()
        # Members without an address cannot be notified.
        return [
            Contact(id=u.id, address=u.email, display_name=u.screen_name)
            for u in users
            if u.email
        ]
