import uuid
from datetime import datetime

from flask_login import UserMixin
from .extensions import db, login_manager


def _new_id() -> str:
    return str(uuid.uuid4())


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    screen_name = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=True)

    # salted Passlib hash of SHA-256(passphrase) from the browser
    passkey_hash = db.Column(db.String(255), nullable=False)

    registered_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    memberships = db.relationship("Membership", back_populates="user", cascade="all, delete-orphan")


class Group(db.Model):
    __tablename__ = "groups"

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    name = db.Column(db.String(128), nullable=False)
    moderator_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)

    # Flipped exactly once, in the same transaction that writes the recipients.
    is_matched = db.Column(db.Boolean, default=False, nullable=False)
    matched_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    moderator = db.relationship("User", foreign_keys=[moderator_id])
    memberships = db.relationship(
        "Membership",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Membership.id",
    )


class Membership(db.Model):
    __tablename__ = "memberships"

    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.String(36), db.ForeignKey("groups.id", ondelete="CASCADE"), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # Encrypted recipient user id (Fernet token string), set when the group is matched.
    recipient_ciphertext = db.Column(db.Text, nullable=True)

    group = db.relationship("Group", back_populates="memberships")
    user = db.relationship("User", back_populates="memberships")

    __table_args__ = (
        db.UniqueConstraint("group_id", "user_id", name="uq_membership_group_user"),
    )


@login_manager.user_loader
def load_user(user_id: str):
    return db.session.get(User, user_id)
