from __future__ import annotations

from flask import Blueprint, jsonify
from flask.views import MethodView
from sqlalchemy import func, select

from ..errors import MatchingError
from ..extensions import db
from ..models import Group, Membership, User
from ..policies import LoginRequiredMixin, current_user_id
from ..services.matching import MatchingService
from ..services.stores import SqlMembershipStore


groups_bp = Blueprint("groups", __name__, url_prefix="/api/groups")


def _error(e: MatchingError):
    return jsonify(e.to_dict()), e.status


class ExecuteMatchingView(LoginRequiredMixin):
    def post(self, group_id: str):
        try:
            result = MatchingService.from_app().execute(group_id, current_user_id())
        except MatchingError as e:
            return _error(e)
        return jsonify(
            ok=True,
            assignments=result.assignments,
            notifications={"sent": result.notified, "failed": len(result.failed)},
        )


class GroupPublicView(MethodView):
    def get(self, group_id: str):
        group = db.session.get(Group, group_id)
        if group is None:
            return jsonify(error="group_not_found", message="Group not found."), 404
        member_count = db.session.scalar(
            select(func.count(Membership.id)).where(Membership.group_id == group_id)
        )
        return jsonify(
            id=group.id,
            name=group.name,
            matched=group.is_matched,
            matched_at=group.matched_at.isoformat() if group.matched_at else None,
            member_count=member_count,
        )


class MyAssignmentView(LoginRequiredMixin):
    def get(self, group_id: str):
        recipient_id = SqlMembershipStore().get_recipient(group_id, current_user_id())
        if recipient_id is None:
            return jsonify(
                error="no_assignment",
                message="This group has not been matched yet (or you are not a member).",
            ), 404

        recipient = db.session.get(User, recipient_id)
        return jsonify(
            recipient={
                "id": recipient_id,
                "screen_name": recipient.screen_name if recipient else None,
            }
        )


groups_bp.add_url_rule(
    "/<group_id>/execute-matching",
    view_func=ExecuteMatchingView.as_view("execute_matching"),
    methods=["POST"],
)
groups_bp.add_url_rule("/<group_id>/public", view_func=GroupPublicView.as_view("public"))
groups_bp.add_url_rule("/<group_id>/my-assignment", view_func=MyAssignmentView.as_view("my_assignment"))
