from __future__ import annotations

from flask.views import MethodView
from flask_login import current_user

from .extensions import login_manager


def current_user_id() -> str | None:
    if not current_user.is_authenticated:
        return None
    return current_user.get_id()


class LoginRequiredMixin(MethodView):
    """Answers 401 JSON for anonymous callers before any handler runs."""

    def dispatch_request(self, *args, **kwargs):
        if not current_user.is_authenticated:
            return login_manager.unauthorized()
        return super().dispatch_request(*args, **kwargs)
