"""Resolve request credentials from the session collaborator's cookie.

The OAuth flow that issues the `github_user` cookie lives elsewhere; this
module only reads `login` and `access_token` out of it.
"""

import json
import logging

from errors import MissingToken
from models import Credentials

logger = logging.getLogger("devcard")

SESSION_COOKIE = "github_user"


def resolve_credentials(cookie_value: str | None, username: str, default_token: str) -> Credentials:
    """Use the visitor's own token only when they are looking at their own profile."""
    session = None
    if cookie_value:
        try:
            session = json.loads(cookie_value)
        except ValueError as exc:
            logger.warning("Failed to parse user cookie: %s", exc)

    if isinstance(session, dict) and session.get("login") == username and session.get("access_token"):
        return Credentials(token=session["access_token"], is_authenticated=True)

    if not default_token:
        raise MissingToken()
    return Credentials(token=default_token, is_authenticated=False)
