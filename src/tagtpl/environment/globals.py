"""Form token helpers behind the ``token`` directive.

``{token/}`` renders a hidden input carrying a fresh token and records the
token in the session. On submission the host calls
`Environment.check_token` (or `verify_token` directly) with the submitted
value; a successful check rotates the stored token so a form cannot be
submitted twice.

Usage:
    <form method="POST" action="/submit">
      {token/}
      <button type="submit">Submit</button>
    </form>

Framework Integration:
    env = Environment(request=RequestContext(session=session))
    ...
    if not env.check_token(request.form.get(TOKEN_NAME)):
        abort(400)
"""

from __future__ import annotations

import html
import secrets
from collections.abc import MutableMapping
from typing import Any

TOKEN_NAME = "TOKEN_NAME"


def issue_token(session: MutableMapping[str, Any] | None) -> str:
    """Store a new token in the session and return its hidden input.

    Returns an empty string when no session is active.
    """
    if session is None:
        return ""
    token = secrets.token_hex(16)
    session[TOKEN_NAME] = token
    return f'<input type="hidden" name="{TOKEN_NAME}" value="{html.escape(token)}"/>'


def verify_token(session: MutableMapping[str, Any] | None, submitted: str | None) -> bool:
    """Check a submitted token against the session and rotate it.

    Returns True when there is nothing to verify (no session, no stored
    token, or nothing submitted), mirroring a check that only rejects a
    mismatched resubmission.
    """
    if session is None or submitted is None or TOKEN_NAME not in session:
        return True
    if not secrets.compare_digest(str(session[TOKEN_NAME]), str(submitted)):
        return False
    session[TOKEN_NAME] = secrets.token_hex(16)
    return True
