"""Signed cookies keyed by ``cookie.secret``.

The application publishes one :class:`CookieSigner` at ``cookie`` in the
namespace. Plugins use it to set cookies the client cannot forge and to
read them back::

    cookies = ns("cookie")
    cookies.set_cookie(response, "theme", "dark")
    cookies.get_cookie(request, "theme")   # "dark", or None if tampered
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from itsdangerous import BadSignature, Signer
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


class CookieSigner:
    """Sign and verify cookie values with :class:`itsdangerous.Signer`.

    Args:
        secret: The signing key; changing it invalidates every signed cookie.
        salt: Namespaces the signatures so they are not interchangeable with
            other signers built on the same secret (e.g. the session).
    """

    def __init__(self, secret: str, salt: str = "peento.cookie") -> None:
        self._signer = Signer(secret, salt=salt)

    def sign(self, value: str) -> str:
        return self._signer.sign(value).decode("utf-8")

    def unsign(self, value: str) -> Optional[str]:
        """Return the original value, or ``None`` if the signature is bad."""
        try:
            return self._signer.unsign(value).decode("utf-8")
        except BadSignature:
            logger.debug("rejected cookie with bad signature")
            return None

    def set_cookie(self, response: Response, name: str, value: str, **kwargs: Any) -> None:
        """Set a signed cookie; *kwargs* go to ``Response.set_cookie``."""
        response.set_cookie(name, self.sign(value), **kwargs)

    def get_cookie(self, request: Request, name: str) -> Optional[str]:
        """Read a signed cookie; ``None`` when missing or tampered with."""
        raw = request.cookies.get(name)
        if raw is None:
            return None
        return self.unsign(raw)

    def signed_cookies(self, request: Request) -> dict[str, str]:
        """Every cookie on *request* whose signature verifies, unsigned."""
        cookies = {}
        for name, raw in request.cookies.items():
            value = self.unsign(raw)
            if value is not None:
                cookies[name] = value
        return cookies
