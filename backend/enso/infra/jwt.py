"""Access-token verification.

Tokens are minted by the identity service; this backend only verifies them.
"""

from __future__ import annotations

import jwt

from enso.settings import settings

ISSUER = "enso-api"
AUDIENCE = "enso-app"
ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


def decode_access(token: str) -> dict[str, object]:
	"""Return the verified claims; raises ``jwt.InvalidTokenError`` otherwise."""
	return jwt.decode(
		token,
		settings.secret_key,
		algorithms=[ALGORITHM],
		audience=AUDIENCE,
		issuer=ISSUER,
		leeway=5,
		options={"require": _REQUIRED_CLAIMS},
	)
