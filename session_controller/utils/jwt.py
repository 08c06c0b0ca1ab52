"""JWT claim helpers.

Tokens are issued and verified by the identity backend. The controller only
reads claims it needs for bookkeeping (principal id, expiry) and never trusts
them for authorization.
"""
from typing import Any, Dict

import jwt


def read_claims(token: str) -> Dict[str, Any]:
    """Decode token claims without signature verification.

    Returns an empty dict for opaque (non-JWT) tokens.
    """
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.InvalidTokenError:
        return {}
