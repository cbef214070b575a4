"""FastAPI dependencies for authentication and service access.

The JWTAuthMiddleware (registered in main.py) verifies the access token and
stores a normalised user dict in `request.state.user`:
    {
        "user_id":   str,   # token "sub"
        "email":     str,
        "full_name": str,   # from user_metadata, may be empty
        "role":      str,
    }
"""

from typing import Any, Dict

from fastapi import HTTPException, Request, status
import logging

logger = logging.getLogger(__name__)


async def get_current_user(request: Request) -> Dict[str, Any]:
    """Return the authenticated user attached by JWTAuthMiddleware.

    Raises:
        HTTP 401 if the middleware did not populate request.state.user
    """
    user = getattr(request.state, "user", None)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.get("user_id"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User identity missing from token.",
        )

    logger.debug("Authenticated user: %s", user.get("user_id"))
    return user
