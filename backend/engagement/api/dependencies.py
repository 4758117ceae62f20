"""
FastAPI Dependencies

Provides dependency injection for the shared stream hub and caller identity.
"""

from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException, Request, status

from engagement.notifications.stream_hub import StreamHub


def get_stream_hub(request: Request) -> StreamHub:
    """Return the process-wide StreamHub created in the app lifespan."""
    return request.app.state.stream_hub


async def get_current_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> UUID:
    """
    FastAPI dependency returning the caller's user ID.

    Authentication happens upstream; the gateway forwards the authenticated
    user in the ``X-User-Id`` header. Raises 401 if it is missing or malformed.

    Example:
        ```python
        @router.get("/stream")
        async def stream(user_id: UUID = Depends(get_current_user_id)):
            ...
        ```
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user identity",
        )

    try:
        return UUID(x_user_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity",
        ) from e
