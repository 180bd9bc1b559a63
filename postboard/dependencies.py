from fastapi import Header, HTTPException


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """
    Caller identity for write routes.

    Authentication happens upstream (gateway or auth service), which
    forwards the verified user id in ``X-User-Id``.  The id is trusted
    verbatim and handed to the service layer as an explicit argument.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()
