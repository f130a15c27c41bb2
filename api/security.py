# api/security.py
from typing import Optional
from fastapi import Header, HTTPException, Request


def check_key(request: Request, x_api_key: Optional[str] = Header(None)) -> None:
    """Raise 401 if a shared key is configured and the header doesn't match."""
    expected = request.app.state.settings.api_key
    if expected and x_api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")
