#!/usr/bin/env python3

import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .env_utils import getenv_clean

logger = logging.getLogger(__name__)
security = HTTPBearer()

# Development token; set DEV_TOKEN in any shared deployment
DEFAULT_DEV_TOKEN = "devtoken"

_default_token_warned = False


def expected_token() -> str:
    """Current API token; read per request so DEV_TOKEN changes apply without restart."""
    global _default_token_warned

    token = getenv_clean("DEV_TOKEN") or DEFAULT_DEV_TOKEN
    if token == DEFAULT_DEV_TOKEN and not _default_token_warned:
        logger.warning("Conversion endpoints accept the default DEV_TOKEN. Set DEV_TOKEN for any shared deployment.")
        _default_token_warned = True
    return token


def verify_token(credentials: HTTPAuthorizationCredentials = Depends(security)) -> str:
    """Reject conversion requests whose bearer token does not match DEV_TOKEN."""
    if credentials.credentials != expected_token():
        raise HTTPException(
            status_code=401,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return credentials.credentials
