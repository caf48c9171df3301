"""CSRF token issuance endpoint."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter

from tasks_api.api.v1.dependencies import ClientAddressDep, TokenIssuerDep
from tasks_api.core.logging import token_fingerprint
from tasks_api.schemas.csrf import CsrfTokenResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/csrf", tags=["csrf"], include_in_schema=False)


@router.get("", response_model=CsrfTokenResponse)
async def get_csrf_token(issuer: TokenIssuerDep, address: ClientAddressDep) -> CsrfTokenResponse:
    """Issue a single-use token for the calling address.

    Raises:
        QuotaExceededError: The address already holds the maximum number of live tokens (429).
        TokenStorageError: The token could not be persisted (500).
    """
    token = await asyncio.to_thread(issuer.issue, address)
    logger.debug("Generated CSRF token %s for %s", token_fingerprint(token), address)
    return CsrfTokenResponse(token=token)
