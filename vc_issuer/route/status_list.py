# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Publication of the status lists to verifiers. Read only and public.
"""

from fastapi import APIRouter, Response, status

from vc_common.exception import HTTPError

import vc_issuer.engine as engine

TAG = "Status List"

router = APIRouter(prefix="/.well-known", tags=[TAG], responses={status.HTTP_404_NOT_FOUND: {"model": HTTPError}})


@router.get("/status-list")
def list_status_lists(status_list_engine: engine.inject) -> list[str]:
    """Ids of all status lists of this issuer"""
    return [status_list.list_id for status_list in status_list_engine.registry.list_lists()]


@router.get("/status-list/{list_id}")
def get_status_list(list_id: str, response: Response, status_list_engine: engine.inject) -> dict:
    """
    Returns the signed Bitstring Status List Credential.
    Verifiers may cache it for the configured ttl, revocations become visible after that at the latest.
    """
    published = status_list_engine.publish(list_id)
    response.headers["Cache-Control"] = f"public, max-age={status_list_engine.config.status_list_ttl_seconds}"
    return published.model_dump(mode="json", by_alias=True, exclude_none=True)
