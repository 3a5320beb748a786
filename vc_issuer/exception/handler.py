# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import logging

from fastapi import Request, FastAPI, status
from fastapi.responses import JSONResponse

from vc_common import exception as ex

_logger = logging.getLogger(__name__)

_STATUS_CODES: list[tuple[type[ex.StatusEngineError], int]] = [
    (ex.NotFound, status.HTTP_404_NOT_FOUND),
    (ex.AlreadyExists, status.HTTP_409_CONFLICT),
    (ex.Conflict, status.HTTP_409_CONFLICT),
    (ex.ConcurrencyExhausted, status.HTTP_409_CONFLICT),
    (ex.SigningUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ex.CapacityMismatch, status.HTTP_500_INTERNAL_SERVER_ERROR),
    (ex.StorageError, status.HTTP_503_SERVICE_UNAVAILABLE),
]


def status_code_for(exc: ex.StatusEngineError) -> int:
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def configure_exception_handlers(app: FastAPI) -> None:
    """
    Translates the status list engine errors into HTTP responses.

    Args:
        app (FastAPI): the instance to configure the handlers for.
    """

    @app.exception_handler(ex.StatusEngineError)
    async def status_engine_exception_handler(request: Request, exc: ex.StatusEngineError):
        status_code = status_code_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            _logger.error(f"{type(exc).__name__}: {exc.detail}")
        headers = {"Cache-Control": "no-store"}
        if status_code == status.HTTP_503_SERVICE_UNAVAILABLE:
            headers["Retry-After"] = "1"
        return JSONResponse(
            status_code=status_code,
            headers=headers,
            content=ex.HTTPError(detail=exc.detail).model_dump(),
        )
