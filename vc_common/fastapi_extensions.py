# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import os
import logging
import contextlib
from typing import Callable

from fastapi import FastAPI, Request, HTTPException
from fastapi.exception_handlers import http_exception_handler

from vc_common.logging.setup import configure_logging, get_log_id
from vc_common import config as conf

_logger = logging.getLogger(__name__)

LifespanFunction = Callable[["ExtendedFastAPI"], contextlib.AbstractContextManager]
"""Called with the app on startup, the returned context is closed on shutdown"""


def get_version() -> str:
    commit_hash = os.getenv("COMMIT_HASH", "no hash")
    version = os.getenv("VERSION", "no version")
    return f"{version} ({commit_hash})"


@contextlib.contextmanager
def logging_lifespan(app: "ExtendedFastAPI"):
    configure_logging(app.config_instance)
    yield


class ExtendedFastAPI(FastAPI):
    """
    FastAPI app configured from a Config: title, version, documentation endpoints,
    log output and a catch-all error response carrying the request id.
    """

    @staticmethod
    @contextlib.asynccontextmanager
    async def lifespan(app: "ExtendedFastAPI"):
        with contextlib.ExitStack() as stack:
            for lifespan_function in app.lifespan_functions:
                stack.enter_context(lifespan_function(app))
            yield

    def __init__(
        self,
        config: Callable[[], conf.Config],
        lifespan_functions: list[LifespanFunction] = None,
        *args,
        **kwargs,
    ) -> None:
        """
        config: factory of the app configuration, called once at construction.

        lifespan_functions: run in order on startup after logging is configured,
        closed in reverse order on shutdown.

        Documentation endpoints are only served if enabled in the config.
        Remaining arguments are passed on to `FastAPI`
        https://fastapi.tiangolo.com/reference/fastapi/
        """
        self.config_instance = config()

        if not self.config_instance.enable_documentation_endpoints:
            _logger.info("Deactivate documentation endpoints.")
            kwargs["docs_url"] = None
            kwargs["redoc_url"] = None
            kwargs["openapi_url"] = None

        kwargs.setdefault("title", self.config_instance.app_name)
        kwargs.setdefault("version", get_version())
        kwargs.setdefault("lifespan", ExtendedFastAPI.lifespan)

        self.lifespan_functions: list[LifespanFunction] = [logging_lifespan, *(lifespan_functions or [])]

        super().__init__(*args, **kwargs)
        self.add_exception_handler(Exception, self.unhandled_exception_handler)

    async def unhandled_exception_handler(self, request: Request, exc: Exception):
        if not isinstance(exc, HTTPException):
            _logger.error("Unhandled exception detected.")
            # The traceback itself is logged by starlette
            exc = HTTPException(
                500,
                f'Could not process the request. Please contact support with request id {get_log_id()}',
                headers={"Cache-Control": "no-store"},
            )

        return await http_exception_handler(request, exc)
