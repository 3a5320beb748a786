# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Status list publication service

Bitstring Status List
https://www.w3.org/TR/vc-bitstring-status-list/

W3C Verifiable Credential
https://www.w3.org/TR/vc-data-model-2.0/
"""

import contextlib
import logging

# FastAPI
from asgi_correlation_id import CorrelationIdMiddleware

from vc_common.fastapi_extensions import ExtendedFastAPI

from vc_issuer.exception.handler import configure_exception_handlers
import vc_issuer.route.status_list as status_list
import vc_issuer.config as conf
import vc_issuer.engine as engine

_logger = logging.getLogger(__name__)


@contextlib.contextmanager
def engine_lifespan(app: ExtendedFastAPI):
    """Connects to the database and creates missing tables before the first request"""
    status_list_engine = app.dependency_overrides.get(engine.get_engine, engine.get_engine)()
    _logger.info(f"Serving status lists of {status_list_engine.config.issuer_did}")
    yield


app = ExtendedFastAPI(conf.IssuerConfig, lifespan_functions=[engine_lifespan])

app.include_router(status_list.router)

app.add_middleware(
    CorrelationIdMiddleware,
)

configure_exception_handlers(app)
