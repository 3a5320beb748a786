# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import logging
import sys

from asgi_correlation_id import CorrelationIdFilter, correlation_id

from vc_common.config import Config
from vc_common.logging import splunk

_correlation_id_length = 16


def get_log_id() -> str:
    """Short correlation id of the current request, '-' outside of requests"""
    cid = correlation_id.get()
    return cid[:_correlation_id_length] if cid else "-"


def _build_handler(config: Config) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.addFilter(CorrelationIdFilter(uuid_length=_correlation_id_length))
    if config.enable_splunk_log:
        handler.setFormatter(splunk.SplunkFormatter(defaults={"app_name": config.app_name}))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"))
    return handler


def configure_logging(config: Config) -> None:
    """
    Routes all loggers to one stdout handler.
    SQL statements are only logged in debug mode.
    """
    console_handler = _build_handler(config)
    logging.basicConfig(handlers=[console_handler], level=config.log_level, force=True)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if config.enable_debug_mode else logging.WARNING)

    for logger in logging.root.manager.loggerDict.values():
        if isinstance(logger, logging.Logger) and console_handler not in logger.handlers:
            logger.handlers = [console_handler]
            logger.propagate = False
