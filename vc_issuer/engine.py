# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Wires the status list components around one configuration, database and signing key.
"""

from functools import cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

import vc_common.config as common_conf
import vc_common.db.database as db
import vc_common.key_configuration as key

import vc_issuer.config as conf
from vc_issuer.issuance import CredentialIssuer
from vc_issuer.publisher import StatusPublisher
from vc_issuer.registry import StatusListRegistry
from vc_issuer.revocation import RevocationProcessor


class StatusListEngine:
    def __init__(self, config: conf.IssuerConfig, session_factory: sessionmaker, key_conf: key.KeyConfiguration):
        self.config = config
        self.key_conf = key_conf
        self.registry = StatusListRegistry(config, session_factory)
        self.issuer = CredentialIssuer(config, session_factory, self.registry, key_conf)
        self.revocation = RevocationProcessor(config, session_factory, self.registry)
        self.publisher = StatusPublisher(config, self.registry)

    def issue(self, payload, credential_id: str = None):
        return self.issuer.issue(payload, credential_id)

    def revoke(self, credential_id: str, reason: str = None):
        return self.revocation.revoke(credential_id, reason)

    def publish(self, list_id: str, signed: bool = True):
        credential = self.publisher.publish(list_id)
        if signed:
            credential = self.publisher.sign(credential, self.key_conf)
        return credential


@cache
def get_engine() -> StatusListEngine:
    db_config = common_conf.DBConfig()
    db.create_schema(db_config.SQLALCHEMY_DATABASE_URL, db_config.SQLALCHEMY_DATABASE_SCHEMA)
    return StatusListEngine(
        conf.IssuerConfig(),
        db.session_factory(db_config.SQLALCHEMY_DATABASE_URL, db_config.SQLALCHEMY_DATABASE_SCHEMA),
        key.get_key_configuration(),
    )


inject = Annotated[StatusListEngine, Depends(get_engine)]
