# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Read path of the status lists: wraps the committed encoding into a
Bitstring Status List Credential for verifiers.
"""

import datetime
import logging

import vc_common.status_list as sl
from vc_common.exception import CapacityMismatch
from vc_common.key_configuration import KeyConfiguration
from vc_common.parsing import canonicalize

import vc_issuer.config as conf
from vc_issuer import models
from vc_issuer.logging import IssuerOperationsLogEntry
from vc_issuer.registry import StatusListRegistry

_logger = logging.getLogger(__name__)


class StatusPublisher:
    def __init__(self, config: conf.IssuerConfig, registry: StatusListRegistry):
        self._config = config
        self._registry = registry

    def publish(self, list_id: str) -> models.PublishedStatusListCredential:
        """
        Always reads the committed row, nothing is cached here.
        validUntil tells verifiers how long they may keep the document.
        """
        status_list = self._registry.get_list(list_id)
        try:
            sl.decode(status_list.encoded_list, status_list.total_entries)
        except CapacityMismatch:
            _logger.error(
                IssuerOperationsLogEntry(
                    message="Stored encoding does not match the status list capacity.",
                    status=IssuerOperationsLogEntry.Status.error,
                    operation=IssuerOperationsLogEntry.Operation.publication,
                    step=IssuerOperationsLogEntry.Step.publication_decoding,
                    status_list_id=list_id,
                )
            )
            raise
        now = datetime.datetime.now(datetime.timezone.utc)
        status_list_uri = self._config.get_status_list_uri(list_id)
        return models.PublishedStatusListCredential(
            id=status_list_uri,
            issuer=status_list.issuer_did,
            validFrom=now.isoformat(),
            validUntil=(now + datetime.timedelta(seconds=self._config.status_list_ttl_seconds)).isoformat(),
            credentialSubject=sl.BitstringStatusListSubject(
                id=f"{status_list_uri}#list",
                statusPurpose=status_list.purpose,
                encodedList=status_list.encoded_list,
            ),
        )

    def sign(self, credential: models.PublishedStatusListCredential, key_conf: KeyConfiguration) -> models.PublishedStatusListCredential:
        """Returns a copy of the credential with a proof over its unsigned document"""
        proof = key_conf.sign(canonicalize(credential.unsigned_document()), self._config.signing_key_ref)
        return credential.model_copy(update={"proof": proof})
