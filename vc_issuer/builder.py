# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import datetime

from vc_common.key_configuration import KeyConfiguration
from vc_common.parsing import canonicalize
from vc_common import status_list as sl

import vc_issuer.config as conf
from vc_issuer import models


class VerifiableCredentialBuilder:
    def __init__(
        self,
        payload: models.CourseCreditCredential | models.CreditTransferCredential | models.DegreeCredential | models.AchievementCredential,
        config: conf.IssuerConfig,
        credential_id: str,
        allocation: models.StatusAllocation,
        issued_at: datetime.datetime,
    ):
        """
        payload: the credential type specific claims, see vc_issuer.models.CredentialPayload

        allocation: the reserved status list position, embedded as credentialStatus
        https://www.w3.org/TR/vc-bitstring-status-list/#bitstringstatuslistentry

        issued_at: becomes validFrom https://www.w3.org/TR/vc-data-model-2.0/#validity-period
        """
        self.payload = payload
        self.issuer_config = config
        self.credential_id = credential_id
        self.allocation = allocation
        self.issued_at = issued_at

    def _subject_id(self) -> str:
        if self.payload.subject_did:
            return self.payload.subject_did
        return f'{self.issuer_config.issuer_did}:students:{self.payload.student_id}'

    def build_status_entry(self) -> sl.BitstringStatusListEntry:
        return sl.BitstringStatusListEntry(
            # Where to find the Statuslist
            id=f'{self.allocation.status_list_uri}#{self.allocation.index}',
            statusPurpose=self.allocation.purpose,
            statusListIndex=str(self.allocation.index),
            statusListCredential=self.allocation.status_list_uri,
        )

    def build(self) -> dict:
        """The unsigned credential document"""
        document = {
            "@context": ["https://www.w3.org/ns/credentials/v2"],
            "id": self.credential_id,
            "type": ["VerifiableCredential", self.payload.vc_type],
            "issuer": self.issuer_config.issuer_did,
            "validFrom": self.issued_at.isoformat(),
            "credentialSubject": {"id": self._subject_id(), **self.payload.claims()},
            "credentialStatus": self.build_status_entry().model_dump(mode="json"),
        }
        if self.payload.valid_until:
            document["validUntil"] = self.payload.valid_until.isoformat()
        return document

    def sign(self, key_conf: KeyConfiguration) -> dict:
        """
        Builds and signs the credential, the proof covers the canonical JSON of the unsigned document.
        Raises SigningUnavailable if no proof can be produced.
        """
        document = self.build()
        proof = key_conf.sign(canonicalize(document), self.issuer_config.signing_key_ref)
        document["proof"] = proof.model_dump(mode="json")
        return document
