# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Issuance of credentials carrying a status list reference
"""

import datetime
import logging
import uuid

import pydantic
import sqlalchemy.exc
from sqlalchemy.orm import sessionmaker

from vc_common.exception import AlreadyExists, NotFound, SigningUnavailable, StorageError
from vc_common.key_configuration import KeyConfiguration

import vc_issuer.config as conf
import vc_issuer.db.credential as cred_db
from vc_issuer import models
from vc_issuer.builder import VerifiableCredentialBuilder
from vc_issuer.logging import IssuerOperationsLogEntry
from vc_issuer.registry import StatusListRegistry

_logger = logging.getLogger(__name__)

_payload_adapter = pydantic.TypeAdapter(models.CredentialPayload)


def parse_payload(data: dict) -> models.CourseCreditCredential | models.CreditTransferCredential | models.DegreeCredential | models.AchievementCredential:
    """Validates raw data into the credential payload variant named by its vc_type"""
    return _payload_adapter.validate_python(data)


class CredentialIssuer:
    def __init__(self, config: conf.IssuerConfig, session_factory: sessionmaker, registry: StatusListRegistry, key_conf: KeyConfiguration):
        self._config = config
        self._session_factory = session_factory
        self._registry = registry
        self._key_conf = key_conf

    def issue(self, payload, credential_id: str = None) -> models.IssuedCredential:
        """
        Allocates a status list index, builds and signs the credential and stores it as active.

        If signing fails the allocated index is not given back, it stays unused.
        Raises AlreadyExists if credential_id has been issued before.
        """
        if isinstance(payload, dict):
            payload = parse_payload(payload)
        if credential_id is None:
            credential_id = f'urn:uuid:{uuid.uuid4()}'
        elif self._exists(credential_id):
            raise AlreadyExists(f"Credential {credential_id} has already been issued")

        allocation = self._registry.allocate(payload.purpose)
        issued_at = datetime.datetime.now(datetime.timezone.utc)
        builder = VerifiableCredentialBuilder(payload, self._config, credential_id, allocation, issued_at)
        try:
            document = builder.sign(self._key_conf)
        except SigningUnavailable:
            _logger.error(
                IssuerOperationsLogEntry(
                    message="Signing failed, the reserved index stays unused.",
                    status=IssuerOperationsLogEntry.Status.error,
                    operation=IssuerOperationsLogEntry.Operation.issuance,
                    step=IssuerOperationsLogEntry.Step.issuance_signing,
                    credential_id=credential_id,
                    status_list_id=allocation.list_id,
                    status_index=allocation.index,
                )
            )
            raise

        try:
            with self._session_factory.begin() as session:
                record = cred_db.register_credential(
                    session,
                    vc_id=credential_id,
                    student_id=payload.student_id,
                    vc_type=payload.vc_type,
                    course_id=payload.related_course_id,
                    vc_document=document,
                    status_list_id=allocation.list_id,
                    status_index=allocation.index,
                    issued_at=issued_at,
                )
                issued = record.to_domain()
        except sqlalchemy.exc.IntegrityError as e:
            # Concurrent issuance with the same id, the allocation is lost like on a signing failure
            raise AlreadyExists(f"Credential {credential_id} has already been issued") from e
        except sqlalchemy.exc.SQLAlchemyError as e:
            _logger.exception(f"Could not store credential {credential_id}")
            raise StorageError(f"Could not store credential {credential_id}") from e

        _logger.info(
            IssuerOperationsLogEntry(
                message="Credential issued.",
                status=IssuerOperationsLogEntry.Status.success,
                operation=IssuerOperationsLogEntry.Operation.issuance,
                step=IssuerOperationsLogEntry.Step.issuance_persistence,
                credential_id=credential_id,
                status_list_id=allocation.list_id,
                status_index=allocation.index,
            )
        )
        return issued

    def _exists(self, credential_id: str) -> bool:
        try:
            with self._session_factory.begin() as session:
                return cred_db.credential_exists(session, credential_id)
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise StorageError(f"Could not look up credential {credential_id}") from e

    def get_credential(self, credential_id: str) -> models.IssuedCredential:
        try:
            with self._session_factory.begin() as session:
                record = cred_db.get_credential_orm(session, credential_id)
                if record is None:
                    raise NotFound(f"Credential {credential_id} not found")
                return record.to_domain()
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise StorageError(f"Could not load credential {credential_id}") from e

    def list_credentials(
        self,
        subject_id: str,
        status: models.CredentialState = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[models.IssuedCredential], int]:
        """One page of the credentials issued to a student, newest first, with the total count"""
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")
        try:
            with self._session_factory.begin() as session:
                records, total = cred_db.get_credentials_by_student(session, subject_id, status=status, page=page, limit=limit)
                return [record.to_domain() for record in records], total
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise StorageError(f"Could not load credentials of {subject_id}") from e
