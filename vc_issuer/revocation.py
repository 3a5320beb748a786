# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Revocation of issued credentials.

The status list bit is the authoritative revocation flag. It is committed first with a
compare and swap on the whole encoded list, the credential row follows.
"""

import datetime
import logging
import random
import time

import sqlalchemy.exc
from sqlalchemy.orm import sessionmaker

import vc_common.status_list as sl
from vc_common.exception import CapacityMismatch, ConcurrencyExhausted, Conflict, NotFound, StorageError

import vc_issuer.config as conf
import vc_issuer.db.credential as cred_db
from vc_issuer import models
from vc_issuer.logging import IssuerOperationsLogEntry
from vc_issuer.registry import StatusListRegistry

_logger = logging.getLogger(__name__)


class RevocationProcessor:
    def __init__(self, config: conf.IssuerConfig, session_factory: sessionmaker, registry: StatusListRegistry):
        self._config = config
        self._session_factory = session_factory
        self._registry = registry

    def _load_credential(self, credential_id: str) -> models.IssuedCredential:
        try:
            with self._session_factory.begin() as session:
                record = cred_db.get_credential_orm(session, credential_id)
                if record is None:
                    raise NotFound(f"Credential {credential_id} not found")
                return record.to_domain()
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise StorageError(f"Could not load credential {credential_id}") from e

    def _decode(self, status_list: models.StatusList) -> sl.StatusList:
        try:
            return sl.from_string(status_list.encoded_list, status_list.total_entries)
        except CapacityMismatch:
            _logger.error(f"Stored encoding of status list {status_list.list_id} is corrupt")
            raise

    def _backoff(self, attempt: int) -> None:
        """Sleeps a random time up to the base delay doubled per failed attempt"""
        time.sleep(random.uniform(0, self._config.commit_backoff_seconds * 2 ** (attempt - 1)))

    def _set_bit(self, credential: models.IssuedCredential) -> None:
        """
        decode, set, encode, compare and swap; repeated from a fresh read on conflicts.
        A bit which is already set needs no commit.
        """
        for attempt in range(1, self._config.max_commit_attempts + 1):
            status_list = self._registry.get_list(credential.status_list_id)
            bits = self._decode(status_list)
            if bits.get_bit(credential.status_index):
                return
            bits.set_bit(credential.status_index)
            try:
                self._registry.commit(status_list.list_id, bits.pack(), status_list.encoded_list)
                return
            except Conflict:
                _logger.info(
                    IssuerOperationsLogEntry(
                        message="Status list changed concurrently, retrying.",
                        status=IssuerOperationsLogEntry.Status.error,
                        operation=IssuerOperationsLogEntry.Operation.revocation,
                        step=IssuerOperationsLogEntry.Step.revocation_conflict,
                        credential_id=credential.credential_id,
                        status_list_id=credential.status_list_id,
                        attempt=attempt,
                    )
                )
                if attempt < self._config.max_commit_attempts:
                    self._backoff(attempt)
        raise ConcurrencyExhausted(f"Could not update status list {credential.status_list_id} after {self._config.max_commit_attempts} attempts")

    def revoke(self, credential_id: str, reason: str = None) -> models.IssuedCredential:
        """
        Revokes the credential. Revoking an already revoked credential returns it unchanged.
        Raises NotFound for unknown credentials and ConcurrencyExhausted on repeated contention.
        """
        credential = self._load_credential(credential_id)
        if credential.is_revoked:
            _logger.info(
                IssuerOperationsLogEntry(
                    message="Credential is already revoked.",
                    status=IssuerOperationsLogEntry.Status.success,
                    operation=IssuerOperationsLogEntry.Operation.revocation,
                    step=IssuerOperationsLogEntry.Step.revocation_repeated,
                    credential_id=credential_id,
                )
            )
            return credential

        self._set_bit(credential)

        try:
            with self._session_factory.begin() as session:
                cred_db.mark_revoked(session, credential_id, datetime.datetime.now(datetime.timezone.utc), reason)
                revoked = cred_db.get_credential_orm(session, credential_id).to_domain()
        except sqlalchemy.exc.SQLAlchemyError as e:
            _logger.exception(f"Status list bit of {credential_id} is set but the credential row could not be updated")
            raise StorageError(f"Could not update credential {credential_id}") from e

        _logger.info(
            IssuerOperationsLogEntry(
                message="Credential revoked.",
                status=IssuerOperationsLogEntry.Status.success,
                operation=IssuerOperationsLogEntry.Operation.revocation,
                step=IssuerOperationsLogEntry.Step.revocation_commit,
                credential_id=credential_id,
                status_list_id=credential.status_list_id,
                status_index=credential.status_index,
            )
        )
        return revoked

    def is_revoked(self, credential_id: str) -> bool:
        """Reads the authoritative bit of the credential"""
        credential = self._load_credential(credential_id)
        return self._decode(self._registry.get_list(credential.status_list_id)).get_bit(credential.status_index)
