# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Status List Registry & Index Allocator

Owns the status lists of the issuer. Every operation runs in its own transaction,
so the registry can be shared between worker threads.
"""

import logging

import sqlalchemy.exc
from sqlalchemy.orm import sessionmaker

import vc_common.status_list as sl
from vc_common.exception import AlreadyExists, CapacityExhausted, CapacityMismatch, Conflict, NotFound, StorageError

import vc_issuer.config as conf
import vc_issuer.db.status_list as sl_db
from vc_issuer import models
from vc_issuer.logging import IssuerOperationsLogEntry

_logger = logging.getLogger(__name__)


class StatusListRegistry:
    def __init__(self, config: conf.IssuerConfig, session_factory: sessionmaker):
        self._config = config
        self._session_factory = session_factory

    def _open_new_list(self, session, purpose: sl.StatusPurpose, attempt: int) -> sl_db.StatusList:
        """
        Creates the next list of the purpose.
        A unique violation (another worker opened the same id) is left to the caller to retry.
        """
        list_id = f"{purpose.value}-{sl_db.next_list_number(session, purpose) + attempt - 1}"
        try:
            status_list = sl_db.create_status_list(
                session,
                list_id=list_id,
                issuer_did=self._config.issuer_did,
                purpose=purpose,
                total_entries=self._config.status_list_capacity,
            )
        except sqlalchemy.exc.IntegrityError:
            raise
        except sqlalchemy.exc.SQLAlchemyError as e:
            _logger.exception(f"Could not create status list {list_id}")
            raise CapacityExhausted(f"Could not open a new {purpose.value} status list") from e
        _logger.info(
            IssuerOperationsLogEntry(
                message="Opened new status list.",
                status=IssuerOperationsLogEntry.Status.success,
                operation=IssuerOperationsLogEntry.Operation.allocation,
                step=IssuerOperationsLogEntry.Step.allocation_list_creation,
                status_list_id=list_id,
            )
        )
        return status_list

    def allocate(self, purpose: sl.StatusPurpose) -> models.StatusAllocation:
        """
        Reserves the next free index for the purpose.
        Exhausted lists are skipped, a new list is opened if no list has room left.
        Indices are handed out once, in increasing order, and never returned.
        """
        for attempt in range(1, self._config.max_commit_attempts + 1):
            try:
                with self._session_factory.begin() as session:
                    status_list = sl_db.lock_open_status_list(session, purpose)
                    if status_list is None:
                        status_list = self._open_new_list(session, purpose, attempt)
                    index = sl_db.use_status_list_index(status_list, session)
                    list_id = status_list.list_id
            except sqlalchemy.exc.IntegrityError:
                _logger.warning(f"Status list creation for {purpose.value} raced with another worker, attempt {attempt}")
                continue
            except sqlalchemy.exc.SQLAlchemyError as e:
                _logger.exception("Could not reserve a status list index")
                raise StorageError("Could not reserve a status list index") from e

            _logger.debug(
                IssuerOperationsLogEntry(
                    message="Reserved status list index.",
                    status=IssuerOperationsLogEntry.Status.success,
                    operation=IssuerOperationsLogEntry.Operation.allocation,
                    step=IssuerOperationsLogEntry.Step.allocation_reservation,
                    status_list_id=list_id,
                    status_index=index,
                )
            )
            return models.StatusAllocation(
                list_id=list_id,
                index=index,
                purpose=purpose,
                status_list_uri=self._config.get_status_list_uri(list_id),
            )
        raise CapacityExhausted(f"Could not open a new {purpose.value} status list after {self._config.max_commit_attempts} attempts")

    def create_list(self, purpose: sl.StatusPurpose, list_id: str = None, total_entries: int = None) -> models.StatusList:
        """
        Creates an empty status list. Generates the id from the purpose if none is given.
        Raises AlreadyExists for a taken list_id and ValueError for a non-positive size.
        """
        if total_entries is None:
            total_entries = self._config.status_list_capacity
        if total_entries <= 0:
            raise ValueError(f"Status list size must be positive, got {total_entries}")
        try:
            with self._session_factory.begin() as session:
                if list_id is None:
                    list_id = f"{purpose.value}-{sl_db.next_list_number(session, purpose)}"
                status_list = sl_db.create_status_list(
                    session,
                    list_id=list_id,
                    issuer_did=self._config.issuer_did,
                    purpose=purpose,
                    total_entries=total_entries,
                )
                return status_list.to_domain()
        except sqlalchemy.exc.IntegrityError as e:
            raise AlreadyExists(f"Status list {list_id} already exists") from e
        except sqlalchemy.exc.SQLAlchemyError as e:
            _logger.exception(f"Could not create status list {list_id}")
            raise StorageError(f"Could not create status list {list_id}") from e

    def get_list(self, list_id: str) -> models.StatusList:
        try:
            with self._session_factory.begin() as session:
                status_list = sl_db.get_status_list_orm(list_id, session)
                if status_list is None:
                    raise NotFound(f"Status list {list_id} not found")
                return status_list.to_domain()
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise StorageError(f"Could not load status list {list_id}") from e

    def list_lists(self, purpose: sl.StatusPurpose = None) -> list[models.StatusList]:
        try:
            with self._session_factory.begin() as session:
                return [status_list.to_domain() for status_list in sl_db.get_status_lists(session, purpose)]
        except sqlalchemy.exc.SQLAlchemyError as e:
            raise StorageError("Could not load status lists") from e

    def commit(self, list_id: str, new_encoded_list: str, expected_prior_encoding: str) -> models.StatusList:
        """
        Compare and swap of the encoded list.
        Raises Conflict if the stored encoding is not expected_prior_encoding anymore.
        """
        try:
            with self._session_factory.begin() as session:
                status_list = sl_db.get_status_list_orm(list_id, session)
                if status_list is None:
                    raise NotFound(f"Status list {list_id} not found")
                try:
                    sl.decode(new_encoded_list, status_list.total_entries)
                except CapacityMismatch:
                    _logger.error(f"Refusing to store an encoding not matching the capacity of status list {list_id}")
                    raise
                if not sl_db.compare_and_swap_encoded_list(session, list_id, new_encoded_list, expected_prior_encoding):
                    raise Conflict(f"Status list {list_id} changed since it was read")
                session.refresh(status_list)
                return status_list.to_domain()
        except sqlalchemy.exc.SQLAlchemyError as e:
            _logger.exception(f"Could not commit status list {list_id}")
            raise StorageError(f"Could not commit status list {list_id}") from e
