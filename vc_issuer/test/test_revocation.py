# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

from concurrent.futures import ThreadPoolExecutor

import pytest

import vc_common.status_list as sl
from vc_common.exception import CapacityMismatch, ConcurrencyExhausted, Conflict, NotFound

from vc_issuer import models
from vc_issuer.engine import StatusListEngine
from vc_issuer.registry import StatusListRegistry
from vc_issuer.revocation import RevocationProcessor


def _stored_bits(engine: StatusListEngine, list_id: str) -> sl.StatusList:
    status_list = engine.registry.get_list(list_id)
    return sl.from_string(status_list.encoded_list, status_list.total_entries)


class AlwaysConflictingRegistry(StatusListRegistry):
    """Every commit loses against a concurrent writer"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.commit_attempts = 0

    def commit(self, list_id, new_encoded_list, expected_prior_encoding):
        self.commit_attempts += 1
        raise Conflict(f"Status list {list_id} changed since it was read")


class InterleavingRegistry(StatusListRegistry):
    """Sets another bit right before the first commit, as a concurrent revocation would"""

    def __init__(self, *args, concurrent_index: int, **kwargs):
        super().__init__(*args, **kwargs)
        self.concurrent_index = concurrent_index
        self.commit_attempts = 0

    def commit(self, list_id, new_encoded_list, expected_prior_encoding):
        self.commit_attempts += 1
        if self.commit_attempts == 1:
            bits = sl.from_string(expected_prior_encoding, self.get_list(list_id).total_entries)
            bits.set_bit(self.concurrent_index)
            super().commit(list_id, bits.pack(), expected_prior_encoding)
        return super().commit(list_id, new_encoded_list, expected_prior_encoding)


def test_revoke(status_list_engine: StatusListEngine, course_credit):
    issued = [status_list_engine.issue(course_credit(student_id=f"S-{i}")) for i in range(3)]

    revoked = status_list_engine.revoke(issued[1].credential_id, reason="Academic misconduct")
    assert revoked.status == models.CredentialState.REVOKED
    assert revoked.is_revoked
    assert revoked.revoked_at is not None
    assert revoked.revoke_reason == "Academic misconduct"

    bits = _stored_bits(status_list_engine, "revocation-1")
    assert bits.get_bit(issued[1].status_index)
    assert bits.count_set() == 1
    assert status_list_engine.revocation.is_revoked(issued[1].credential_id)
    assert not status_list_engine.revocation.is_revoked(issued[0].credential_id)
    assert not status_list_engine.revocation.is_revoked(issued[2].credential_id)
    assert status_list_engine.issuer.get_credential(issued[0].credential_id).status == models.CredentialState.ACTIVE


def test_revoke_is_idempotent(status_list_engine: StatusListEngine, course_credit):
    issued = status_list_engine.issue(course_credit())
    first = status_list_engine.revoke(issued.credential_id, reason="first")
    version = status_list_engine.registry.get_list("revocation-1").version

    second = status_list_engine.revoke(issued.credential_id, reason="second")
    assert second.status == models.CredentialState.REVOKED
    assert second.revoked_at == first.revoked_at
    assert second.revoke_reason == "first"
    assert status_list_engine.registry.get_list("revocation-1").version == version
    assert _stored_bits(status_list_engine, "revocation-1").count_set() == 1


def test_revoke_unknown_credential(status_list_engine: StatusListEngine):
    with pytest.raises(NotFound):
        status_list_engine.revoke("urn:uuid:unknown")
    with pytest.raises(NotFound):
        status_list_engine.revocation.is_revoked("urn:uuid:unknown")


def test_concurrent_revocations_keep_all_bits(status_list_engine: StatusListEngine, config, course_credit):
    # Revocations on one list conflict with each other, the backoff spreads the retries
    config.commit_backoff_seconds = 0.05
    issued = [status_list_engine.issue(course_credit(student_id=f"S-{i}")) for i in range(16)]
    to_revoke = issued[::2]

    with ThreadPoolExecutor(max_workers=4) as pool:
        revoked = list(pool.map(lambda c: status_list_engine.revoke(c.credential_id), to_revoke))

    assert all(r.is_revoked for r in revoked)
    bits = _stored_bits(status_list_engine, "revocation-1")
    assert bits.count_set() == len(to_revoke)
    for credential in issued:
        assert bits.get_bit(credential.status_index) == (credential in to_revoke)


def test_concurrent_revocations_of_one_credential(status_list_engine: StatusListEngine, course_credit):
    issued = status_list_engine.issue(course_credit())
    reasons = [f"reason-{i}" for i in range(6)]

    with ThreadPoolExecutor(max_workers=6) as pool:
        revoked = list(pool.map(lambda reason: status_list_engine.revoke(issued.credential_id, reason=reason), reasons))

    assert all(r.is_revoked for r in revoked)
    stored = status_list_engine.issuer.get_credential(issued.credential_id)
    assert stored.revoke_reason in reasons
    # The bit is committed exactly once
    assert status_list_engine.registry.get_list("revocation-1").version == 1


def test_conflict_is_retried_without_losing_updates(config, session_factory, status_list_engine: StatusListEngine, course_credit):
    issued = [status_list_engine.issue(course_credit(student_id=f"S-{i}")) for i in range(2)]
    registry = InterleavingRegistry(config, session_factory, concurrent_index=issued[0].status_index)
    revocation = RevocationProcessor(config, session_factory, registry)

    revocation.revoke(issued[1].credential_id)

    assert registry.commit_attempts == 2
    bits = _stored_bits(status_list_engine, "revocation-1")
    assert bits.get_bit(issued[0].status_index)
    assert bits.get_bit(issued[1].status_index)


def test_concurrency_exhausted(config, session_factory, status_list_engine: StatusListEngine, course_credit):
    issued = status_list_engine.issue(course_credit())
    registry = AlwaysConflictingRegistry(config, session_factory)
    revocation = RevocationProcessor(config, session_factory, registry)

    with pytest.raises(ConcurrencyExhausted):
        revocation.revoke(issued.credential_id)

    assert registry.commit_attempts == config.max_commit_attempts
    # Neither the bit nor the credential row changed
    assert _stored_bits(status_list_engine, "revocation-1").count_set() == 0
    assert status_list_engine.issuer.get_credential(issued.credential_id).status == models.CredentialState.ACTIVE


def test_backoff_between_conflicting_commits(config, session_factory, status_list_engine: StatusListEngine, course_credit, monkeypatch):
    delays = []
    monkeypatch.setattr("vc_issuer.revocation.time.sleep", delays.append)
    issued = status_list_engine.issue(course_credit())
    revocation = RevocationProcessor(config, session_factory, AlwaysConflictingRegistry(config, session_factory))

    with pytest.raises(ConcurrencyExhausted):
        revocation.revoke(issued.credential_id)

    # no sleep after the last attempt
    assert len(delays) == config.max_commit_attempts - 1
    for attempt, delay in enumerate(delays, start=1):
        assert 0 <= delay <= config.commit_backoff_seconds * 2 ** (attempt - 1)


def test_revoke_on_corrupt_list(status_list_engine: StatusListEngine, course_credit, overwrite_status_list):
    issued = status_list_engine.issue(course_credit())
    overwrite_status_list("revocation-1", encoded_list=sl.create_empty(8).pack())
    with pytest.raises(CapacityMismatch):
        status_list_engine.revoke(issued.credential_id)
    assert status_list_engine.issuer.get_credential(issued.credential_id).status == models.CredentialState.ACTIVE
