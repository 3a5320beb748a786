# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Issue, publish, revoke and verify, with the verifier resolving the status list over HTTP
"""

from fastapi.testclient import TestClient

from vc_common import status_check

import vc_issuer.engine as engine
from vc_issuer.issuer import app


def test_credential_lifecycle(status_list_engine: engine.StatusListEngine, config, course_credit):
    app.dependency_overrides[engine.get_engine] = lambda: status_list_engine
    try:
        client = TestClient(app)
        kept = status_list_engine.issue(course_credit(student_id="S-1001"))
        revoked = status_list_engine.issue(course_credit(student_id="S-1002"))
        capacity = config.status_list_capacity

        assert not status_check.check_revocation(kept.document, client, capacity)
        assert not status_check.check_revocation(revoked.document, client, capacity)

        status_list_engine.revoke(revoked.credential_id, reason="Grade corrected")

        assert status_check.check_revocation(revoked.document, client, capacity)
        assert not status_check.check_revocation(kept.document, client, capacity)

        published = client.get(revoked.document["credentialStatus"]["statusListCredential"]).json()
        assert status_check.is_revoked(revoked.document, published, capacity)
        assert not status_check.is_revoked(kept.document, published, capacity)
    finally:
        app.dependency_overrides.clear()


def test_verifier_checks_list_of_any_size(status_list_engine: engine.StatusListEngine, config, course_credit):
    config.status_list_capacity = 200000
    app.dependency_overrides[engine.get_engine] = lambda: status_list_engine
    try:
        client = TestClient(app)
        issued = status_list_engine.issue(course_credit())
        assert not status_check.check_revocation(issued.document, client)

        status_list_engine.revoke(issued.credential_id)
        assert status_check.check_revocation(issued.document, client)
    finally:
        app.dependency_overrides.clear()
