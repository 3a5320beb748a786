# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Tests for the status list publication endpoints using pytest & starlette / fastapi
"""

import pytest
from fastapi.testclient import TestClient

import vc_common.status_list as sl
from vc_common import exception as ex
from vc_common.key_configuration import Proof
from vc_common.parsing import canonicalize

import vc_issuer.engine as engine
from vc_issuer.exception.handler import status_code_for
from vc_issuer.issuer import app


@pytest.fixture()
def client(status_list_engine: engine.StatusListEngine):
    app.dependency_overrides[engine.get_engine] = lambda: status_list_engine
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_get_status_list(client: TestClient, status_list_engine: engine.StatusListEngine, key_conf):
    status_list_engine.registry.create_list(sl.StatusPurpose.REVOCATION)

    response = client.get("/.well-known/status-list/revocation-1")
    assert response.status_code == 200, response.text
    assert response.headers["Cache-Control"] == "public, max-age=60"

    data = response.json()
    assert data["@context"] == ["https://www.w3.org/ns/credentials/v2"]
    assert data["id"] == "https://issuer.example/.well-known/status-list/revocation-1"
    assert data["credentialSubject"]["statusPurpose"] == "revocation"
    assert sl.from_string(data["credentialSubject"]["encodedList"], status_list_engine.config.status_list_capacity).count_set() == 0

    proof = Proof.model_validate(data.pop("proof"))
    assert key_conf.verify(canonicalize(data), proof)


def test_list_status_lists(client: TestClient, status_list_engine: engine.StatusListEngine):
    assert client.get("/.well-known/status-list").json() == []
    status_list_engine.registry.create_list(sl.StatusPurpose.REVOCATION)
    status_list_engine.registry.create_list(sl.StatusPurpose.SUSPENSION)
    response = client.get("/.well-known/status-list")
    assert response.status_code == 200
    assert response.json() == ["revocation-1", "suspension-1"]


def test_unknown_status_list(client: TestClient):
    response = client.get("/.well-known/status-list/revocation-404")
    assert response.status_code == 404
    assert response.headers["Cache-Control"] == "no-store"
    assert "revocation-404" in response.json()["detail"]


def test_corrupt_status_list(client: TestClient, status_list_engine: engine.StatusListEngine, overwrite_status_list):
    status_list_engine.registry.create_list(sl.StatusPurpose.REVOCATION)
    overwrite_status_list("revocation-1", encoded_list=sl.create_empty(8).pack())
    response = client.get("/.well-known/status-list/revocation-1")
    assert response.status_code == 500
    assert response.headers["Cache-Control"] == "no-store"


def test_signing_unavailable(client: TestClient, status_list_engine: engine.StatusListEngine, config):
    status_list_engine.registry.create_list(sl.StatusPurpose.REVOCATION)
    config.signing_key_ref = "did:web:issuer.example#unknown"
    response = client.get("/.well-known/status-list/revocation-1")
    assert response.status_code == 503
    assert response.headers["Retry-After"] == "1"


def test_startup(client: TestClient, monkeypatch):
    configured = []
    monkeypatch.setattr("vc_common.fastapi_extensions.configure_logging", configured.append)
    with client:
        assert configured == [app.config_instance]
        assert client.get("/.well-known/status-list").status_code == 200
    assert app.title == app.config_instance.app_name


@pytest.mark.parametrize(
    "error, status_code",
    [
        (ex.NotFound(), 404),
        (ex.AlreadyExists(), 409),
        (ex.Conflict(), 409),
        (ex.ConcurrencyExhausted(), 409),
        (ex.SigningUnavailable(), 503),
        (ex.StorageError(), 503),
        (ex.CapacityExhausted(), 503),
        (ex.CapacityMismatch(), 500),
        (ex.MalformedEncoding(), 500),
    ],
)
def test_status_codes(error: ex.StatusEngineError, status_code: int):
    assert status_code_for(error) == status_code
