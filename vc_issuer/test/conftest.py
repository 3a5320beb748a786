# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Fixtures for the status list engine, running on a throwaway SQLite database per test
"""

import pytest
from jwcrypto import jwk
from sqlalchemy import update

import vc_common.db.database as db
from vc_common.key_configuration import KeyConfiguration

import vc_issuer.config as conf
import vc_issuer.db.status_list as sl_db
from vc_issuer.engine import StatusListEngine

TEST_CAPACITY = 64


def t_config() -> conf.IssuerConfig:
    """
    Configuration with a small list capacity, so exhaustion is cheap to reach
    """
    config = conf.IssuerConfig()
    config.external_url = "https://issuer.example"
    config.issuer_did = "did:web:issuer.example"
    config.signing_key_ref = f"{config.issuer_did}#key-1"
    config.status_list_capacity = TEST_CAPACITY
    config.max_commit_attempts = 5
    config.status_list_ttl_seconds = 60
    return config


@pytest.fixture()
def config() -> conf.IssuerConfig:
    return t_config()


@pytest.fixture()
def session_factory(tmp_path):
    db_url = f"sqlite:///{tmp_path}/status_list.sqlite"
    db.create_schema(db_url, "")
    return db.session_factory(db_url, "")


@pytest.fixture()
def key_conf(config) -> KeyConfiguration:
    return KeyConfiguration(jwk.JWK.generate(kty="EC", crv="P-256"), "ES256", config.signing_key_ref)


@pytest.fixture()
def status_list_engine(config, session_factory, key_conf) -> StatusListEngine:
    return StatusListEngine(config, session_factory, key_conf)


@pytest.fixture()
def course_credit():
    """Factory for course credit payloads"""

    def _course_credit(student_id: str = "S-1001", course_id: str = "CS101", **kwargs) -> dict:
        return {
            "vc_type": "CourseCreditCredential",
            "student_id": student_id,
            "course_id": course_id,
            "course_name": "Introduction to Programming",
            "credits": 6,
            "grade": "A",
            "grade_point": 4.0,
            "semester": "Fall",
            "academic_year": "2025/2026",
            **kwargs,
        }

    return _course_credit


@pytest.fixture()
def overwrite_status_list(session_factory):
    """Writes columns of a stored status list directly, bypassing the registry"""

    def _overwrite(list_id: str, **values) -> None:
        with session_factory.begin() as session:
            session.execute(update(sl_db.StatusList).where(sl_db.StatusList.list_id == list_id).values(**values))

    return _overwrite
