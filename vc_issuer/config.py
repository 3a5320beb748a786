# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

import os

import vc_common.config as conf
from vc_common import status_list as sl


class IssuerConfig(conf.Config):
    """
    Configuration handed to the status list engine at construction.
    Values default from the environment and can be overridden on the instance.
    """

    def __init__(self):
        super().__init__()
        self.app_name = os.getenv("APP_NAME", "Issuer Status Lists")
        self.issuer_did = os.getenv("ISSUER_DID", "did:web:localhost")
        """DID of the issuer, embedded in every issued credential and status list"""
        self.signing_key_ref = os.getenv("SIGNING_KEY_REF", f"{self.issuer_did}#key-1")
        """Verification method used to sign credentials"""

        # Status List
        self.status_list_capacity = int(os.getenv("STATUS_LIST_CAPACITY", sl.DEFAULT_CAPACITY))
        """Number of entries of newly created status lists. Existing lists keep their capacity."""
        self.max_commit_attempts = int(os.getenv("STATUS_LIST_MAX_COMMIT_ATTEMPTS", 5))
        """Attempts for a compare and swap of a status list before giving up"""
        self.commit_backoff_seconds = float(os.getenv("STATUS_LIST_COMMIT_BACKOFF_SECONDS", 0.01))
        """Base delay before retrying a conflicting compare and swap, doubled per attempt and jittered"""
        self.status_list_ttl_seconds = int(os.getenv("STATUS_LIST_TTL_SECONDS", 60))
        """How long verifiers may cache a published status list"""

    def get_status_list_uri(self, list_id: str) -> str:
        """Where verifiers resolve the published status list"""
        return f'{self.external_url}/.well-known/status-list/{list_id}'
