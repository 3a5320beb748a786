# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

from enum import Enum

from vc_common.logging import operations


class IssuerOperationsLogEntry(operations.OperationsLogEntry):
    """Container for issuer operations specific logging."""

    class Operation(Enum):
        issuance = "ISSUANCE"
        revocation = "REVOCATION"
        allocation = "ALLOCATION"
        publication = "PUBLICATION"

    class Step(Enum):
        allocation_list_creation = "LIST_CREATION"
        allocation_reservation = "RESERVATION"
        issuance_signing = "SIGNING"
        issuance_persistence = "PERSISTENCE"
        revocation_commit = "COMMIT"
        revocation_conflict = "CONFLICT"
        revocation_repeated = "REPEATED"
        publication_decoding = "DECODING"

    operation: Operation
    step: Step

    status_index: int | None = None
    attempt: int | None = None
