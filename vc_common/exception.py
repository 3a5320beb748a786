# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Error kinds raised by the status list engine.

The serving layer translates these into transport level responses,
see vc_issuer.exception.handler
"""

from pydantic import BaseModel


class HTTPError(BaseModel):
    """
    General HTTPException raised
    """

    detail: str


class StatusEngineError(Exception):
    """Base class for all errors of the status list engine."""

    detail: str = "Status list engine error."

    def __init__(self, detail: str = None) -> None:
        if detail:
            self.detail = detail
        super().__init__(self.detail)


class NotFound(StatusEngineError):
    """Unknown status list or credential. Not retried."""

    detail = "The requested resource does not exist."


class AlreadyExists(StatusEngineError):
    """A credential with the requested id has already been issued."""

    detail = "The credential has already been issued."


class CapacityMismatch(StatusEngineError):
    """
    The decoded bit count of a status list disagrees with its declared capacity.
    This is data corruption and must never be repaired automatically.
    """

    detail = "Decoded status list does not match the declared capacity."


class MalformedEncoding(CapacityMismatch):
    """The encoded list is not valid base64url / gzip data."""

    detail = "Encoded status list could not be decoded."


class Conflict(StatusEngineError):
    """The stored encoding changed since it was read."""

    detail = "The status list has been modified concurrently."


class ConcurrencyExhausted(StatusEngineError):
    """Repeated conflicts on the same status list; the caller may retry later."""

    detail = "The status list is under heavy contention, giving up."


class SigningUnavailable(StatusEngineError):
    """The signing collaborator failed to produce a proof."""

    detail = "Signing is currently unavailable."


class StorageError(StatusEngineError):
    """Persistence failure. No partial state is left behind."""

    detail = "The storage layer failed to process the request."


class CapacityExhausted(StorageError):
    """No status list with free capacity could be opened."""

    detail = "No new status list could be created."
