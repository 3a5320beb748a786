# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Verifier side of the status list: resolve the status list credential
referenced by a VC and test the bit at its status index.
"""

import logging

import httpx

from vc_common import status_list as sl
from vc_common.exception import NotFound, StorageError

_logger = logging.getLogger(__name__)


def get_status_entry(credential: dict) -> sl.BitstringStatusListEntry | None:
    raw_status = credential.get("credentialStatus")
    if not raw_status:
        return None
    return sl.BitstringStatusListEntry.model_validate(raw_status)


def is_revoked(credential: dict, status_list_credential: dict, total_entries: int = None) -> bool:
    """
    Checks the credential against an already resolved status list credential.
    A credential without credentialStatus can not be revoked.

    The published list does not state its size. Without total_entries the size is
    taken from the decoded data, with the minimum size of 131072 entries enforced.
    Raises IndexError if the status index is outside the list.
    """
    entry = get_status_entry(credential)
    if entry is None:
        return False
    subject = sl.BitstringStatusListSubject.model_validate(status_list_credential["credentialSubject"])
    if subject.statusPurpose != entry.statusPurpose:
        raise ValueError(f"Status list purpose {subject.statusPurpose.value} does not match entry purpose {entry.statusPurpose.value}")
    if total_entries is None:
        status_list = sl.StatusList(sl.decode_published(subject.encodedList))
    else:
        status_list = sl.from_string(subject.encodedList, total_entries)
    return status_list.get_bit(entry.index)


def fetch_status_list_credential(url: str, client: httpx.Client) -> dict:
    try:
        r = client.get(url)
    except httpx.HTTPError as e:
        msg = f"Status list '{url}' can not be reached"
        _logger.exception(msg)
        raise StorageError(msg) from e
    if r.status_code == httpx.codes.NOT_FOUND:
        raise NotFound(f"Status list '{url}' does not exist")
    if r.status_code != httpx.codes.OK:
        raise StorageError(f"Status list '{url}' responded with {r.status_code}")
    return r.json()


def check_revocation(credential: dict, client: httpx.Client, total_entries: int = None) -> bool:
    """Fetches the referenced status list and reports if the credential is revoked"""
    entry = get_status_entry(credential)
    if entry is None:
        return False
    status_list_credential = fetch_status_list_credential(entry.statusListCredential, client)
    return is_revoked(credential, status_list_credential, total_entries)
