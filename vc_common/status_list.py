# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Functions for Bitstring Status Lists
https://www.w3.org/TR/vc-bitstring-status-list/

One bit per credential, bit 0 is the most significant bit of the first byte.
The bitstring is gzip compressed and base64url encoded without padding.
"""
import binascii
import enum
import gzip
import math
import base64
import zlib
from typing import Literal

import bitarray
from pydantic import BaseModel

from vc_common.exception import CapacityMismatch, MalformedEncoding
from vc_common.parsing import add_padding, remove_padding

DEFAULT_CAPACITY = 131072
"""Minimum size recommended to provide group privacy (16KB uncompressed)"""


class StatusPurpose(str, enum.Enum):
    REVOCATION = "revocation"
    SUSPENSION = "suspension"


def _from_bitarray_to_str(bit_data: bitarray.bitarray) -> str:
    """
    Converts a bitarray to a Bitstring Status List compatible b64 string
    """
    # tobytes() zero fills the unused bits of the final byte
    zipped = gzip.compress(bit_data.tobytes())
    encoded = base64.urlsafe_b64encode(zipped)
    return remove_padding(encoded.decode())


def _decompress(encoded_data: str) -> bytes:
    try:
        zipped = base64.urlsafe_b64decode(add_padding(encoded_data))
        return gzip.decompress(zipped)
    except (binascii.Error, OSError, EOFError, zlib.error, ValueError) as e:
        raise MalformedEncoding(f"Encoded status list could not be decoded: {e}") from e


def _from_str_to_bitarray(encoded_data: str, total_entries: int) -> bitarray.bitarray:
    """
    Converts the base64 encoded string to a bitarray of exactly total_entries bits
    """
    unzipped = _decompress(encoded_data)

    expected_bytes = math.ceil(total_entries / 8)
    if len(unzipped) != expected_bytes:
        raise CapacityMismatch(f"Decoded status list has {len(unzipped) * 8} bits, expected {total_entries}")

    a = bitarray.bitarray(endian="big")
    a.frombytes(unzipped)
    if a[total_entries:].any():
        raise CapacityMismatch(f"Decoded status list has bits set beyond its capacity of {total_entries}")
    del a[total_entries:]
    return a


def encode(bits: bitarray.bitarray) -> str:
    return _from_bitarray_to_str(bits)


def decode(encoded_list: str, total_entries: int) -> bitarray.bitarray:
    """
    Decodes the encoded list. Raises CapacityMismatch if the decoded
    bit count differs from total_entries
    """
    return _from_str_to_bitarray(encoded_list, total_entries)


def decode_published(encoded_list: str, minimum_entries: int = DEFAULT_CAPACITY) -> bitarray.bitarray:
    """
    Decodes a status list published by any issuer. The size is taken from the
    decompressed data, which has to hold at least minimum_entries bits.
    """
    unzipped = _decompress(encoded_list)
    if len(unzipped) * 8 < minimum_entries:
        raise CapacityMismatch(f"Decoded status list has {len(unzipped) * 8} bits, at least {minimum_entries} required")
    a = bitarray.bitarray(endian="big")
    a.frombytes(unzipped)
    return a


def from_string(base64_encoded: str, total_entries: int = DEFAULT_CAPACITY) -> "StatusList":
    a = _from_str_to_bitarray(base64_encoded, total_entries)
    return StatusList(a)


def create_empty(size: int = DEFAULT_CAPACITY) -> "StatusList":
    if size <= 0:
        raise ValueError(f"Status list size must be positive, got {size}")
    a = bitarray.bitarray(size, endian="big")
    a.setall(0)
    return StatusList(a)


class StatusList:
    def __init__(self, data: bitarray.bitarray):
        self.data = data

    def __str__(self) -> str:
        return self.pack()

    def __len__(self) -> int:
        return len(self.data)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.data):
            raise IndexError(f"Index {index} out of range for status list of {len(self.data)} entries")

    def get_bit(self, index: int) -> bool:
        self._check_index(index)
        return bool(self.data[index])

    def set_bit(self, index: int, bit_value: bool = True):
        """
        Sets the bit at the index to the given bit_value (True = 1, False = 0)
        """
        self._check_index(index)
        self.data[index] = int(bit_value)

    def count_set(self) -> int:
        return self.data.count(1)

    def pack(self) -> str:
        """
        Create the zipped & url-safe base64 encoded
        """
        return _from_bitarray_to_str(self.data)


class CredentialStatus(BaseModel):
    id: str
    """
    The value of the id property MUST be a URL which MAY be dereferenced.
    """
    type: str
    """
    Must express the credential status type, eg BitstringStatusListEntry
    """


class BitstringStatusListEntry(CredentialStatus):
    """
    https://www.w3.org/TR/vc-bitstring-status-list/#bitstringstatuslistentry
    id must not be the url for the status list.
    """

    type: Literal['BitstringStatusListEntry'] = 'BitstringStatusListEntry'
    statusPurpose: StatusPurpose
    statusListIndex: str
    """
    an arbitrary size integer greater than or equal to 0, expressed as a string
    identifies the bit position of the status of the verifiable credential
    """
    statusListCredential: str
    """
    URL to the status list credential, which has the type BitstringStatusListCredential
    """

    @property
    def index(self) -> int:
        return int(self.statusListIndex)


class BitstringStatusListSubject(BaseModel):
    id: str
    type: Literal['BitstringStatusList'] = 'BitstringStatusList'
    statusPurpose: StatusPurpose
    encodedList: str
