# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Collection for loading cryptographic keys and producing proofs with them.

Proofs are detached JSON Web Signatures over the canonical JSON of a document
https://w3c-ccg.github.io/lds-jws2020/
"""

import os
import datetime
import logging
from typing import Literal
from functools import cache

from jwcrypto import jwk, jws, common as jw_common
from pydantic import BaseModel

from vc_common.exception import SigningUnavailable

_logger = logging.getLogger(__name__)


class Proof(BaseModel):
    type: Literal["JsonWebSignature2020"] = "JsonWebSignature2020"
    created: str
    verificationMethod: str
    proofPurpose: str = "assertionMethod"
    jws: str
    """Compact JWS with detached payload (<header>..<signature>)"""


def _load_key_file(key_file: str) -> str:
    with open(key_file) as f:
        return f.read()


def _load_key(env_var: str, file: str) -> str:
    key = os.getenv(env_var)
    if not key:
        key = _load_key_file(file)
    return key


class KeyConfiguration:
    """
    Holds the issuer signing key and the reference (verification method) it is published under
    """

    @staticmethod
    def load(key_folder: str = "cert") -> "KeyConfiguration":
        private_key = _load_key(env_var="SIGNING_KEY_PRIVATE", file=f"{key_folder}/ec_private.pem")
        signing_algorithm = os.getenv("SIGNING_ALGORITHM", "ES256")
        key_ref = os.getenv("SIGNING_KEY_REF", "did:web:localhost#key-1")
        return KeyConfiguration(jwk.JWK.from_pem(private_key.encode()), signing_algorithm, key_ref)

    def __init__(self, private_jwk: jwk.JWK, signing_algorithm: str, key_ref: str):
        self.private_jwk = private_jwk
        self.public_jwk = jwk.JWK(**private_jwk.export_public(as_dict=True))
        self.signing_algorithm: str = signing_algorithm
        self.key_ref: str = key_ref

    def sign(self, document: bytes, key_ref: str) -> Proof:
        """
        Signs the document bytes with the key referenced by key_ref.
        Raises SigningUnavailable if the key is unknown or signing fails.
        """
        if key_ref != self.key_ref:
            raise SigningUnavailable(f"No signing key available for {key_ref}")
        header = {"alg": self.signing_algorithm}
        try:
            signer = jws.JWS(document)
            signer.add_signature(key=self.private_jwk, protected=jw_common.json_encode(header))
            compact = signer.serialize(compact=True)
        except (jw_common.JWException, ValueError, TypeError) as e:
            _logger.exception("Signing failed")
            raise SigningUnavailable(f"Signing failed: {e}") from e
        encoded_header, _, signature = compact.split(".")
        return Proof(
            created=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            verificationMethod=key_ref,
            jws=f"{encoded_header}..{signature}",
        )

    def verify(self, document: bytes, proof: Proof) -> bool:
        encoded_header, _, signature = proof.jws.split(".")
        token = f"{encoded_header}.{jw_common.base64url_encode(document)}.{signature}"
        verifier = jws.JWS()
        try:
            verifier.deserialize(token, key=self.public_jwk)
        except jws.InvalidJWSSignature:
            return False
        except jws.InvalidJWSObject:
            _logger.warning("Proof is not a valid JWS")
            return False
        return True

    @property
    def jwks(self) -> dict:
        """
        JSON Web Key Set with public signing key
        """
        return {"keys": [self.public_jwk.export_public(as_dict=True)]}


@cache
def get_key_configuration() -> KeyConfiguration:
    return KeyConfiguration.load()
