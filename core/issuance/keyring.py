"""
Module 06 - Issuer Keyring

Public keys the Exchange has published, indexed by key id. Holders use it
to blind requests and check signatures; Publishers and the Exchange use it
to check the credential carried by every receipt.
"""
from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from core.crypto.blind_rsa import IssuerKeyPair, IssuerPublicKey
from core.schemas.errors import SignatureError, SignatureErrorReason
from core.schemas.messages import PublicKeyInfo
from core.tokens.types import IssuanceCredential

logger = logging.getLogger(__name__)


class IssuerKeyring:
    """Thread-safe key id -> IssuerPublicKey map."""

    def __init__(self, keys: Optional[Iterable[IssuerPublicKey]] = None) -> None:
        self._keys: dict[bytes, IssuerPublicKey] = {}
        self._lock = threading.Lock()
        for key in keys or ():
            self.add(key)

    @classmethod
    def from_keypairs(cls, keypairs: Iterable[IssuerKeyPair]) -> "IssuerKeyring":
        return cls(kp.public for kp in keypairs)

    @classmethod
    def from_info(cls, infos: Iterable[PublicKeyInfo]) -> "IssuerKeyring":
        """Build from published key info, rejecting entries whose id does not match the key."""
        keyring = cls()
        for info in infos:
            key = IssuerPublicKey.from_pem(info.pem.encode("ascii"))
            if key.key_id.hex() != info.key_id:
                raise SignatureError(
                    "published key id does not match key material",
                    reason=SignatureErrorReason.UNKNOWN_KEY,
                    key_id=info.key_id,
                )
            keyring.add(key)
        return keyring

    def add(self, key: IssuerPublicKey) -> None:
        with self._lock:
            self._keys[key.key_id] = key

    def __contains__(self, key_id: bytes) -> bool:
        with self._lock:
            return key_id in self._keys

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def keys(self) -> list[IssuerPublicKey]:
        with self._lock:
            return list(self._keys.values())

    def get(self, key_id: bytes) -> IssuerPublicKey:
        """
        Raises:
            SignatureError: UnknownKey if no key with this id was published
        """
        with self._lock:
            key = self._keys.get(key_id)
        if key is None:
            raise SignatureError(
                f"unknown issuer key {key_id.hex()[:16]}",
                reason=SignatureErrorReason.UNKNOWN_KEY,
                key_id=key_id.hex(),
            )
        return key

    def check_credential(self, credential: IssuanceCredential) -> None:
        """
        Raises:
            SignatureError: UnknownKey or InvalidIssuance
        """
        key = self.get(credential.key_id)
        if not key.verify(credential.message(), credential.signature):
            raise SignatureError(
                "issuance credential signature does not verify",
                reason=SignatureErrorReason.INVALID_ISSUANCE,
                key_id=credential.key_id.hex(),
            )

    def to_info(self) -> list[PublicKeyInfo]:
        return [
            PublicKeyInfo(
                key_id=key.key_id.hex(),
                bits=key.n.bit_length(),
                pem=key.to_pem().decode("ascii"),
            )
            for key in self.keys()
        ]


__all__ = ["IssuerKeyring"]
