"""
Module 06 - Blind RSA Signatures

Chaum blind signatures with a full-domain hash, used by the Exchange to
sign token commitments it never sees.

Owner: Protocol/Crypto Engineer
Module ID: M06

Key material is held by `cryptography` RSA keys and persisted as PKCS8 PEM.
The signing operation itself is textbook RSA over the blinded full-domain
hash: padding schemes from the library cannot be used because the signer
must not see the message.

    holder:   blinded = H(m) * r^e mod n
    exchange: s' = blinded^d mod n
    holder:   s = s' * r^-1 mod n,  check s^e == H(m) mod n
"""
from __future__ import annotations

import math
import secrets
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from .hashing import expand, sha256

PUBLIC_EXPONENT = 65537
DEFAULT_KEY_SIZE = 2048
_FDH_LABEL = "divtokens/issuance/fdh"


class IssuerPublicKey:
    """Public half of an issuer key: verifies credentials and blinds requests."""

    def __init__(self, public_key: rsa.RSAPublicKey) -> None:
        numbers = public_key.public_numbers()
        self._key = public_key
        self.n: int = numbers.n
        self.e: int = numbers.e
        self.key_id: bytes = sha256(self.to_der())

    @property
    def modulus_bytes(self) -> int:
        return (self.n.bit_length() + 7) // 8

    @classmethod
    def from_pem(cls, data: bytes) -> "IssuerPublicKey":
        key = serialization.load_pem_public_key(data)
        if not isinstance(key, rsa.RSAPublicKey):
            raise ValueError("issuer public key must be an RSA key")
        return cls(key)

    def to_der(self) -> bytes:
        return self._key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def to_pem(self) -> bytes:
        return self._key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def hash_message(self, message: bytes) -> int:
        """Full-domain hash of message into Z_n."""
        stream = expand(
            _FDH_LABEL,
            self.modulus_bytes + 16,
            self.n.to_bytes(self.modulus_bytes, "big"),
            message,
        )
        return int.from_bytes(stream, "big") % self.n

    def blind(self, message: bytes) -> tuple[int, int]:
        """
        Blind a message for signing.

        Returns:
            (blinded, r) where r must be kept secret until unblinding
        """
        while True:
            r = secrets.randbelow(self.n - 2) + 2
            if math.gcd(r, self.n) == 1:
                break
        blinded = (self.hash_message(message) * pow(r, self.e, self.n)) % self.n
        return blinded, r

    def unblind(self, blind_signature: int, r: int) -> bytes:
        """Remove the blinding factor and encode the signature at modulus width."""
        signature = (blind_signature * pow(r, -1, self.n)) % self.n
        return signature.to_bytes(self.modulus_bytes, "big")

    def verify(self, message: bytes, signature: bytes) -> bool:
        if len(signature) != self.modulus_bytes:
            return False
        s = int.from_bytes(signature, "big")
        if not 0 < s < self.n:
            return False
        return pow(s, self.e, self.n) == self.hash_message(message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IssuerPublicKey):
            return NotImplemented
        return self.key_id == other.key_id

    def __hash__(self) -> int:
        return hash(self.key_id)

    def __repr__(self) -> str:
        return f"IssuerPublicKey(key_id={self.key_id.hex()[:16]}..., bits={self.n.bit_length()})"


class IssuerKeyPair:
    """
    Exchange signing key.

    Usage:
        keypair = IssuerKeyPair.generate()
        keypair.save("issuer.pem")

        blind_sig = keypair.sign_blinded(blinded)
    """

    def __init__(self, private_key: rsa.RSAPrivateKey) -> None:
        self._key = private_key
        self._d = private_key.private_numbers().d
        self.public = IssuerPublicKey(private_key.public_key())

    @property
    def key_id(self) -> bytes:
        return self.public.key_id

    @classmethod
    def generate(cls, key_size: int = DEFAULT_KEY_SIZE) -> "IssuerKeyPair":
        key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
        return cls(key)

    @classmethod
    def from_pem(cls, data: bytes, password: Optional[bytes] = None) -> "IssuerKeyPair":
        key = serialization.load_pem_private_key(data, password=password)
        if not isinstance(key, rsa.RSAPrivateKey):
            raise ValueError("issuer key must be an RSA private key")
        return cls(key)

    @classmethod
    def load(cls, path: str | Path, password: Optional[bytes] = None) -> "IssuerKeyPair":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Issuer key not found: {path}")
        return cls.from_pem(path.read_bytes(), password=password)

    def to_pem(self) -> bytes:
        return self._key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def save(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_pem())
        return path

    def sign_blinded(self, blinded: int) -> int:
        """Raw RSA signature of a blinded element of Z_n."""
        if not 0 < blinded < self.public.n:
            raise ValueError("blinded message out of range")
        return pow(blinded, self._d, self.public.n)


__all__ = [
    "PUBLIC_EXPONENT",
    "DEFAULT_KEY_SIZE",
    "IssuerPublicKey",
    "IssuerKeyPair",
]
