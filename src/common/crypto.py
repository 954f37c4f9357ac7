from __future__ import annotations

import base64
import binascii
import os
from enum import IntEnum

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import (
    InvalidArgumentError,
    KeyLengthError,
    MalformedCiphertextError,
    PaddingError,
)


KEY_SIZE = 32
BLOCK_SIZE = 16  # AES block size in bytes; also the IV length


class CipherMode(IntEnum):
    CFB = 0  # stream mode, no padding
    CBC = 1  # block mode, PKCS#7 padding


def _to_key_bytes(key: str | bytes) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    if "+" in text or "/" in text:
        raise MalformedCiphertextError("ciphertext is not base64url (contains + or /)")
    pad = "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text + pad, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as ex:
        raise MalformedCiphertextError("ciphertext is not valid base64url") from ex


class Envelope:
    """
    AES-256 encryption envelope for record payloads.

    Output format: base64url (no padding) of ``IV || ciphertext`` where the IV
    is a fresh random 16-byte block per call.

    - ``CipherMode.CFB``: ciphertext is the CFB keystream XOR plaintext.
    - ``CipherMode.CBC``: plaintext is PKCS#7 padded then CBC encrypted.

    The two modes are not interoperable; a store must keep one mode for the
    lifetime of its data. No authentication tag is computed: tampered input
    either decrypts to garbage or (CBC) fails padding validation.
    """

    def __init__(self, key: str | bytes, mode: CipherMode | int = CipherMode.CBC) -> None:
        try:
            self._mode = CipherMode(mode)
        except ValueError:
            raise InvalidArgumentError(
                "invalid AES mode; use 0 (CipherMode.CFB) or 1 (CipherMode.CBC)"
            ) from None
        self._key = _to_key_bytes(key)

    @classmethod
    def default(cls, key: str | bytes) -> "Envelope":
        """Envelope in CBC mode."""
        return cls(key, CipherMode.CBC)

    @property
    def mode(self) -> CipherMode:
        return self._mode

    def _algorithm(self) -> algorithms.AES:
        if len(self._key) != KEY_SIZE:
            raise KeyLengthError(f"the key must be {KEY_SIZE} bytes long, got {len(self._key)}")
        return algorithms.AES(self._key)

    def _cipher(self, iv: bytes) -> Cipher:
        algo = self._algorithm()
        if self._mode is CipherMode.CFB:
            return Cipher(algo, modes.CFB(iv))
        return Cipher(algo, modes.CBC(iv))

    # -------- Public API --------
    def encrypt(self, plaintext: str) -> str:
        data = plaintext.encode("utf-8")
        # Validate the key before spending entropy on an IV
        self._algorithm()
        iv = os.urandom(BLOCK_SIZE)
        if self._mode is CipherMode.CBC:
            padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
            data = padder.update(data) + padder.finalize()
        encryptor = self._cipher(iv).encryptor()
        body = encryptor.update(data) + encryptor.finalize()
        return _b64encode(iv + body)

    def decrypt(self, ciphertext: str) -> str:
        raw = _b64decode(ciphertext)
        if len(raw) < BLOCK_SIZE:
            raise MalformedCiphertextError("the ciphertext is shorter than one cipher block")
        iv, body = raw[:BLOCK_SIZE], raw[BLOCK_SIZE:]
        decryptor = self._cipher(iv).decryptor()
        if self._mode is CipherMode.CBC:
            if len(body) % BLOCK_SIZE != 0:
                raise MalformedCiphertextError("CBC ciphertext is not a multiple of the block size")
            padded = decryptor.update(body) + decryptor.finalize()
            unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
            try:
                data = unpadder.update(padded) + unpadder.finalize()
            except ValueError as ex:
                raise PaddingError("invalid PKCS#7 padding") from ex
        else:
            data = decryptor.update(body) + decryptor.finalize()
        # Garbage from a wrong key or a flipped byte is left for the JSON layer to reject
        return data.decode("utf-8", errors="replace")


__all__ = ["Envelope", "CipherMode", "KEY_SIZE", "BLOCK_SIZE"]
