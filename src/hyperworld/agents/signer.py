"""Decryption of agent signing keys."""

import eth_account
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from eth_account.signers.local import LocalAccount

from hyperworld.core.errors import SignerError

IV_LENGTH = 16


def parse_encryption_key(raw: str) -> bytes:
    """Turn ENCRYPTION_KEY into 32 key bytes.

    Accepts a 64 character hex string or a 32 character raw string.
    """
    raw = raw.strip()
    if len(raw) == 64:
        try:
            return bytes.fromhex(raw)
        except ValueError as e:
            raise SignerError("ENCRYPTION_KEY is 64 characters but not valid hex") from e
    if len(raw) == 32:
        return raw.encode("utf-8")
    raise SignerError(
        f"ENCRYPTION_KEY must be 32 characters or 64 hex characters, got {len(raw)}"
    )


def encrypt_secret(secret: str, key: bytes, iv: bytes) -> str:
    """Encrypt ``secret`` into the ``iv_hex:cipher_hex`` storage format."""
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(secret.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()
    return f"{iv.hex()}:{ciphertext.hex()}"


class SignerResolver:
    """Resolves an agent's encrypted secret to a signing account.

    Decrypted material only lives inside the returned ``LocalAccount``;
    errors name the failure, never the secret.
    """

    def __init__(self, encryption_key: str) -> None:
        self._key = parse_encryption_key(encryption_key) if encryption_key else None

    def __repr__(self) -> str:
        return f"SignerResolver(configured={self._key is not None})"

    def _decrypt(self, encrypted: str) -> str:
        if self._key is None:
            raise SignerError("ENCRYPTION_KEY is not configured")
        iv_hex, sep, cipher_hex = encrypted.strip().partition(":")
        if not sep:
            raise SignerError("Encrypted secret is not in iv:ciphertext format")
        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(cipher_hex)
        except ValueError as e:
            raise SignerError("Encrypted secret is not valid hex") from e
        if len(iv) != IV_LENGTH:
            raise SignerError(f"Encrypted secret has a {len(iv)} byte IV, expected {IV_LENGTH}")

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plain = unpadder.update(padded) + unpadder.finalize()
            return plain.decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            # Wrong key or corrupted record; the cause carries no key material
            raise SignerError("Failed to decrypt agent secret") from None

    def resolve(self, encrypted_secret: str) -> LocalAccount:
        """Decrypt and load the signing account.

        Raises:
            SignerError: on a missing key, malformed record or invalid private key
        """
        secret = self._decrypt(encrypted_secret)
        try:
            return eth_account.Account.from_key(secret)
        except Exception:
            raise SignerError("Decrypted secret is not a valid private key") from None
