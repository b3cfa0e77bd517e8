"""Envelope codec: value tree <-> on-disk bytes.

Two envelope kinds, chosen per entity at creation time:

    plain       compact UTF-8 JSON of the value tree itself
    encrypted   UTF-8 JSON record (format version 1):

        {"v": 1, "encrypt": true,
         "kdf": "pbkdf2-sha256", "iterations": 100000,
         "compression": "zlib",
         "salt": "<hex 16 bytes>", "iv": "<hex 16 bytes>",
         "check": "<hex HMAC-SHA256(key, KEY_CHECK_LABEL)>",
         "ciphertext": "<base64 AES-256-CBC(zlib(json))>"}

Encrypt path: json -> zlib -> PKCS7 -> AES-256-CBC. The 32-byte key is
PBKDF2-HMAC-SHA256(password, salt). "check" lets a wrong password be told apart
from a corrupt file without relying on padding luck.
"""

from __future__ import annotations

import base64
import binascii
import json
import os
import zlib
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from octavia.errors import (
    DecryptionError,
    EncryptionError,
    IncorrectPasswordError,
    InvalidArgumentError,
)

FORMAT_VERSION = 1
PBKDF2_ITERATIONS = 100_000
MAX_PBKDF2_ITERATIONS = 10 * PBKDF2_ITERATIONS
KEY_LENGTH = 32
SALT_LENGTH = 16
IV_LENGTH = 16
KEY_CHECK_LABEL = b"octavia-key-check"

_KDF_NAME = "pbkdf2-sha256"
_COMPRESSION = "zlib"
_REQUIRED_FIELDS = ("salt", "iv", "check", "ciphertext")


# ---------------------------------------------------------------------------
# JSON helpers
# ---------------------------------------------------------------------------


def _dumps(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode("utf-8")


def to_json_tree(value: Any) -> Any:
    """Return a detached copy of value as plain JSON types.

    Tuples become lists, and anything JSON cannot represent raises
    InvalidArgumentError. Entities run every incoming value through this, so the
    cache only ever holds what a commit can persist.
    """
    try:
        return json.loads(_dumps(value))
    except (TypeError, ValueError) as exc:
        msg = f"Value is not JSON-serializable: {exc}"
        raise InvalidArgumentError(msg) from exc


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------


def derive_key(password: str, salt: bytes, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """PBKDF2-HMAC-SHA256 -> 32-byte AES key."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def _key_check(key: bytes) -> hmac.HMAC:
    h = hmac.HMAC(key, hashes.SHA256())
    h.update(KEY_CHECK_LABEL)
    return h


# ---------------------------------------------------------------------------
# Encrypted envelope
# ---------------------------------------------------------------------------


def encode(value: Any, password: str, *, iterations: int = PBKDF2_ITERATIONS) -> bytes:
    """Serialize, compress and encrypt value into a version-1 envelope."""
    try:
        compressed = zlib.compress(_dumps(value))
        salt = os.urandom(SALT_LENGTH)
        iv = os.urandom(IV_LENGTH)
        key = derive_key(password, salt, iterations)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(compressed) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        envelope = {
            "v": FORMAT_VERSION,
            "encrypt": True,
            "kdf": _KDF_NAME,
            "iterations": iterations,
            "compression": _COMPRESSION,
            "salt": salt.hex(),
            "iv": iv.hex(),
            "check": _key_check(key).finalize().hex(),
            "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
        }
    except (TypeError, ValueError) as exc:
        msg = f"Failed to encrypt: {exc}"
        raise EncryptionError(msg) from exc
    return json.dumps(envelope, separators=(",", ":")).encode("utf-8")


def _parse_envelope(blob: bytes | str) -> dict[str, Any]:
    try:
        envelope = json.loads(blob)
    except (UnicodeDecodeError, ValueError) as exc:
        msg = f"Failed to decrypt: envelope is not valid JSON ({exc})"
        raise DecryptionError(msg) from exc

    if not isinstance(envelope, dict) or envelope.get("encrypt") is not True:
        msg = "Failed to decrypt: not an encrypted envelope"
        raise DecryptionError(msg)
    if envelope.get("v") != FORMAT_VERSION:
        msg = f"Failed to decrypt: unsupported envelope version {envelope.get('v')!r}"
        raise DecryptionError(msg)
    if envelope.get("kdf", _KDF_NAME) != _KDF_NAME or envelope.get("compression", _COMPRESSION) != _COMPRESSION:
        msg = "Failed to decrypt: unsupported kdf or compression"
        raise DecryptionError(msg)
    missing = [f for f in _REQUIRED_FIELDS if not isinstance(envelope.get(f), str)]
    if missing:
        msg = f"Failed to decrypt: envelope is missing {', '.join(missing)}"
        raise DecryptionError(msg)
    iterations = envelope.get("iterations", PBKDF2_ITERATIONS)
    valid_int = isinstance(iterations, int) and not isinstance(iterations, bool)
    if not valid_int or not 1 <= iterations <= MAX_PBKDF2_ITERATIONS:
        msg = f"Failed to decrypt: invalid iteration count {iterations!r}"
        raise DecryptionError(msg)
    return envelope


def decode(blob: bytes | str, password: str) -> Any:
    """Decrypt a version-1 envelope.

    Raises IncorrectPasswordError when the key check or the padding check
    fails, and DecryptionError for anything else (bad JSON, bad fields,
    truncated ciphertext, corrupt compressed payload).
    """
    envelope = _parse_envelope(blob)
    try:
        salt = bytes.fromhex(envelope["salt"])
        iv = bytes.fromhex(envelope["iv"])
        check = bytes.fromhex(envelope["check"])
        ciphertext = base64.b64decode(envelope["ciphertext"], validate=True)
    except (ValueError, binascii.Error) as exc:
        msg = f"Failed to decrypt: malformed envelope field ({exc})"
        raise DecryptionError(msg) from exc
    if len(salt) != SALT_LENGTH or len(iv) != IV_LENGTH:
        msg = "Failed to decrypt: salt and iv must be 16 bytes"
        raise DecryptionError(msg)

    key = derive_key(password, salt, envelope.get("iterations", PBKDF2_ITERATIONS))
    try:
        _key_check(key).verify(check)
    except InvalidSignature as exc:
        msg = "Incorrect database password"
        raise IncorrectPasswordError(msg) from exc

    try:
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
    except ValueError as exc:
        msg = f"Failed to decrypt: {exc}"
        raise DecryptionError(msg) from exc

    try:
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        compressed = unpadder.update(padded) + unpadder.finalize()
    except ValueError as exc:
        msg = "Incorrect database password: bad padding"
        raise IncorrectPasswordError(msg) from exc

    try:
        return json.loads(zlib.decompress(compressed))
    except (zlib.error, UnicodeDecodeError, ValueError) as exc:
        msg = f"Failed to decrypt: corrupt payload ({exc})"
        raise DecryptionError(msg) from exc


# ---------------------------------------------------------------------------
# Plain envelope
# ---------------------------------------------------------------------------


def encode_plain(value: Any) -> bytes:
    try:
        return _dumps(value)
    except (TypeError, ValueError) as exc:
        msg = f"Failed to serialize: {exc}"
        raise EncryptionError(msg) from exc


def decode_plain(blob: bytes | str) -> Any:
    try:
        return json.loads(blob)
    except (UnicodeDecodeError, ValueError) as exc:
        msg = f"Failed to read plain envelope: {exc}"
        raise DecryptionError(msg) from exc
