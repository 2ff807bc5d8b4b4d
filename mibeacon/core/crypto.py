"""AES-CCM decryption of MiBeacon v4/v5 encrypted payloads.

The encrypted region that follows the header is laid out as::

    ciphertext | counter extension (3 bytes) | tag (4 bytes)

and the 12-byte nonce is ``MAC (on-air order) | product id (LE) | frame counter
| counter extension``.
"""

from __future__ import annotations

import logging

from Crypto.Cipher import AES

from mibeacon.core.errors import (
    AuthenticationFailedError,
    BindKeyError,
    InsufficientLengthError,
    NonceMaterialError,
)
from mibeacon.core.model import CipherMaterial, MacAddress

KEY_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 4
EXTENSION_SIZE = 3
ASSOCIATED_DATA = b"\x11"
LOGGER = logging.getLogger(__name__)


def build_nonce(mac: MacAddress, product_id: int, frame_counter: int, extension: bytes) -> bytes:
    if len(extension) != EXTENSION_SIZE:
        raise InsufficientLengthError(
            f"Counter extension must be {EXTENSION_SIZE} bytes, got {len(extension)}"
        )
    nonce = b"".join(
        [
            mac.on_air,
            product_id.to_bytes(2, "little"),
            bytes([frame_counter]),
            extension,
        ]
    )
    return nonce


def split_region(
    region: bytes,
    *,
    mac: MacAddress | None,
    product_id: int,
    frame_counter: int,
) -> CipherMaterial:
    """Split an encrypted region into ciphertext, tag, and assembled nonce.

    The region must hold at least 7 bytes: the 3-byte counter extension and
    the 4-byte tag. The ciphertext itself may be empty.
    """
    minimum = EXTENSION_SIZE + TAG_SIZE
    if len(region) < minimum:
        raise InsufficientLengthError(
            f"Encrypted region is {len(region)} bytes, need at least {minimum}"
        )
    if mac is None:
        raise NonceMaterialError(
            "Frame carries no MAC address and no advertiser address was supplied"
        )
    ciphertext = bytes(region[: -minimum])
    extension = bytes(region[-minimum:-TAG_SIZE])
    tag = bytes(region[-TAG_SIZE:])
    return CipherMaterial(
        nonce=build_nonce(mac, product_id, frame_counter, extension),
        ciphertext=ciphertext,
        tag=tag,
    )


def _check_key(bind_key: bytes | None) -> bytes:
    if not bind_key:
        raise BindKeyError("Frame is encrypted and no bind key was supplied")
    if len(bind_key) != KEY_SIZE:
        raise BindKeyError(f"Bind key must be {KEY_SIZE} bytes, got {len(bind_key)}")
    return bytes(bind_key)


def decrypt(material: CipherMaterial, bind_key: bytes | None) -> bytes:
    """Return the verified plaintext for `material`.

    Nothing is returned unless the tag verifies; the key and any candidate
    plaintext stay out of exceptions and log records.
    """
    key = _check_key(bind_key)
    cipher = AES.new(key, AES.MODE_CCM, nonce=material.nonce, mac_len=TAG_SIZE)
    cipher.update(ASSOCIATED_DATA)
    try:
        plaintext = cipher.decrypt_and_verify(material.ciphertext, material.tag)
    except ValueError as exc:
        LOGGER.warning("MiBeacon payload failed authentication")
        LOGGER.debug("nonce: %s tag: %s", material.nonce.hex(), material.tag.hex())
        raise AuthenticationFailedError("Authentication tag mismatch") from exc
    return plaintext


def decrypt_region(
    region: bytes,
    *,
    mac: MacAddress | None,
    product_id: int,
    frame_counter: int,
    bind_key: bytes | None,
) -> bytes:
    material = split_region(region, mac=mac, product_id=product_id, frame_counter=frame_counter)
    return decrypt(material, bind_key)
