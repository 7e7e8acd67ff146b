"""Address codec — text address forms to 20 raw bytes and back.

Two text forms are accepted everywhere an address is read:
- bech32 with the network's human-readable part (``zil1...``)
- hex, with or without a ``0x`` prefix (40 hex digits)

The canonical human form is bech32; the canonical hex form is
lowercase without a prefix. A malformed address means upstream data
corruption and fails the whole operation.
"""

from __future__ import annotations

import bech32
from eth_utils import decode_hex, is_hex_address, remove_0x_prefix
from eth_utils import encode_hex as _encode_prefixed_hex

from zapdist.errors import AddressDecodeError


DEFAULT_HRP = "zil"
ADDRESS_LENGTH = 20


def decode_text_address(text: str, hrp: str = DEFAULT_HRP) -> bytes:
    """Decode a bech32 or hex address to its 20 raw bytes."""
    if not isinstance(text, str) or not text:
        raise AddressDecodeError(f"Address must be a non-empty string, got {text!r}")

    if is_hex_address(text):
        return bytes(decode_hex(text))

    decoded = bech32.bech32_decode(text)
    found_hrp, data = decoded[0], decoded[1]
    if found_hrp is None or data is None:
        raise AddressDecodeError(f"Could not decode bech32 address: {text!r}")
    if found_hrp != hrp:
        raise AddressDecodeError(
            f"Unexpected address prefix {found_hrp!r} (expected {hrp!r}): {text!r}"
        )
    raw = bech32.convertbits(data, 5, 8, False)
    if raw is None or len(raw) != ADDRESS_LENGTH:
        raise AddressDecodeError(f"Address does not decode to {ADDRESS_LENGTH} bytes: {text!r}")
    return bytes(raw)


def encode_bech32(raw: bytes, hrp: str = DEFAULT_HRP) -> str:
    """Encode 20 raw bytes as a bech32 address."""
    if len(raw) != ADDRESS_LENGTH:
        raise AddressDecodeError(f"Address must be {ADDRESS_LENGTH} bytes, got {len(raw)}")
    return bech32.bech32_encode(hrp, bech32.convertbits(list(raw), 8, 5))


def encode_hex(raw: bytes) -> str:
    """Lowercase hex without a ``0x`` prefix."""
    return remove_0x_prefix(_encode_prefixed_hex(raw)).lower()


def normalize_address(text: str, hrp: str = DEFAULT_HRP) -> str:
    """Return the canonical bech32 form of any accepted address text."""
    return encode_bech32(decode_text_address(text, hrp), hrp)
