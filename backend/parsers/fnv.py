"""
FNV-1a 32-bit hashing used to fingerprint BLANG string identifiers
"""

from typing import Union

FNV1A32_OFFSET_BASIS = 0x811C9DC5
FNV1A32_PRIME = 0x01000193


def fnv1a32(data: Union[bytes, bytearray]) -> int:
    """Hash raw bytes with FNV-1a (32-bit)"""
    value = FNV1A32_OFFSET_BASIS
    for byte in data:
        value ^= byte
        value = (value * FNV1A32_PRIME) & 0xFFFFFFFF
    return value


def identifier_hash(identifier: str) -> int:
    """
    Hash a string identifier the way the game does.

    Identifiers are case-insensitive, so the UTF-8 bytes of the lowercased
    identifier are hashed. An empty identifier yields the offset basis.
    """
    return fnv1a32(identifier.lower().encode('utf-8'))
