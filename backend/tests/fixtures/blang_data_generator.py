"""
Test data generator for BLANG and .resources tests.
Builds binary fixtures in memory with struct.
"""
import struct
from typing import List, Optional, Sequence, Tuple

from parsers.fnv import identifier_hash


def _pack_string(value: str) -> bytes:
    encoded = value.encode('utf-8')
    return struct.pack('<i', len(encoded)) + encoded


def create_test_blang(strings: Sequence[tuple], header_field: int = 0,
                      new_format: bool = False, trailing: bool = True) -> bytes:
    """
    Create BLANG bytes.

    Args:
        strings: (identifier, text) or (identifier, text, trailing_field) tuples
        header_field: 8-byte value written before the count (legacy format only)
        new_format: Omit the 8-byte header
        trailing: Write a trailing field after each text
    """
    data = b''
    if not new_format:
        data += struct.pack('>q', header_field)
    data += struct.pack('>i', len(strings))

    for entry in strings:
        identifier, text = entry[0], entry[1]
        trailing_field = entry[2] if len(entry) > 2 else ""
        data += struct.pack('>I', identifier_hash(identifier))
        data += _pack_string(identifier)
        data += _pack_string(text)
        if trailing:
            data += _pack_string(trailing_field)

    return data


SAMPLE_STRINGS = [
    ("#str_menu_start", "Start Game"),
    ("#str_menu_options", "Options"),
    ("#str_menu_quit", "Quit"),
]


def create_test_resources(files: List[Tuple[str, bytes]], compressed: Optional[Sequence[str]] = None,
                          dummy_count: int = 0, extra_names: Sequence[str] = ()) -> bytes:
    """
    Create a minimal .resources container.

    Args:
        files: (full name, data) pairs, e.g. ("strings/english.blang", b"...")
        compressed: Names whose compressed size should differ from their size
        dummy_count: Value of the header's dummy count (shifts the name id table)
        extra_names: Names present in the name table but not used by any file
    """
    compressed = set(compressed or ())
    names = [name for name, _ in files] + list(extra_names)

    header_size = 104
    names_offset = header_size

    # Name table: count, relative offsets, then null-terminated strings
    name_blob = b''
    relative_offsets = []
    for name in names:
        relative_offsets.append(len(name_blob))
        name_blob += name.encode('utf-8') + b'\x00'
    names_section = struct.pack('<Q', len(names))
    names_section += b''.join(struct.pack('<Q', o) for o in relative_offsets)
    names_section += name_blob

    # Name id table: file i resolves its name id at (i + 1) * 8 + dummy_offset
    name_ids_offset = names_offset + len(names_section)
    name_ids_section = b''.join(struct.pack('<Q', i) for i in range(len(files)))
    dummy_offset_base = name_ids_offset - 8 - dummy_count * 4

    info_offset = name_ids_offset + len(name_ids_section)
    record_size = 144
    data_offset = info_offset + record_size * len(files)

    info_section = b''
    data_section = b''
    for i, (name, blob) in enumerate(files):
        record = bytearray(record_size)
        size = len(blob)
        compressed_size = size + 1 if name in compressed else size
        struct.pack_into('<Q', record, 32, i)
        struct.pack_into('<Q', record, 56, data_offset + len(data_section))
        struct.pack_into('<Q', record, 64, compressed_size)
        struct.pack_into('<Q', record, 72, size)
        info_section += bytes(record)
        data_section += blob

    header = bytearray(header_size)
    header[0:4] = b'IDCL'
    struct.pack_into('<I', header, 32, len(files))
    struct.pack_into('<I', header, 40, dummy_count)
    struct.pack_into('<Q', header, 64, names_offset)
    struct.pack_into('<Q', header, 80, info_offset)
    struct.pack_into('<Q', header, 96, dummy_offset_base)

    return bytes(header) + names_section + name_ids_section + info_section + data_section
