"""
BLANG string table parser and writer
Handles the localized .blang tables found loose on disk or inside .resources archives

Two on-disk layouts exist. Older tables start with an opaque 8-byte
big-endian value before the string count; newer ones omit it. Independently,
every entry may or may not carry a third length-prefixed string after its
text. Neither layout is marked in the file, so both are detected from the
"#str_" prefix that the first identifiers conventionally carry.
"""

import os
import struct
import logging
from enum import Enum
from typing import Iterator, List, Optional

from .errors import FormatError
from .fnv import identifier_hash

logger = logging.getLogger(__name__)

STRING_PREFIX = b'#str_'

# Where the first identifier starts when the 8-byte header is omitted:
# string count (4) + first hash (4) + first identifier length (4)
NEW_FORMAT_MARKER_OFFSET = 0xC

# Gap between one entry's text and the next entry's identifier when there
# is no trailing field: next hash (4) + next identifier length (4)
ENTRY_GAP = 8


class BlangLayout(Enum):
    """On-disk shape of a BLANG table"""
    LEGACY_WITH_TRAILING = (True, True)
    LEGACY_NO_TRAILING = (True, False)
    NEW_WITH_TRAILING = (False, True)
    NEW_NO_TRAILING = (False, False)

    @property
    def has_header(self) -> bool:
        return self.value[0]

    @property
    def has_trailing_field(self) -> bool:
        return self.value[1]

    @classmethod
    def from_flags(cls, has_header: bool, has_trailing_field: bool) -> 'BlangLayout':
        return cls((has_header, has_trailing_field))


class BlangString:
    """A single string table entry"""

    def __init__(self, hash: int, identifier: str, original_identifier: str,
                 text: str, original_text: str, trailing_field: str = "",
                 modified: bool = False, is_new: bool = False):
        self.hash = hash
        self.identifier = identifier
        self._original_identifier = original_identifier
        self.text = text
        self._original_text = original_text
        self.trailing_field = trailing_field
        self.modified = modified
        # Added by a patch, no on-disk form to compare against
        self.is_new = is_new

    @classmethod
    def from_disk(cls, hash: int, identifier: str, text: str, trailing_field: str = "") -> 'BlangString':
        """Create an entry as it was read from a file (unmodified)"""
        return cls(hash, identifier, identifier, text, text, trailing_field, False)

    @property
    def original_identifier(self) -> str:
        return self._original_identifier

    @property
    def original_text(self) -> str:
        return self._original_text

    @property
    def is_valid(self) -> bool:
        """Entries need a non-blank identifier to be written"""
        return bool(self.identifier and self.identifier.strip())

    def refresh_modified(self) -> bool:
        """Recompute the modified flag from the current and original values"""
        self.modified = (self.is_new
                         or self.identifier != self._original_identifier
                         or self.text != self._original_text)
        return self.modified

    def to_dict(self) -> dict:
        return {
            'hash': self.hash,
            'identifier': self.identifier,
            'original_identifier': self._original_identifier,
            'text': self.text,
            'original_text': self._original_text,
            'trailing_field': self.trailing_field,
            'modified': self.modified,
            'is_new': self.is_new,
        }

    def __repr__(self):
        return f"BlangString(identifier='{self.identifier}', text='{self.text}', modified={self.modified})"


class BlangFile:
    """An in-memory BLANG table"""

    def __init__(self, header_field: int = 0, strings: Optional[List[BlangString]] = None,
                 has_header: bool = True, has_trailing_field: bool = True):
        self.header_field = header_field
        self.strings: List[BlangString] = strings if strings is not None else []
        self.has_header = has_header
        self.has_trailing_field = has_trailing_field

    @classmethod
    def new(cls, identifier: str) -> 'BlangFile':
        """Create an empty table holding a single blank placeholder entry"""
        return cls(header_field=0, strings=[BlangString(0, identifier, identifier, "", "")])

    @property
    def layout(self) -> BlangLayout:
        return BlangLayout.from_flags(self.has_header, self.has_trailing_field)

    @property
    def any_modified(self) -> bool:
        return any(s.modified for s in self.strings)

    def find(self, identifier: str) -> Optional[BlangString]:
        """Return the first entry with exactly this identifier"""
        for blang_string in self.strings:
            if blang_string.identifier == identifier:
                return blang_string
        return None

    def remove_invalid_strings(self) -> int:
        """Drop entries with a blank identifier, returning how many were removed"""
        before = len(self.strings)
        self.strings[:] = [s for s in self.strings if s.is_valid]
        return before - len(self.strings)

    def __len__(self):
        return len(self.strings)

    def __iter__(self) -> Iterator[BlangString]:
        return iter(self.strings)

    def __repr__(self):
        return f"BlangFile(layout={self.layout.name}, strings={len(self.strings)})"


class BlangParser:
    """Parser for .blang string tables"""

    def __init__(self):
        self._data = b''
        self._pos = 0

    def read(self, file_path: str) -> BlangFile:
        """Read and parse a .blang file from disk"""
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"BLANG file not found: {file_path}")

        with open(file_path, 'rb') as f:
            data = f.read()

        blang_file = self.parse(data)
        logger.info(f"Parsed BLANG file: {file_path} ({len(blang_file)} strings, {blang_file.layout.name})")
        return blang_file

    def parse(self, data: bytes) -> BlangFile:
        """Parse a BLANG table held in memory"""
        self._data = bytes(data)
        self._pos = 0

        blang_file = BlangFile()
        blang_file.has_header = not self._is_new_format()

        if blang_file.has_header:
            blang_file.header_field = self._unpack('>q', 8)
        else:
            blang_file.header_field = 0

        string_count = self._unpack('>i', 4)
        if string_count < 0:
            raise FormatError(f"Negative string count: {string_count}")

        strings_start = self._pos
        blang_file.has_trailing_field = self._detect_trailing_field(strings_start, string_count)
        self._pos = strings_start

        for i in range(string_count):
            blang_file.strings.append(self._parse_string(i, blang_file.has_trailing_field))

        logger.debug(f"Parsed {string_count} BLANG strings, layout {blang_file.layout.name}")
        return blang_file

    def _is_new_format(self) -> bool:
        """Newer tables have the first identifier where the header would be"""
        marker = self._data[NEW_FORMAT_MARKER_OFFSET:NEW_FORMAT_MARKER_OFFSET + len(STRING_PREFIX)]
        return marker.lower() == STRING_PREFIX

    def _detect_trailing_field(self, strings_start: int, string_count: int) -> bool:
        """
        Check whether entries carry a trailing string after their text.

        Skips over the first entry and looks for the second identifier exactly
        8 bytes later. Finding it means there is nothing between the two
        entries. Anything else, including running out of data, means entries
        have a trailing field.
        """
        data = self._data
        pos = strings_start + 4

        for _ in range(2):
            if pos + 4 > len(data):
                return True
            (length,) = struct.unpack_from('<i', data, pos)
            if length < 0:
                return True
            pos += 4 + length

        # A lone entry that ends the file has no room for a trailing length
        if string_count == 1 and pos == len(data):
            return False

        marker = data[pos + ENTRY_GAP:pos + ENTRY_GAP + len(STRING_PREFIX)]
        return marker.lower() != STRING_PREFIX

    def _parse_string(self, index: int, has_trailing_field: bool) -> BlangString:
        string_hash = self._unpack('>I', 4)
        identifier = self._read_string(f"identifier of string {index}")
        text = self._read_string(f"text of string {index}")
        trailing_field = ""
        if has_trailing_field:
            trailing_field = self._read_string(f"trailing field of string {index}")
        return BlangString.from_disk(string_hash, identifier, text, trailing_field)

    def _read_string(self, what: str) -> str:
        length = self._unpack('<i', 4)
        if length < 0:
            raise FormatError(f"Negative length {length} for {what} at offset {self._pos - 4}")
        return self._read_bytes(length).decode('utf-8', errors='replace')

    def _read_bytes(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise FormatError(
                f"Premature end-of-data: needed {size} bytes at offset {self._pos}, "
                f"only {len(self._data) - self._pos} left"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def _unpack(self, fmt: str, size: int) -> int:
        return struct.unpack(fmt, self._read_bytes(size))[0]


class BlangWriter:
    """Writer for .blang string tables

    Always produces the legacy layout with a trailing field slot on every
    entry, whatever layout the table was read from.
    """

    def write(self, blang_file: BlangFile) -> bytes:
        """Serialize a table, dropping entries without an identifier"""
        removed = blang_file.remove_invalid_strings()
        if removed:
            logger.debug(f"Dropped {removed} BLANG strings with blank identifiers")

        chunks = [
            struct.pack('>q', blang_file.header_field),
            struct.pack('>i', len(blang_file.strings)),
        ]

        for blang_string in blang_file.strings:
            blang_string.hash = identifier_hash(blang_string.identifier)
            chunks.append(struct.pack('>I', blang_string.hash))

            # Identifier case is kept, only the hash is computed over lowercase
            chunks.append(self._pack_string(blang_string.identifier))

            text = (blang_string.text or "").replace('\r', '')
            chunks.append(self._pack_string(text))

            trailing_field = blang_string.trailing_field or ""
            if not trailing_field.strip():
                trailing_field = ""
            chunks.append(self._pack_string(trailing_field))

        return b''.join(chunks)

    def write_to(self, file_path: str, blang_file: BlangFile):
        """Serialize a table to disk"""
        data = self.write(blang_file)
        with open(file_path, 'wb') as f:
            f.write(data)
        logger.info(f"Wrote BLANG file: {file_path} ({len(blang_file)} strings)")

    @staticmethod
    def _pack_string(value: str) -> bytes:
        encoded = value.encode('utf-8')
        return struct.pack('<i', len(encoded)) + encoded
