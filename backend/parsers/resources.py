"""
.resources archive reader
Locates and extracts embedded files (BLANG tables by default) from idTech
indexed resource containers without unpacking the whole archive
"""

import os
import struct
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .errors import FormatError

logger = logging.getLogger(__name__)

RESOURCES_MAGIC = b'IDCL'

# Header scalars, absolute offsets
FILE_COUNT_OFFSET = 32
DUMMY_COUNT_OFFSET = 40
NAMES_OFFSET_OFFSET = 64
INFO_OFFSET_OFFSET = 80
DUMMY_OFFSET_OFFSET = 96
HEADER_SIZE = 104

# File info records, relative to the start of each record
INFO_NAME_ID_OFFSET = 32
INFO_DATA_OFFSET = 56
INFO_COMPRESSED_SIZE = 64
INFO_UNCOMPRESSED_SIZE = 72
INFO_RECORD_SIZE = 144

# Directory prefix stripped from extracted names, e.g. "strings/"
NAME_PREFIX_LENGTH = 8


@dataclass
class ResourcesHeader:
    """Container header information"""
    file_count: int
    dummy_count: int
    names_offset: int
    info_offset: int
    dummy_offset: int


@dataclass
class ResourcesFileInfo:
    """A file record from the info table"""
    index: int
    name: Optional[str]  # None for compressed entries, whose names are never resolved
    offset: int
    compressed_size: int
    uncompressed_size: int

    @property
    def is_compressed(self) -> bool:
        return self.compressed_size != self.uncompressed_size


class ResourcesParser:
    """Parser for .resources containers"""

    def __init__(self):
        self.header: Optional[ResourcesHeader] = None
        self.names: List[str] = []
        self.files: List[ResourcesFileInfo] = []
        self._data = b''
        self._file_path: Optional[str] = None

    def read(self, file_path: str) -> 'ResourcesParser':
        """Read and index a .resources file"""
        self._file_path = file_path

        if not os.path.exists(file_path):
            raise FileNotFoundError(f"Resources file not found: {file_path}")

        with open(file_path, 'rb') as f:
            data = f.read()

        self.parse(data)
        logger.info(f"Parsed resources file: {file_path} ({len(self.files)} files, {len(self.names)} names)")
        return self

    def parse(self, data: bytes) -> 'ResourcesParser':
        """
        Index a container held in memory.

        Raises FormatError on a bad magic or on any structural problem while
        walking the tables. Nothing is kept from a failed walk.
        """
        self._data = bytes(data)
        self.header = None
        self.names = []
        self.files = []

        if self._data[:4] != RESOURCES_MAGIC:
            raise FormatError(f"{self._describe()}: Invalid magic {self._data[:4]!r}")

        try:
            header = self._parse_header()
            names = self._parse_names(header)
            files = self._parse_file_infos(header, names)
        except FormatError as e:
            logger.warning(f"Aborted indexing {self._describe()}: {e}")
            raise
        except (struct.error, IndexError, OverflowError) as e:
            logger.warning(f"Aborted indexing {self._describe()}: {e}")
            raise FormatError(f"{self._describe()}: Corrupted index tables: {e}") from e

        self.header = header
        self.names = names
        self.files = files
        return self

    def extract_by_extension(self, suffix: str = '.blang') -> Dict[str, bytes]:
        """
        Extract every uncompressed file whose name ends with suffix.

        Keys are the file names without their leading directory prefix.
        Compressed entries are skipped since decompression is not supported.
        """
        if self.header is None:
            raise RuntimeError("No resources file loaded")

        extracted: Dict[str, bytes] = {}
        for file_info in self.files:
            if file_info.is_compressed:
                logger.debug(f"Skipping compressed entry {file_info.index}")
                continue

            if not file_info.name.endswith(suffix):
                continue

            key = file_info.name[NAME_PREFIX_LENGTH:]
            if key in extracted:
                raise FormatError(f"{self._describe()}: Duplicate entry '{key}'")

            end = file_info.offset + file_info.uncompressed_size
            if end > len(self._data):
                raise FormatError(
                    f"{self._describe()}: Data for '{file_info.name}' extends beyond end of file"
                )
            extracted[key] = self._data[file_info.offset:end]

        logger.info(f"Extracted {len(extracted)} '{suffix}' files from {self._describe()}")
        return extracted

    def list_resources(self) -> List[Dict[str, object]]:
        """List all file records"""
        return [
            {
                'index': f.index,
                'name': f.name,
                'offset': f.offset,
                'size': f.uncompressed_size,
                'compressed': f.is_compressed,
            }
            for f in self.files
        ]

    def _parse_header(self) -> ResourcesHeader:
        if len(self._data) < HEADER_SIZE:
            raise FormatError(f"{self._describe()}: Header is too short")

        dummy_count = self._get_uint32(DUMMY_COUNT_OFFSET)
        return ResourcesHeader(
            file_count=self._get_uint32(FILE_COUNT_OFFSET),
            dummy_count=dummy_count,
            names_offset=self._get_uint64(NAMES_OFFSET_OFFSET),
            info_offset=self._get_uint64(INFO_OFFSET_OFFSET),
            dummy_offset=self._get_uint64(DUMMY_OFFSET_OFFSET) + dummy_count * 4,
        )

    def _parse_names(self, header: ResourcesHeader) -> List[str]:
        name_count = self._get_uint64(header.names_offset)
        strings_base = header.names_offset + name_count * 8 + 8

        names = []
        for i in range(name_count):
            relative_offset = self._get_uint64(header.names_offset + 8 + i * 8)
            names.append(self._get_cstring(strings_base + relative_offset))
        return names

    def _parse_file_infos(self, header: ResourcesHeader, names: List[str]) -> List[ResourcesFileInfo]:
        files = []
        for i in range(header.file_count):
            record = header.info_offset + i * INFO_RECORD_SIZE
            name_id_offset = self._get_uint64(record + INFO_NAME_ID_OFFSET)
            offset = self._get_uint64(record + INFO_DATA_OFFSET)
            compressed_size = self._get_uint64(record + INFO_COMPRESSED_SIZE)
            uncompressed_size = self._get_uint64(record + INFO_UNCOMPRESSED_SIZE)

            name = None
            if compressed_size == uncompressed_size:
                name_id = self._get_uint64((name_id_offset + 1) * 8 + header.dummy_offset)
                if name_id >= len(names):
                    raise FormatError(
                        f"{self._describe()}: Name index {name_id} out of range for file {i}"
                    )
                name = names[name_id]

            files.append(ResourcesFileInfo(
                index=i,
                name=name,
                offset=offset,
                compressed_size=compressed_size,
                uncompressed_size=uncompressed_size
            ))
        return files

    def _describe(self) -> str:
        return self._file_path or "<memory>"

    def _get_uint32(self, offset: int) -> int:
        """Read little-endian unsigned 32-bit integer"""
        self._check_bounds(offset, 4)
        return struct.unpack_from('<I', self._data, offset)[0]

    def _get_uint64(self, offset: int) -> int:
        """Read little-endian unsigned 64-bit integer"""
        self._check_bounds(offset, 8)
        return struct.unpack_from('<Q', self._data, offset)[0]

    def _get_cstring(self, offset: int) -> str:
        """Read a null-terminated UTF-8 string"""
        self._check_bounds(offset, 1)
        end = self._data.find(b'\x00', offset)
        if end == -1:
            raise FormatError(f"{self._describe()}: Unterminated name at offset {offset}")
        return self._data[offset:end].decode('utf-8', errors='replace')

    def _check_bounds(self, offset: int, size: int):
        if offset < 0 or offset + size > len(self._data):
            raise FormatError(
                f"{self._describe()}: Premature end-of-data reading {size} bytes at offset {offset}"
            )


def extract_by_extension(data: bytes, suffix: str = '.blang') -> Dict[str, bytes]:
    """Extract matching files from a .resources container held in memory"""
    return ResourcesParser().parse(data).extract_by_extension(suffix)
