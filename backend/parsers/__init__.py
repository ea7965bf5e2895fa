"""
BLANG string table and .resources container parsers
"""

from .errors import BlangError, FormatError, NotFoundError
from .fnv import fnv1a32, identifier_hash
from .blang import (
    BlangFile, BlangString, BlangLayout, BlangParser, BlangWriter
)
from .resources import (
    ResourcesParser, ResourcesHeader, ResourcesFileInfo, extract_by_extension
)

__all__ = [
    # Errors
    'BlangError', 'FormatError', 'NotFoundError',

    # Hashing
    'fnv1a32', 'identifier_hash',

    # BLANG
    'BlangFile', 'BlangString', 'BlangLayout', 'BlangParser', 'BlangWriter',

    # Resources
    'ResourcesParser', 'ResourcesHeader', 'ResourcesFileInfo', 'extract_by_extension',
]
