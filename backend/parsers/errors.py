"""
Exceptions raised by the BLANG and .resources parsers
"""


class BlangError(Exception):
    """Base exception for string table errors"""
    pass


class FormatError(BlangError):
    """Raised when binary or patch data is malformed or truncated"""
    pass


class NotFoundError(BlangError):
    """Raised when a requested name is not present"""
    pass
