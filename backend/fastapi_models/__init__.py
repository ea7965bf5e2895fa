"""
FastAPI Pydantic models
Patch exchange format and blang router request/response shapes
"""

from .blang_models import (
    # Patch format
    BlangJson,
    BlangJsonString,

    # Requests
    OpenPathRequest,
    OpenResourceRequest,
    StringEditRequest,

    # Responses
    BlangStringResponse,
    BlangSessionResponse,
    BlangStringListResponse,
    PatchApplyResponse,
    ResourceListResponse,
    SaveResponse,
    ActiveSessionInfo,
    ActiveSessionListResponse,
)

__all__ = [
    'BlangJson', 'BlangJsonString',
    'OpenPathRequest', 'OpenResourceRequest', 'StringEditRequest',
    'BlangStringResponse', 'BlangSessionResponse', 'BlangStringListResponse',
    'PatchApplyResponse', 'ResourceListResponse', 'SaveResponse',
    'ActiveSessionInfo', 'ActiveSessionListResponse',
]
