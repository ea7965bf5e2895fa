"""
Pydantic models for BLANG string editing
Covers the JSON patch exchange format and the request/response shapes of the blang router
"""

from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, Field, field_validator


def require_utf8(value):
    """Reject strings that cannot be written as UTF-8 (lone surrogates)"""
    if isinstance(value, str):
        try:
            value.encode('utf-8')
        except UnicodeEncodeError as e:
            raise ValueError(f"not encodable as UTF-8: {e.reason}")
    return value


Utf8Str = Annotated[str, AfterValidator(require_utf8)]


# ============================================================
# Patch exchange format
# ============================================================

class BlangJsonString(BaseModel):
    """One name -> text pair in a string patch"""
    name: Utf8Str = ""
    text: Utf8Str = ""

    @field_validator('name', 'text', mode='before')
    @classmethod
    def none_as_empty(cls, value):
        return "" if value is None else value


class BlangJson(BaseModel):
    """A string patch: only the strings that differ from the game's table"""
    strings: List[BlangJsonString] = Field(default_factory=list)


# ============================================================
# Request models
# ============================================================

class OpenPathRequest(BaseModel):
    """Open or save a file at a path"""
    path: str = Field(..., description="Filesystem path")


class OpenResourceRequest(BaseModel):
    """Open a BLANG table embedded in a .resources container"""
    path: str = Field(..., description="Path to the .resources file")
    name: str = Field(..., description="BLANG name as listed by /blang/resources/list")


class StringEditRequest(BaseModel):
    """Direct edit of one string"""
    identifier: Optional[Utf8Str] = None
    text: Optional[Utf8Str] = None


# ============================================================
# Response models
# ============================================================

class BlangStringResponse(BaseModel):
    """A string table entry"""
    index: int
    hash: int
    identifier: str
    original_identifier: str
    text: str
    original_text: str
    trailing_field: str = ""
    modified: bool
    is_new: bool = False


class BlangSessionResponse(BaseModel):
    """State of an editing session"""
    session_id: int
    language: str
    layout: str
    string_count: int
    any_modified: bool
    unsaved_changes: bool


class BlangStringListResponse(BaseModel):
    strings: List[BlangStringResponse]
    total_count: int
    query: str = ""


class PatchApplyResponse(BaseModel):
    """Result of applying a patch to a session"""
    updated: int
    added: int
    any_modified: bool


class ResourceListResponse(BaseModel):
    path: str
    names: List[str]


class SaveResponse(BaseModel):
    path: str
    written: bool
    message: Optional[str] = None


class ActiveSessionInfo(BaseModel):
    session_id: int
    language: str
    string_count: int
    has_unsaved_changes: bool


class ActiveSessionListResponse(BaseModel):
    """Open editing sessions"""
    sessions: List[ActiveSessionInfo]
    total_count: int
