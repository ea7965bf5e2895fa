"""
Reading and writing JSON string patches

Input is parsed leniently (comments and trailing commas are accepted, as
hand-edited patches usually contain them). Output is indented UTF-8 with
non-ASCII text left unescaped so translators can read it.
"""

from pathlib import Path
from typing import Union

import json5
from loguru import logger
from pydantic import ValidationError

from parsers.errors import FormatError
from fastapi_models.blang_models import BlangJson


def parse_patch(content: Union[str, bytes]) -> BlangJson:
    """Parse patch JSON text, raising FormatError if it is not a usable patch"""
    if isinstance(content, (bytes, bytearray)):
        try:
            content = bytes(content).decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise FormatError(f"Patch is not valid UTF-8: {e}") from e
    elif content.startswith('\ufeff'):
        content = content[1:]

    try:
        raw = json5.loads(content)
    except ValueError as e:
        raise FormatError(f"Invalid patch JSON: {e}") from e

    if not isinstance(raw, dict) or raw.get('strings') is None:
        raise FormatError("Patch JSON has no 'strings' list")

    try:
        return BlangJson.model_validate(raw)
    except ValidationError as e:
        raise FormatError(f"Invalid patch contents: {e}") from e


def dump_patch(patch: BlangJson) -> bytes:
    """Serialize a patch to pretty-printed UTF-8 JSON"""
    return patch.model_dump_json(indent=2).encode('utf-8')


def load_patch_file(file_path: Union[str, Path]) -> BlangJson:
    """Read and parse a patch file"""
    content = Path(file_path).read_bytes()
    patch = parse_patch(content)
    logger.debug(f"Loaded patch {file_path} with {len(patch.strings)} strings")
    return patch


def save_patch_file(file_path: Union[str, Path], patch: BlangJson):
    """Write a patch file"""
    Path(file_path).write_bytes(dump_patch(patch))
    logger.info(f"Saved patch {file_path} with {len(patch.strings)} strings")
