"""
Merge external string patches into BLANG tables and export the modified strings back out
"""

from dataclasses import dataclass
from typing import Iterable

from loguru import logger

from parsers.blang import BlangFile, BlangString
from fastapi_models.blang_models import BlangJson, BlangJsonString


@dataclass
class PatchResult:
    """Outcome of applying a patch"""
    blang_file: BlangFile
    any_modified: bool
    updated: int = 0
    added: int = 0


def apply_patch(blang_file: BlangFile, patch: Iterable[BlangJsonString]) -> PatchResult:
    """
    Apply name -> text pairs to a table in place.

    Names are matched exactly against current identifiers (first match wins).
    Unknown names are appended as new strings; those have no on-disk original
    to compare with, so they stay flagged as modified through later patches.
    """
    updated = 0
    added = 0

    for patch_string in patch:
        blang_string = blang_file.find(patch_string.name)

        if blang_string is not None:
            blang_string.text = patch_string.text
            blang_string.refresh_modified()
            updated += 1
        else:
            blang_file.strings.append(BlangString(
                0, patch_string.name, patch_string.name,
                patch_string.text, patch_string.text, "", True, is_new=True
            ))
            added += 1

    any_modified = blang_file.any_modified
    logger.info(f"Applied patch: {updated} updated, {added} added, any modified: {any_modified}")
    return PatchResult(blang_file=blang_file, any_modified=any_modified, updated=updated, added=added)


def export_patch(blang_file: BlangFile) -> BlangJson:
    """Collect the modified strings, in table order, as a patch"""
    return BlangJson(strings=[
        BlangJsonString(name=s.identifier, text=(s.text or "").replace('\r\n', '\n'))
        for s in blang_file.strings
        if s.modified
    ])
