"""
BLANG editing session
Holds the table a translator is working on and the editor operations around it:
loading loose or archived tables, applying and exporting patches, saving
"""
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from loguru import logger

from parsers.blang import BlangFile, BlangParser, BlangString, BlangWriter
from parsers.errors import FormatError, NotFoundError
from parsers.resources import ResourcesParser
from config.blang_settings import BlangSettings, settings as default_settings
from fastapi_models.blang_models import BlangJson
from .blang_merge import PatchResult, apply_patch, export_patch
from .patch_file import parse_patch, save_patch_file

# decrypt(data, context_key) -> plaintext, may raise on data it cannot handle
Decryptor = Callable[[bytes, str], bytes]


class BlangSession:
    """One open BLANG table and its editing state"""

    def __init__(self, decryptor: Optional[Decryptor] = None, settings: Optional[BlangSettings] = None):
        self.decryptor = decryptor
        self.settings = settings or default_settings
        self.blang_file: Optional[BlangFile] = None
        self.language = self.settings.default_language
        self.unsaved_changes = False
        self.resources: Dict[str, bytes] = {}
        self.resources_path: Optional[str] = None
        self._new_string_index = 0
        self._placeholder: Optional[BlangString] = None

    @property
    def is_loaded(self) -> bool:
        return self.blang_file is not None

    @property
    def any_modified(self) -> bool:
        return self.blang_file is not None and self.blang_file.any_modified

    @property
    def default_patch_filename(self) -> str:
        return f"{self.language}.json"

    def _require_loaded(self) -> BlangFile:
        if self.blang_file is None:
            raise RuntimeError("No BLANG file loaded")
        return self.blang_file

    def _next_identifier(self) -> str:
        identifier = f"{self.settings.new_string_prefix}{self._new_string_index}"
        self._new_string_index += 1
        return identifier

    def _reset(self):
        self.blang_file = None
        self.unsaved_changes = False
        self._placeholder = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def new_blang(self) -> BlangFile:
        """Start a new table holding one blank placeholder string"""
        self._reset()
        self.blang_file = BlangFile.new(self._next_identifier())
        placeholder = self._placeholder = self.blang_file.strings[0]
        self.language = self.settings.default_language
        logger.info(f"Created new BLANG table with placeholder '{placeholder.identifier}'")
        return self.blang_file

    def load_blang_bytes(self, data: bytes, language: Optional[str] = None) -> BlangFile:
        """
        Load a table from raw bytes, replacing the current one.

        Encrypted tables are decrypted first when a decryptor is available.
        If decryption or parsing the decrypted bytes fails, the bytes are
        parsed as a plaintext table instead.
        """
        self._reset()
        language = language or self.settings.default_language

        blang_file = None
        if self.decryptor is not None:
            try:
                plaintext = self.decryptor(data, self.settings.decrypt_key(language))
                blang_file = BlangParser().parse(plaintext)
            except Exception as e:
                logger.info(f"Decryption of '{language}' table failed ({e}), parsing as plaintext")

        if blang_file is None:
            blang_file = BlangParser().parse(data)

        if len(blang_file) == 0:
            raise FormatError(f"BLANG table '{language}' contains no strings")

        self.blang_file = blang_file
        self.language = language
        logger.info(f"Loaded BLANG table '{language}': {len(blang_file)} strings, {blang_file.layout.name}")
        return blang_file

    def load_blang_file(self, file_path: Union[str, Path]) -> BlangFile:
        """Load a loose .blang file; its name (without extension) is the language"""
        file_path = Path(file_path)
        data = file_path.read_bytes()
        return self.load_blang_bytes(data, file_path.stem)

    def open_resources(self, file_path: Union[str, Path]) -> List[str]:
        """Index a .resources container and return the BLANG names it holds"""
        parser = ResourcesParser().read(str(file_path))
        self.resources = parser.extract_by_extension(self.settings.resource_suffix)
        self.resources_path = str(file_path)
        return list(self.resources.keys())

    def load_from_resources(self, name: str) -> BlangFile:
        """Load one of the tables found by open_resources"""
        if name not in self.resources:
            raise NotFoundError(f"'{name}' not found in {self.resources_path or 'resources'}")
        return self.load_blang_bytes(self.resources[name], Path(name).stem)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def add_string(self) -> BlangString:
        """Append a blank placeholder string"""
        blang_file = self._require_loaded()
        identifier = self._next_identifier()
        blang_string = BlangString(0, identifier, identifier, "", "")
        blang_file.strings.append(blang_string)
        self.unsaved_changes = True
        return blang_string

    def edit_string(self, index: int, identifier: Optional[str] = None, text: Optional[str] = None) -> BlangString:
        """Change a string's identifier and/or text"""
        blang_file = self._require_loaded()
        if not 0 <= index < len(blang_file.strings):
            raise NotFoundError(f"No string at index {index}")

        blang_string = blang_file.strings[index]
        if identifier is not None:
            blang_string.identifier = identifier
        if text is not None:
            blang_string.text = text
        blang_string.refresh_modified()
        self.unsaved_changes = True
        return blang_string

    def filter_strings(self, query: str = "") -> List[BlangString]:
        """Strings whose identifier or text contains query"""
        blang_file = self._require_loaded()
        if not query:
            return list(blang_file.strings)
        return [s for s in blang_file.strings if query in s.identifier or query in s.text]

    # ------------------------------------------------------------------
    # Patches
    # ------------------------------------------------------------------

    def apply_patch(self, patch: BlangJson) -> PatchResult:
        """Merge a patch into the current table"""
        blang_file = self._require_loaded()

        # A patch loaded onto a blank new table replaces its placeholder
        placeholder = None
        if (len(blang_file.strings) == 1 and not blang_file.any_modified
                and blang_file.strings[0] is self._placeholder):
            placeholder = self._placeholder

        result = apply_patch(blang_file, patch.strings)

        if placeholder is not None and placeholder in blang_file.strings and not placeholder.modified:
            blang_file.strings.remove(placeholder)
            self._placeholder = None

        self.unsaved_changes = True
        return result

    def load_patch(self, content: Union[str, bytes]) -> PatchResult:
        """Parse patch JSON text and merge it"""
        return self.apply_patch(parse_patch(content))

    def load_patch_file(self, file_path: Union[str, Path]) -> PatchResult:
        return self.load_patch(Path(file_path).read_bytes())

    def export_patch(self) -> BlangJson:
        return export_patch(self._require_loaded())

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    def save_patch(self, file_path: Union[str, Path]) -> bool:
        """Write the modified strings as a patch. Nothing is written when nothing is modified."""
        self._require_loaded()
        if not self.any_modified:
            logger.debug("No modified strings, patch not saved")
            return False

        save_patch_file(file_path, self.export_patch())
        self.unsaved_changes = False
        return True

    def save_blang(self, file_path: Union[str, Path]):
        """Write the whole table as a .blang file"""
        BlangWriter().write_to(str(file_path), self._require_loaded())
        self.unsaved_changes = False

    def close(self):
        self._reset()
        self.resources = {}
        self.resources_path = None
