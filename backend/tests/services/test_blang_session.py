"""
Tests for BLANG editing sessions
"""

import pytest

from parsers import BlangParser, FormatError, NotFoundError
from config.blang_settings import BlangSettings
from fastapi_models.blang_models import BlangJson, BlangJsonString
from services.core.blang_session import BlangSession
from tests.fixtures.blang_data_generator import create_test_blang, create_test_resources, SAMPLE_STRINGS


class FakeDecryptor:
    """Accepts data framed as b'ENC' + key + b'|' + plaintext"""

    def __init__(self):
        self.keys = []

    def __call__(self, data, key):
        self.keys.append(key)
        prefix = b'ENC' + key.encode('utf-8') + b'|'
        if not data.startswith(prefix):
            raise ValueError("bad tag")
        return data[len(prefix):]


def encrypt(data, language):
    return b'ENC' + f"strings/{language}.blang".encode('utf-8') + b'|' + data


@pytest.fixture
def settings():
    return BlangSettings()


@pytest.fixture
def session(settings):
    return BlangSession(settings=settings)


@pytest.fixture
def blang_bytes():
    return create_test_blang(SAMPLE_STRINGS)


@pytest.fixture
def loaded_session(session, blang_bytes):
    session.load_blang_bytes(blang_bytes, "english")
    return session


class TestLoading:
    """Test loading tables into a session"""

    def test_load_plaintext(self, session, blang_bytes):
        blang_file = session.load_blang_bytes(blang_bytes, "english")

        assert session.is_loaded
        assert session.language == "english"
        assert len(blang_file) == 3
        assert session.any_modified is False

    def test_load_encrypted(self, settings, blang_bytes):
        decryptor = FakeDecryptor()
        session = BlangSession(decryptor=decryptor, settings=settings)

        blang_file = session.load_blang_bytes(encrypt(blang_bytes, "french"), "french")

        assert decryptor.keys == ["strings/french.blang"]
        assert blang_file.strings[0].text == "Start Game"

    def test_decryption_failure_falls_back_to_plaintext(self, settings, blang_bytes):
        decryptor = FakeDecryptor()
        session = BlangSession(decryptor=decryptor, settings=settings)

        blang_file = session.load_blang_bytes(blang_bytes, "english")

        assert len(decryptor.keys) == 1
        assert len(blang_file) == 3

    def test_undecodable_plaintext_falls_back(self, settings, blang_bytes):
        session = BlangSession(decryptor=lambda data, key: b'\x00\x01', settings=settings)
        assert len(session.load_blang_bytes(blang_bytes)) == 3

    def test_default_language(self, session, blang_bytes):
        session.load_blang_bytes(blang_bytes)
        assert session.language == "new"
        assert session.default_patch_filename == "new.json"

    def test_empty_table_rejected(self, session):
        empty = create_test_blang([])
        with pytest.raises(FormatError, match="no strings"):
            session.load_blang_bytes(empty, "english")
        assert session.is_loaded is False

    def test_garbage_rejected(self, session):
        with pytest.raises(FormatError):
            session.load_blang_bytes(b'\x01\x02\x03')

    def test_load_file_uses_stem_as_language(self, session, blang_bytes, tmp_path):
        path = tmp_path / "german.blang"
        path.write_bytes(blang_bytes)

        session.load_blang_file(path)
        assert session.language == "german"
        assert session.default_patch_filename == "german.json"

    def test_load_missing_file(self, session, tmp_path):
        with pytest.raises(FileNotFoundError):
            session.load_blang_file(tmp_path / "missing.blang")


class TestResources:
    """Test loading tables from a .resources container"""

    @pytest.fixture
    def resources_path(self, blang_bytes, tmp_path):
        path = tmp_path / "gameresources.resources"
        path.write_bytes(create_test_resources([
            ("strings/english.blang", blang_bytes),
            ("strings/italian.blang", create_test_blang([("#str_menu_start", "Inizia")])),
            ("generated/other.decl", b"decl"),
        ]))
        return path

    def test_open_and_load(self, session, resources_path):
        names = session.open_resources(resources_path)

        assert names == ["english.blang", "italian.blang"]
        blang_file = session.load_from_resources("italian.blang")
        assert session.language == "italian"
        assert blang_file.strings[0].text == "Inizia"

    def test_unknown_name(self, session, resources_path):
        session.open_resources(resources_path)
        with pytest.raises(NotFoundError):
            session.load_from_resources("klingon.blang")

    def test_load_before_open(self, session):
        with pytest.raises(NotFoundError):
            session.load_from_resources("english.blang")


class TestNewTable:
    """Test new tables and placeholder strings"""

    def test_new_table_placeholder(self, session):
        blang_file = session.new_blang()

        assert [s.identifier for s in blang_file] == ["#new_string_0"]
        assert session.language == "new"
        assert session.any_modified is False

    def test_placeholder_counter_increases(self, session):
        session.new_blang()
        added = session.add_string()

        assert added.identifier == "#new_string_1"
        assert added.text == ""
        assert session.unsaved_changes is True
        assert len(session.blang_file) == 2

    def test_patch_replaces_placeholder(self, session):
        session.new_blang()
        result = session.apply_patch(BlangJson(strings=[
            BlangJsonString(name="#str_a", text="A"),
            BlangJsonString(name="#str_b", text="B"),
        ]))

        assert [s.identifier for s in session.blang_file] == ["#str_a", "#str_b"]
        assert result.added == 2

    def test_patch_onto_placeholder_keeps_it_when_targeted(self, session):
        session.new_blang()
        session.apply_patch(BlangJson(strings=[BlangJsonString(name="#new_string_0", text="Filled")]))

        assert [s.identifier for s in session.blang_file] == ["#new_string_0"]
        assert session.blang_file.strings[0].modified is True

    def test_loaded_single_string_table_is_not_a_placeholder(self, session):
        session.load_blang_bytes(create_test_blang([("#str_only", "")]), "english")
        session.apply_patch(BlangJson(strings=[BlangJsonString(name="#str_new", text="New")]))

        assert [s.identifier for s in session.blang_file] == ["#str_only", "#str_new"]


class TestEditing:
    """Test direct edits and filtering"""

    def test_edit_text(self, loaded_session):
        edited = loaded_session.edit_string(1, text="Settings")

        assert edited.text == "Settings"
        assert edited.modified is True
        assert loaded_session.any_modified is True
        assert loaded_session.unsaved_changes is True

    def test_edit_back_to_original(self, loaded_session):
        loaded_session.edit_string(1, text="Settings")
        edited = loaded_session.edit_string(1, text="Options")
        assert edited.modified is False

    def test_edit_identifier(self, loaded_session):
        edited = loaded_session.edit_string(0, identifier="#str_menu_begin")
        assert edited.modified is True
        assert edited.original_identifier == "#str_menu_start"

    @pytest.mark.parametrize("index", [-1, 3, 100])
    def test_edit_bad_index(self, loaded_session, index):
        with pytest.raises(NotFoundError):
            loaded_session.edit_string(index, text="x")

    def test_filter(self, loaded_session):
        assert [s.identifier for s in loaded_session.filter_strings("quit")] == ["#str_menu_quit"]
        assert [s.identifier for s in loaded_session.filter_strings("Options")] == ["#str_menu_options"]
        assert len(loaded_session.filter_strings("")) == 3
        assert loaded_session.filter_strings("nothing like this") == []

    def test_nothing_loaded(self, session):
        with pytest.raises(RuntimeError):
            session.filter_strings()
        with pytest.raises(RuntimeError):
            session.add_string()


class TestPatchesAndSaving:
    """Test patch import/export and saving"""

    def test_load_patch_text(self, loaded_session):
        result = loaded_session.load_patch('{"strings": [{"name": "#str_menu_quit", "text": "Exit",},]}')

        assert result.updated == 1
        assert loaded_session.blang_file.strings[2].text == "Exit"

    def test_load_patch_file(self, loaded_session, tmp_path):
        path = tmp_path / "english.json"
        path.write_text('{"strings": [{"name": "#str_x", "text": "X"}]}', encoding='utf-8')

        result = loaded_session.load_patch_file(path)
        assert result.added == 1

    def test_invalid_patch_leaves_table_alone(self, loaded_session):
        with pytest.raises(FormatError):
            loaded_session.load_patch('{"nope": []}')
        assert loaded_session.any_modified is False

    def test_save_patch_nothing_modified(self, loaded_session, tmp_path):
        path = tmp_path / "english.json"

        assert loaded_session.save_patch(path) is False
        assert not path.exists()

    def test_save_patch(self, loaded_session, tmp_path):
        loaded_session.edit_string(0, text="Begin")
        path = tmp_path / loaded_session.default_patch_filename

        assert loaded_session.save_patch(path) is True
        assert loaded_session.unsaved_changes is False

        other = BlangSession(settings=BlangSettings())
        other.load_blang_bytes(create_test_blang(SAMPLE_STRINGS), "english")
        other.load_patch_file(path)
        assert other.blang_file.strings[0].text == "Begin"

    def test_save_blang(self, loaded_session, tmp_path):
        loaded_session.edit_string(2, text="Exit")
        path = tmp_path / "english.blang"
        loaded_session.save_blang(path)

        reread = BlangParser().read(str(path))
        assert [s.text for s in reread] == ["Start Game", "Options", "Exit"]
        assert loaded_session.unsaved_changes is False

    def test_close(self, loaded_session):
        loaded_session.close()
        assert loaded_session.is_loaded is False
        assert loaded_session.resources == {}
