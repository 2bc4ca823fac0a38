import os

import pytest

from webappserver.config import Settings, get_version


def test_version():
    assert get_version() == "1.9.1"


def test_get_int_present_and_default():
    settings = Settings({"port": "8080", "maxThreads": 100})
    assert settings.get_int("port", 1) == 8080
    assert settings.get_int("maxThreads", 1) == 100
    assert settings.get_int("minThreads", 4) == 4


def test_get_int_rejects_garbage():
    settings = Settings({"port": "eighty"})
    with pytest.raises(ValueError):
        settings.get_int("port", 0)


def test_get_str():
    settings = Settings({"encoding": "UTF-8", "raw": b"abc"})
    assert settings.get_str("encoding", "x") == "UTF-8"
    assert settings.get_str("raw") == "abc"
    assert settings.get_str("missing", "fallback") == "fallback"


@pytest.mark.parametrize(
    "value, expected",
    [("false", False), ("FALSE", False), ("0", False), ("", False), ("true", True), ("1", True), ("yes", True)],
)
def test_get_bool(value, expected):
    assert Settings({"verifyPeer": value}).get_bool("verifyPeer", not expected) is expected


def test_get_bool_default():
    assert Settings().get_bool("verifyPeer", True) is True


def test_from_ini_reads_group(tmp_path):
    ini = tmp_path / "app.ini"
    ini.write_text(
        "top=1\n[listener]\nport=8080\n; a comment\nreadTimeout=60000\n[docroot]\npath=../docroot\n",
        encoding="utf-8",
    )
    listener = Settings.from_ini(ini, "listener")
    assert listener.get_int("port", 0) == 8080
    assert listener.get_int("readTimeout", 0) == 60000
    assert listener.get_str("path", "none") == "none"
    general = Settings.from_ini(ini)
    assert general.get_int("top", 0) == 1


def test_from_ini_keys_are_case_sensitive(tmp_path):
    ini = tmp_path / "app.ini"
    ini.write_text("[listener]\nmaxRequestSize=16000\n", encoding="utf-8")
    settings = Settings.from_ini(ini, "listener")
    assert settings.get_int("maxRequestSize", 0) == 16000
    assert settings.get_int("maxrequestsize", -1) == -1


def test_from_ini_missing_group_is_empty(tmp_path):
    ini = tmp_path / "app.ini"
    ini.write_text("[listener]\nport=8080\n", encoding="utf-8")
    settings = Settings.from_ini(ini, "sessions")
    assert settings.get_str("port", "absent") == "absent"


def test_from_ini_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Settings.from_ini(tmp_path / "nothing.ini", "listener")


def test_resolve_path_relative_to_config_file(tmp_path):
    settings = Settings({}, tmp_path / "etc" / "app.ini")
    resolved = settings.resolve_path("ssl/my.key")
    assert resolved == os.path.join(str(tmp_path), "etc", "ssl", "my.key")


def test_resolve_path_absolute_unchanged(tmp_path):
    absolute = str(tmp_path / "file.txt")
    assert Settings({}, tmp_path / "app.ini").resolve_path(absolute) == absolute


def test_resolve_path_without_file_uses_cwd():
    assert Settings().resolve_path("docroot") == os.path.join(os.getcwd(), "docroot")