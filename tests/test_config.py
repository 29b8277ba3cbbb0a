import configparser

import pytest

from gatesrv.config import ConfigMgr, SectionInfo


INI_TEXT = """\
[GateServer]
Port = 8080

[Redis]
Host = 127.0.0.1
Port = 6380
Passwd = password
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.ini"
    path.write_text(INI_TEXT, encoding="utf-8")
    return path


def test_from_file_reads_values(config_file):
    cfg = ConfigMgr.from_file(config_file)
    assert cfg["GateServer"]["Port"] == "8080"
    assert cfg["Redis"]["Host"] == "127.0.0.1"
    assert cfg["Redis"]["Port"] == "6380"


def test_missing_section_and_key_give_empty_string(config_file):
    cfg = ConfigMgr.from_file(config_file)
    assert cfg["Mysql"]["Host"] == ""
    assert len(cfg["Mysql"]) == 0
    assert cfg["GateServer"]["Nothing"] == ""


def test_keys_are_case_sensitive(config_file):
    cfg = ConfigMgr.from_file(config_file)
    assert cfg["GateServer"]["port"] == ""
    assert "Port" in cfg["GateServer"]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigMgr.from_file(tmp_path / "absent.ini")


def test_key_outside_section_raises(tmp_path):
    path = tmp_path / "bad.ini"
    path.write_text("Port=1\n", encoding="utf-8")
    with pytest.raises(configparser.Error):
        ConfigMgr.from_file(path)


def test_dump_is_sorted():
    cfg = ConfigMgr({"b": {"z": "1", "a": "2"}, "a": {"k": "v"}})
    assert cfg.dump() == "[a]\nk=v\n[b]\na=2\nz=1\n"


def test_dump_round_trips_through_file(config_file, tmp_path):
    cfg = ConfigMgr.from_file(config_file)
    again_path = tmp_path / "again.ini"
    again_path.write_text(cfg.dump(), encoding="utf-8")
    again = ConfigMgr.from_file(again_path)
    assert again.dump() == cfg.dump()
    assert list(again) == ["GateServer", "Redis"]


def test_section_info_items_and_equality():
    section = SectionInfo({"b": "2", "a": "1"})
    assert section.items() == [("a", "1"), ("b", "2")]
    assert section == SectionInfo({"a": "1", "b": "2"})
    assert list(section) == ["a", "b"]