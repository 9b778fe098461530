import pytest

from teensycache.device import DeviceClient, LocalStorageDevice
from teensycache.models import FileType


def create_device(tmp_path):
    (tmp_path / "games" / "crt").mkdir(parents=True)
    (tmp_path / "games" / "B.crt").write_bytes(b"bb")
    (tmp_path / "games" / "A.crt").write_bytes(b"a")
    (tmp_path / "games" / "crt" / "C.crt").write_bytes(b"ccc")
    (tmp_path / "music").mkdir()
    (tmp_path / "music" / "song.sid").write_bytes(b"sid")

    return LocalStorageDevice(str(tmp_path))


def test_device_client_is_abstract():
    with pytest.raises(TypeError):
        DeviceClient()


def test_fetch_directory(tmp_path):
    device = create_device(tmp_path)

    content = device.fetch_directory("/games")

    assert content.path == "/games/"
    assert [f.name for f in content.files] == ["A.crt", "B.crt"]
    assert [f.path for f in content.files] == ["/games/A.crt", "/games/B.crt"]
    assert [f.size for f in content.files] == [1, 2]
    assert content.files[0].file_type == FileType.CRT
    assert [d.path for d in content.directories] == ["/games/crt/"]


def test_fetch_root(tmp_path):
    device = create_device(tmp_path)

    content = device.fetch_directory("/")

    assert content.path == "/"
    assert [d.path for d in content.directories] == ["/games/", "/music/"]
    assert content.files == []


def test_fetch_missing_directory(tmp_path):
    device = create_device(tmp_path)

    assert device.fetch_directory("/nonexistent/") is None
    assert device.fetch_directory("/games/A.crt/") is None


def test_fetch_directory_recursive(tmp_path):
    device = create_device(tmp_path)

    contents = list(device.fetch_directory_recursive("/"))

    assert [c.path for c in contents] == ["/", "/games/", "/games/crt/", "/music/"]
    assert [f.path for f in contents[2].files] == ["/games/crt/C.crt"]


def test_fetch_directory_recursive_subtree(tmp_path):
    device = create_device(tmp_path)

    contents = list(device.fetch_directory_recursive("/games/"))

    assert [c.path for c in contents] == ["/games/", "/games/crt/"]


def test_copy_file(tmp_path):
    device = create_device(tmp_path)

    assert device.copy_file("/music/song.sid", "/favorites/music/song.sid")
    assert (tmp_path / "favorites" / "music" / "song.sid").read_bytes() == b"sid"


def test_copy_missing_file(tmp_path):
    device = create_device(tmp_path)

    assert not device.copy_file("/music/missing.sid", "/favorites/music/missing.sid")


def test_delete_file(tmp_path):
    device = create_device(tmp_path)

    assert device.delete_file("/games/A.crt")
    assert not (tmp_path / "games" / "A.crt").exists()
    assert not device.delete_file("/games/A.crt")


def test_device_id(tmp_path):
    (tmp_path / "a").mkdir()
    (tmp_path / "b").mkdir()

    a = LocalStorageDevice(str(tmp_path / "a"))

    assert a.device_id == LocalStorageDevice(str(tmp_path / "a")).device_id
    assert a.device_id != LocalStorageDevice(str(tmp_path / "b")).device_id
    assert len(a.device_id) == 32
