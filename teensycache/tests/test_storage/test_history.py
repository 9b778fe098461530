from teensycache.models import FileRecord
from teensycache.storage.history import LaunchHistory


def record(path):
    return FileRecord.from_path(path)


def create_history(*paths):
    history = LaunchHistory()

    for path in paths:
        history.add(record(path))

    return history


def test_empty_history():
    history = LaunchHistory()

    assert history.current is None
    assert history.get_previous() is None
    assert history.get_next() is None
    assert not history.current_is_new


def test_add():
    history = create_history("/a.prg", "/b.prg")

    assert history.current.path == "/b.prg"
    assert history.current_is_new
    assert [e.index for e in history.entries] == [0, 1]


def test_previous_next():
    history = create_history("/a.prg", "/b.prg", "/c.prg")

    assert history.get_previous().path == "/b.prg"
    assert not history.current_is_new
    assert history.get_previous().path == "/a.prg"
    assert history.get_previous() is None
    assert history.current.path == "/a.prg"
    assert history.get_next().path == "/b.prg"
    assert history.get_next().path == "/c.prg"
    assert history.get_next() is None


def test_add_truncates_forward_history():
    history = create_history("/a.prg", "/b.prg", "/c.prg")

    history.get_previous()
    history.get_previous()
    history.add(record("/d.prg"))

    assert [e.record.path for e in history.entries] == ["/a.prg", "/d.prg"]
    assert history.current.path == "/d.prg"
    assert history.get_next() is None
    assert history.get_previous().path == "/a.prg"


def test_file_type_filter_skips_entries():
    history = create_history("/a.sid", "/b.crt", "/c.sid", "/d.crt")

    assert history.get_previous(["sid"]).path == "/c.sid"
    assert history.get_previous(["sid"]).path == "/a.sid"
    assert history.get_previous(["sid"]) is None
    assert history.get_next(["crt"]).path == "/b.crt"
    assert history.get_next().path == "/c.sid"
    assert len(history.entries) == 4


def test_remove_current():
    history = create_history("/a.prg", "/b.prg", "/c.prg")
    history.remove(record("/c.prg"))

    assert history.current.path == "/b.prg"
    assert not history.current_is_new
    assert history.get_next() is None


def test_remove_before_cursor():
    history = create_history("/a.prg", "/b.prg", "/c.prg")
    history.remove(record("/a.prg"))

    assert history.current.path == "/c.prg"
    assert history.get_previous().path == "/b.prg"
    assert history.get_previous() is None


def test_remove_first_current():
    history = create_history("/a.prg", "/b.prg")
    history.get_previous()
    history.remove(record("/a.prg"))

    assert history.current is None
    assert history.get_next().path == "/b.prg"


def test_remove_missing():
    history = create_history("/a.prg")
    history.remove(record("/z.prg"))

    assert len(history.entries) == 1


def test_clear():
    history = create_history("/a.prg", "/b.prg")
    history.clear()

    assert history.entries == []
    assert history.current is None
    assert history.get_previous() is None


def test_max_entries():
    history = LaunchHistory(max_entries=2)

    for path in ["/a.prg", "/b.prg", "/c.prg"]:
        history.add(record(path))

    assert [e.record.path for e in history.entries] == ["/b.prg", "/c.prg"]
    assert history.get_previous().path == "/b.prg"
    assert history.get_previous() is None
