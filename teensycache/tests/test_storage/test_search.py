import pytest

from teensycache.config import SearchWeights
from teensycache.models import CacheEntry, FileRecord, FileType
from teensycache.storage.search import parse_query, score, search, SearchClause

STOP_WORDS = ["the", "a", "of"]


def create_entries():
    music = CacheEntry(
        "/music/",
        files=[
            FileRecord.from_path(
                "/music/Aces_High.sid", title="Aces High", creator="Iron Maiden"
            ),
            FileRecord.from_path(
                "/music/Trooper.sid", title="The Trooper", creator="Iron Maiden"
            ),
            FileRecord.from_path(
                "/music/Iron_Man.sid", title="Iron Man", creator="Black Sabbath"
            ),
            FileRecord.from_path(
                "/music/Maiden_Voyage.sid",
                title="Maiden Voyage",
                creator="Herbie Hancock",
            ),
            FileRecord.from_path(
                "/music/High_Hopes.sid", title="High Hopes", creator="Pink Floyd"
            ),
        ],
    )
    games = CacheEntry(
        "/games/",
        files=[
            FileRecord.from_path(
                "/games/Maiden.crt", description="A game about iron", tags=["rpg"]
            ),
            FileRecord.from_path("/games/maiden.hex"),
        ],
    )
    favorites = CacheEntry(
        "/favorites/music/",
        files=[
            FileRecord.from_path(
                "/favorites/music/Aces_High.sid",
                title="Aces High",
                creator="Iron Maiden",
                is_favorite=True,
            )
        ],
    )

    return {e.path: e for e in (music, games, favorites)}


def titles(results):
    return [r.title for r in results]


def test_parse_words():
    assert parse_query("iron maiden aces high") == [
        SearchClause("iron"),
        SearchClause("maiden"),
        SearchClause("aces"),
        SearchClause("high"),
    ]


def test_parse_required_word():
    assert parse_query("+iron maiden aces high") == [
        SearchClause("iron", is_required=True),
        SearchClause("maiden"),
        SearchClause("aces"),
        SearchClause("high"),
    ]


def test_parse_phrases():
    assert parse_query('+"iron maiden" "aces high"') == [
        SearchClause("iron maiden", is_phrase=True, is_required=True),
        SearchClause("aces high", is_phrase=True),
    ]


def test_parse_stop_words():
    clauses = parse_query('the +the "of the" Of trooper', STOP_WORDS)

    assert clauses == [
        SearchClause("the", is_required=True),
        SearchClause("of the", is_phrase=True),
        SearchClause("trooper"),
    ]


@pytest.mark.parametrize("text", ["", "   ", "+", '""', '+""', '"', None])
def test_parse_empty(text):
    assert parse_query(text) == []


def test_parse_stray_quote():
    assert parse_query('iron" maiden') == [
        SearchClause("iron"),
        SearchClause("maiden"),
    ]


def test_score_weights():
    record = FileRecord.from_path(
        "/music/x.sid", title="Iron", creator="Iron", tags=["iron"]
    )

    assert score(record, parse_query("iron"), SearchWeights()) == 5 + 4 + 2
    assert score(record, parse_query("iron"), SearchWeights(title=1, creator=1)) == 4
    assert score(record, parse_query("+bronze iron"), SearchWeights()) == 0


def test_search_required_word():
    results = search(create_entries(), "+iron maiden", stop_words=STOP_WORDS)

    assert set(titles(results)) == {"Aces High", "The Trooper", "Iron Man", "Maiden"}

    for record in results:
        text = " ".join([record.title, record.creator, record.description]).lower()
        assert "iron" in text


def test_search_word_or_phrase():
    results = search(
        create_entries(),
        'maiden "aces high"',
        file_types=["sid"],
        exclude_paths=["/favorites/"],
    )

    assert titles(results) == ["Aces High", "Maiden Voyage", "The Trooper"]


def test_search_required_phrase():
    results = search(
        create_entries(), '+"iron maiden" "aces high"', exclude_paths=["/favorites/"]
    )

    assert titles(results) == ["Aces High", "The Trooper"]


def test_search_stop_word_only():
    entries = create_entries()

    assert search(entries, "the", stop_words=STOP_WORDS) == []
    assert search(entries, "", stop_words=STOP_WORDS) == []


def test_search_case_insensitive():
    results = search(create_entries(), "IRON MAN")

    assert titles(results)[0] == "Iron Man"


def test_search_file_types():
    entries = create_entries()

    assert titles(search(entries, "maiden", file_types=[FileType.CRT])) == ["Maiden"]
    assert "maiden" not in titles(search(entries, "maiden"))
    assert titles(search(entries, "maiden", file_types=["hex"])) == ["maiden"]


def test_search_excludes_paths():
    entries = create_entries()

    everywhere = search(entries, "+aces")
    excluded = search(entries, "+aces", exclude_paths=["/favorites/music/"])

    assert [r.path for r in everywhere] == [
        "/favorites/music/Aces_High.sid",
        "/music/Aces_High.sid",
    ]
    assert [r.path for r in excluded] == ["/music/Aces_High.sid"]


def test_search_tie_break_by_name():
    entries = {
        "/": CacheEntry(
            "/",
            files=[
                FileRecord.from_path("/b.prg", title="x"),
                FileRecord.from_path("/a.prg", title="x"),
            ],
        )
    }

    assert [r.name for r in search(entries, "x")] == ["a.prg", "b.prg"]


def test_search_returns_copies():
    entries = create_entries()

    results = search(entries, "trooper")
    results[0].tags.append("mutated")

    assert entries["/music/"].files[1].tags == []
