"""
Free-text search over cached file records.

Queries consist of whitespace separated clauses:

* iron: optional word, matched as a case-insensitive substring
* +iron: required word, every result must match it in at least one field
* "aces high": optional phrase, matched as a whole
* +"iron maiden": required phrase

Optional clauses behave like a relevance-ranked OR, so casual queries still return
results, while required clauses narrow them down. Optional words that are stop words
are dropped, so a query like "the" reduces to nothing and returns no results.

Every clause contributes the weight of each field it is found in to the score of a
file. Files with a zero score are excluded and the rest are sorted by descending
score, then by name.
"""

from dataclasses import dataclass
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from teensycache.config import SearchWeights
from teensycache.models import CacheEntry, FileRecord, resolve_file_types
import teensycache.paths as paths

# Either an optionally required quoted phrase or any other run of non-whitespace
_TOKEN_PATTERN = re.compile(r'(\+?)"([^"]*)"|\S+')


@dataclass(frozen=True)
class SearchClause:
    """Single term or phrase of a search query."""

    text: str
    is_phrase: bool = False
    is_required: bool = False


def parse_query(text: str, stop_words: Iterable[str] = ()) -> List[SearchClause]:
    """
    Parse a search query into its clauses, in the order they appear.

    Stray double quotes are removed from words and empty clauses are dropped, so no
    query is ever malformed: at worst it reduces to no clauses.
    """
    stop_words = {w.lower() for w in stop_words}
    clauses = []

    for match in _TOKEN_PATTERN.finditer(text or ""):
        if match.group(2) is not None:
            phrase = match.group(2).strip()

            if phrase:
                clauses.append(
                    SearchClause(phrase, is_phrase=True, is_required=match.group(1) == "+")
                )

            continue

        token = match.group(0).replace('"', "")
        is_required = token.startswith("+")
        word = token.lstrip("+")

        if not word:
            continue

        if not is_required and word.lower() in stop_words:
            continue

        clauses.append(SearchClause(word, is_required=is_required))

    return clauses


def _fields(record: FileRecord, weights: SearchWeights) -> List[Tuple[str, int]]:
    """Return the searchable text of a record with the weight of each field."""
    return [
        (record.title, weights.title),
        (record.creator, weights.creator),
        (record.name, weights.name),
        (" ".join(record.tags), weights.tags),
        (record.description, weights.description),
        (record.release_info, weights.release_info),
    ]


def _matches(clause: SearchClause, field_text: str) -> bool:
    return clause.text.casefold() in field_text.casefold()


def score(
    record: FileRecord, clauses: Iterable[SearchClause], weights: SearchWeights
) -> int:
    """
    Score a file against the clauses of a query.

    A file that misses any of the required clauses scores zero, otherwise every clause
    adds the weight of each field that it is found in.
    """
    fields = _fields(record, weights)
    total = 0

    for clause in clauses:
        clause_score = sum(w for text, w in fields if text and _matches(clause, text))

        if clause.is_required and clause_score == 0:
            return 0

        total += clause_score

    return total


def search(
    entries: Dict[str, CacheEntry],
    text: str,
    weights: Optional[SearchWeights] = None,
    stop_words: Iterable[str] = (),
    file_types: Iterable[Any] = (),
    exclude_paths: Iterable[str] = (),
) -> List[FileRecord]:
    """
    Search a snapshot of cached entries and return copies of the matching files.

    Only files of the given types are considered (all launchable types if none are
    given) and files located in any of the excluded directories are skipped.
    """
    weights = weights or SearchWeights()
    clauses = parse_query(text, stop_words)

    if not clauses:
        return []

    types = resolve_file_types(file_types)
    exclude_paths = list(exclude_paths)

    results: List[Tuple[int, FileRecord]] = []

    for path, entry in entries.items():
        if any(paths.is_within(path, excluded) for excluded in exclude_paths):
            continue

        for record in entry.files:
            if record.file_type not in types:
                continue

            record_score = score(record, clauses, weights)

            if record_score > 0:
                results.append((record_score, record))

    results.sort(key=lambda r: (-r[0], r[1].name.casefold(), r[1].path))

    return [record.copy() for _, record in results]
