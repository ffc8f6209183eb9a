"""Word suggestions from frequency dictionaries.

Used to correct misspelled words, typically names, before they are turned
into search terms. A dictionary is a text file with one entry per line,
holding a term and its frequency count separated by ``separator``:

    saurav 5120
    john 90210

``lookup`` returns dictionary terms within the maximum edit distance of the
input, closest first, and more frequent first among equally close terms.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from json_surf.config import Settings, get_settings
from json_surf.errors import StorageError


logger = logging.getLogger(__name__)


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Args:
        s1: First string.
        s2: Second string.
        max_distance: When given, stop early and return ``max_distance + 1``
            once the distance is certain to exceed it.

    Examples:
        >>> levenshtein_distance("surav", "saurav")
        1
        >>> levenshtein_distance("", "abc")
        3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    # Shorter string as columns
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    m, n = len(s1), len(s2)
    if max_distance is not None and n - m > max_distance:
        return max_distance + 1

    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)
    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = j
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(prev_row[i] + 1, curr_row[i - 1] + 1, prev_row[i - 1] + cost)
            row_min = min(row_min, curr_row[i])
        if max_distance is not None and row_min > max_distance:
            return max_distance + 1
        prev_row, curr_row = curr_row, prev_row

    return prev_row[m]


@dataclass(frozen=True)
class FuzzyConfig:
    """Location and column layout of one frequency dictionary.

    Args:
        corpus: Dictionary file
        term_index: Column holding the term (default: 0)
        count_index: Column holding the frequency count (default: 1)
        separator: Column separator (default: a single space)
    """

    corpus: Path
    term_index: int = 0
    count_index: int = 1
    separator: str = " "

    @classmethod
    def from_path(cls, path: str | Path) -> FuzzyConfig:
        return cls(Path(path))

    def load(self) -> dict[str, int]:
        """Read ``term -> count``; malformed lines are skipped."""
        frequencies: dict[str, int] = {}
        try:
            lines = self.corpus.read_text(encoding="utf-8").splitlines()
        except FileNotFoundError:
            logger.warning("Dictionary %s not found, no suggestions loaded from it", self.corpus)
            return frequencies

        for line_number, line in enumerate(lines, start=1):
            columns = line.strip().split(self.separator)
            try:
                term = columns[self.term_index].strip().lower()
                count = int(columns[self.count_index])
            except (IndexError, ValueError):
                logger.debug("Skipping malformed line %d in %s", line_number, self.corpus)
                continue
            if term:
                frequencies[term] = frequencies.get(term, 0) + count
        return frequencies


class FuzzyWord:
    """Single-word spelling suggestions, e.g. for names, cities or countries."""

    def __init__(self, corpus: list[FuzzyConfig] | None = None, max_edit_distance: int = 2) -> None:
        self._corpus = corpus or None
        self.max_edit_distance = max_edit_distance
        self._frequencies: dict[str, int] = {}
        for config in self._corpus or []:
            for term, count in config.load().items():
                self._frequencies[term] = self._frequencies.get(term, 0) + count
        logger.debug("Loaded %d dictionary terms", len(self._frequencies))

    @classmethod
    def from_path(cls, path: str | Path, max_edit_distance: int = 2) -> FuzzyWord:
        """Load one dictionary file, or every file in a directory."""
        location = Path(path)
        if location.is_dir():
            try:
                paths = sorted(p for p in location.iterdir() if p.is_file())
            except OSError as exc:
                raise StorageError("Unable to list dictionary dir", str(exc)) from exc
        else:
            paths = [location]
        return cls([FuzzyConfig(p) for p in paths], max_edit_distance)

    @classmethod
    def default(cls, settings: Settings | None = None) -> FuzzyWord:
        """Suggestions from the configured corpus."""
        settings = settings or get_settings()
        return cls([FuzzyConfig.from_path(settings.fuzzy_corpus)], settings.fuzzy_max_edit_distance)

    @property
    def corpus(self) -> list[FuzzyConfig] | None:
        return self._corpus

    def __len__(self) -> int:
        return len(self._frequencies)

    def lookup(self, word: str, limit: int = 1) -> list[str] | None:
        """Closest dictionary terms to ``word``, or None when nothing is close enough."""
        query = word.strip().lower()
        if not query:
            return None

        candidates: list[tuple[int, int, str]] = []
        for term, count in self._frequencies.items():
            distance = levenshtein_distance(query, term, self.max_edit_distance)
            if distance <= self.max_edit_distance:
                candidates.append((distance, -count, term))

        if not candidates:
            return None
        candidates.sort()
        return [term for _, _, term in candidates[:limit]]

    def correct(self, text: str) -> str:
        """Replace every whitespace separated word by its best suggestion, if any."""
        corrected = []
        for word in text.split():
            suggestions = self.lookup(word)
            corrected.append(suggestions[0] if suggestions else word)
        return " ".join(corrected)
