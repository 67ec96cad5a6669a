from __future__ import annotations

import csv
import os
import re
from dataclasses import dataclass
from pathlib import Path

from lumina.api.models import WordChallenge

_WORD_RE = re.compile(r"^[^\W\d_]+$")


def _norm_word(s: str) -> str:
    return s.strip().upper()


def _norm_language(s: str) -> str:
    return s.strip().casefold()


@dataclass(frozen=True, slots=True)
class WordCorpus:
    """Look-alike answer groups keyed by (language, word length).

    Each group is a set of same-length words that are easy to confuse; one of them
    becomes the correct answer of a challenge and the others its distractors.
    """

    groups: dict[tuple[str, int], tuple[tuple[str, ...], ...]]

    @staticmethod
    def from_rows(rows: list[tuple[str, int, tuple[str, ...]]]) -> "WordCorpus":
        build: dict[tuple[str, int], list[tuple[str, ...]]] = {}
        for language, length, words in rows:
            if len(set(words)) != len(words):
                raise CorpusLoadError(f"Repeated word in group: {' '.join(words)}")
            for w in words:
                if len(w) != length:
                    raise CorpusLoadError(f"Word '{w}' does not have length {length}")
            build.setdefault((_norm_language(language), length), []).append(words)
        return WordCorpus(groups={k: tuple(v) for k, v in build.items()})

    def by_length(self, word_length: int, language: str) -> tuple[tuple[str, ...], ...]:
        return self.groups.get((_norm_language(language), word_length), ())

    def languages(self) -> tuple[str, ...]:
        return tuple(sorted({lang for lang, _ in self.groups}))


# Used when the corpus has nothing for a supported length, or a group is too small.
FALLBACK_CHALLENGES: dict[tuple[str, int], WordChallenge] = {
    ("en", 5): WordChallenge(correct_answer="TABLE", distractors=("CABLE", "FABLE", "SABLE")),
    ("en", 6): WordChallenge(correct_answer="CENTER", distractors=("CINDER", "CENSOR", "CENTRE")),
    ("en", 7): WordChallenge(correct_answer="QUALITY", distractors=("QUANTUM", "QUARTER", "QUARTET")),
    ("en", 8): WordChallenge(correct_answer="ABSOLUTE", distractors=("OBSOLETE", "OBSTACLE", "OBSTRUCT")),
    ("tr", 5): WordChallenge(correct_answer="KALEM", distractors=("KELAM", "KADEM", "KEREM")),
    ("tr", 6): WordChallenge(correct_answer="MERKEZ", distractors=("MENFEZ", "MERMER", "MERTEK")),
    ("tr", 7): WordChallenge(correct_answer="ŞİKAYET", distractors=("RİVAYET", "SİRAYET", "NİHAYET")),
    ("tr", 8): WordChallenge(correct_answer="BELİRTME", distractors=("BELİRMEK", "BELİRTEÇ", "BELİRSİZ")),
}


def fallback_challenge(word_length: int, language: str) -> WordChallenge | None:
    return FALLBACK_CHALLENGES.get((_norm_language(language), word_length))


class CorpusLoadError(RuntimeError):
    pass


def _read_csv_rows(path: Path) -> list[list[str]]:
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            rows = [[c.strip() for c in row] for row in csv.reader(f)]
    except FileNotFoundError as e:
        raise CorpusLoadError(f"Corpus file not found: {path}") from e
    return [row for row in rows if any(row)]


def load_corpus_csv(path: Path, *, language: str) -> list[tuple[str, int, tuple[str, ...]]]:
    rows = _read_csv_rows(path)
    if not rows:
        raise CorpusLoadError(f"Empty corpus CSV: {path}")

    header = [c.casefold() for c in rows[0]]
    if header[:2] != ["length", "words"]:
        raise CorpusLoadError(f"Unexpected header in {path}: {rows[0]}")

    out: list[tuple[str, int, tuple[str, ...]]] = []
    for row in rows[1:]:
        if len(row) < 2:
            continue
        try:
            length = int(row[0])
        except ValueError as e:
            raise CorpusLoadError(f"Bad length '{row[0]}' in {path}") from e

        words = tuple(_norm_word(w) for w in row[1].split() if w.strip())
        if not words:
            continue
        bad = [w for w in words if not _WORD_RE.match(w)]
        if bad:
            raise CorpusLoadError(f"Non-letter words in {path}: {bad}")
        out.append((language, length, words))

    return out


def _fallback_corpus() -> WordCorpus:
    """One group per supported (language, length), built from the fallback challenges."""

    rows = [(lang, length, ch.all_answers()) for (lang, length), ch in FALLBACK_CHALLENGES.items()]
    return WordCorpus.from_rows(rows)


def load_corpus(*, root: Path) -> WordCorpus:
    corpus_dir = root / "corpus"

    # Missing or broken files fall back to the built-in groups unless
    # LUMINA_STRICT_CORPUS=1 is set.
    strict = os.getenv("LUMINA_STRICT_CORPUS", "").strip().lower() in {"1", "true", "yes"}

    try:
        paths = sorted(corpus_dir.glob("*.csv"))
        if not paths:
            raise CorpusLoadError(f"No corpus CSVs under {corpus_dir}")

        rows: list[tuple[str, int, tuple[str, ...]]] = []
        for path in paths:
            rows.extend(load_corpus_csv(path, language=path.stem))
        return WordCorpus.from_rows(rows)
    except CorpusLoadError:
        if strict:
            raise
        return _fallback_corpus()
