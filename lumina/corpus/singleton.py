from __future__ import annotations

from pathlib import Path

from lumina.corpus.registry import WordCorpus, load_corpus


_CORPUS: WordCorpus | None = None


def init_corpus(*, project_root: Path) -> WordCorpus:
    """Load the word corpus once and cache it.

    Safe to call multiple times; subsequent calls return the already loaded instance.
    """

    global _CORPUS
    if _CORPUS is None:
        _CORPUS = load_corpus(root=project_root)
    return _CORPUS


def reset_corpus_for_tests() -> None:
    """Reset the cached corpus singleton.

    This is intended for tests so they can initialize the corpus from fixture directories.
    """

    global _CORPUS
    _CORPUS = None


def get_corpus() -> WordCorpus:
    if _CORPUS is None:
        raise RuntimeError("Corpus not initialized. Call init_corpus() at startup.")
    return _CORPUS
