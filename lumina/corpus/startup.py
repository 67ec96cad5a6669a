from __future__ import annotations

import logging
import os
from pathlib import Path

from lumina.corpus.registry import WordCorpus
from lumina.corpus.singleton import init_corpus

logger = logging.getLogger(__name__)

# lumina/corpus/startup.py -> repo root, which holds corpus/*.csv
DEFAULT_ROOT = Path(__file__).resolve().parents[2]


def corpus_root() -> Path:
    """Directory containing `corpus/`; LUMINA_CORPUS_ROOT overrides the repo root."""

    override = os.environ.get("LUMINA_CORPUS_ROOT", "").strip()
    return Path(override).expanduser() if override else DEFAULT_ROOT


def init_corpus_for_app() -> WordCorpus:
    corpus = init_corpus(project_root=corpus_root())
    for language in corpus.languages():
        lengths = sorted(length for lang, length in corpus.groups if lang == language)
        logger.info("Corpus %s: word lengths %s", language, lengths)
    return corpus
