from __future__ import annotations

from lumina.config import settings_from_env
from lumina.corpus.singleton import get_corpus
from lumina.infra.redis_client import create_redis
from lumina.registry import SessionRegistry
from lumina.supply.suppliers import create_default_supplier

_REGISTRY: SessionRegistry | None = None


def get_registry() -> SessionRegistry:
    """Process-wide session registry, built on first use."""

    global _REGISTRY
    if _REGISTRY is None:
        corpus = get_corpus()
        _REGISTRY = SessionRegistry(
            corpus=corpus,
            supplier=create_default_supplier(corpus=corpus),
            r=create_redis(),
            settings=settings_from_env(),
        )
    return _REGISTRY


def reset_registry_for_tests() -> None:
    global _REGISTRY
    _REGISTRY = None
