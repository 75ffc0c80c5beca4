from __future__ import annotations

from functools import lru_cache

from ..adapters.memory import InMemoryMatchRepository
from ..adapters.supabase import SupabaseMatchRepository
from ..config import setup_logger
from ..ports.matches import MatchRepository
from ..settings import MATCH_PROVIDER, MATCH_SEED_FILE

log = setup_logger(__name__)


@lru_cache(maxsize=1)
def match_repository() -> MatchRepository:
    """
    Return the repository to read matches from, based on settings.MATCH_PROVIDER.
    - 'supabase' -> SupabaseMatchRepository
    - else -> InMemoryMatchRepository, seeded from MATCH_SEED_FILE when set
    """
    if MATCH_PROVIDER == "supabase":
        return SupabaseMatchRepository()
    if MATCH_PROVIDER != "memory":
        log.warning("match_provider_unknown provider=%s fallback=memory", MATCH_PROVIDER)
    if MATCH_SEED_FILE:
        return InMemoryMatchRepository.from_json_file(MATCH_SEED_FILE)
    return InMemoryMatchRepository()
