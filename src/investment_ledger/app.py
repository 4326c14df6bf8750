from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from investment_ledger.api.routes import investments, suggestions, summary, transfer
from investment_ledger.core import settings
from investment_ledger.integration.alphavantage import EquitySearchProvider
from investment_ledger.integration.base import SuggestionProvider
from investment_ledger.integration.mfapi import MutualFundProvider
from investment_ledger.logger import get_logger, setup_logging
from investment_ledger.services.ledger import LedgerStore
from investment_ledger.services.suggestions import SuggestionCache

logger = get_logger(__name__)


def build_providers(client: httpx.AsyncClient | None = None) -> list[SuggestionProvider]:
    """Instantiate enabled providers in priority order (fund schemes first)."""
    timeout = settings.get_env_float(
        "SUGGESTION_TIMEOUT", settings.DEFAULT_SUGGESTION_TIMEOUT, min_value=0.1
    )
    factories = {
        MutualFundProvider.name: lambda: MutualFundProvider(client=client, timeout=timeout),
        EquitySearchProvider.name: lambda: EquitySearchProvider(client=client, timeout=timeout),
    }
    enabled = settings.get_env_list("SUGGESTION_PROVIDERS", settings.DEFAULT_SUGGESTION_PROVIDERS)
    providers: list[SuggestionProvider] = []
    for name in (MutualFundProvider.name, EquitySearchProvider.name):
        if name not in enabled:
            continue
        provider = factories[name]()
        if provider.configured:
            providers.append(provider)
        else:
            logger.info("[SUGGEST] Provider '%s' enabled but not configured; skipping.", name)
    unknown = sorted(set(enabled) - set(factories))
    if unknown:
        logger.warning("[SUGGEST] Ignoring unknown providers: %s.", ", ".join(unknown))
    return providers


def build_suggestion_cache(client: httpx.AsyncClient | None = None) -> SuggestionCache:
    return SuggestionCache(
        build_providers(client),
        ttl=settings.get_env_float(
            "SUGGESTION_CACHE_TTL", settings.DEFAULT_SUGGESTION_CACHE_TTL, min_value=0.0
        ),
        max_entries=settings.get_env_int(
            "SUGGESTION_CACHE_MAX_ENTRIES", settings.DEFAULT_SUGGESTION_CACHE_MAX_ENTRIES, min_value=0
        ),
        cache_empty_results=settings.get_env_bool("SUGGESTION_CACHE_EMPTY", True),
        rate_limit_ttl=settings.get_env_float(
            "SUGGESTION_RATE_LIMIT_TTL", settings.DEFAULT_SUGGESTION_RATE_LIMIT_TTL, min_value=0.0
        ),
    )


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        store = LedgerStore.from_path(settings.get_ledger_path())
        store.table.ensure()

        http_client = httpx.AsyncClient()
        cache = build_suggestion_cache(http_client)
        if not cache.configured:
            logger.warning("No suggestion provider configured. Security-name lookup will be unavailable.")

        app.state.store = store
        app.state.suggestions = cache

        logger.info("Services initialized (ledger at %s).", store.path)
        yield
        logger.info("Service shutting down.")
        await cache.aclose()
        await http_client.aclose()

    app = FastAPI(title="Investment Ledger", lifespan=lifespan)

    app.include_router(investments.router)
    app.include_router(summary.router)
    app.include_router(transfer.router)
    app.include_router(suggestions.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
