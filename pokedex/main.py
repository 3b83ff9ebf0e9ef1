"""
Pokedex - Main FastAPI Application
Thin HTTP surface over the Pokemon list loader: state, search, fetch/cancel
and single-Pokemon details.
"""
import logging
import threading
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse

from config.settings import settings
from pokedex.cache import CacheStore, strategy_from_settings
from pokedex.db import create_cache_engine, create_session_factory, init_db
from pokedex.list_loader import LoadPhase, PokemonListLoader
from pokedex.network import (
    NetworkError,
    RequestCancelledError,
    create_network_client,
    describe_error,
)
from pokedex.view_models import PokemonDetailPayload, pokemon_to_cards

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger("pokedex.main")

APP_VERSION = "v0.1.0"
APP_NAME = "Pokedex"

_loader: Optional[PokemonListLoader] = None
_loader_lock = threading.Lock()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown: stop the worker and cancel whatever is still in flight
    if _loader is not None:
        _loader.close()


app = FastAPI(
    title=APP_NAME,
    description="Gen 1 Pokemon list backed by PokeAPI with a 15 minute local cache",
    version=APP_VERSION,
    lifespan=lifespan,
)


def build_loader() -> PokemonListLoader:
    """Wire engine -> store -> client -> loader from settings."""
    engine = create_cache_engine(settings.cache_database_url)
    init_db(engine)
    store = CacheStore(
        create_session_factory(engine),
        ttl=timedelta(minutes=settings.cache_ttl_minutes),
    )
    return PokemonListLoader(
        cache_store=store,
        network_client=create_network_client(settings),
        cache_strategy=strategy_from_settings(settings),
        expected_total=settings.collection_limit,
        debounce_seconds=settings.search_debounce_ms / 1000,
        keep_stale_on_error=settings.keep_stale_on_error,
    )


def get_loader() -> PokemonListLoader:
    """Lazily created loader shared by all requests."""
    global _loader
    with _loader_lock:
        if _loader is None:
            _loader = build_loader()
        return _loader


def get_store(loader: PokemonListLoader = Depends(get_loader)) -> CacheStore:
    return loader.cache_store


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok", "source": "pokeapi", "network": settings.network_environment}


@app.get("/pokemon")
def list_pokemon(loader: PokemonListLoader = Depends(get_loader)):
    """Current list state plus the (search-filtered) Pokemon cards."""
    state = loader.state
    return {
        "state": state.to_dict(),
        "search": loader.search_text,
        "notice": loader.last_error_message if state.phase is LoadPhase.LOADED else None,
        "pokemon": pokemon_to_cards(loader.filtered_items),
    }


@app.post("/pokemon/fetch", status_code=202)
def fetch_pokemon(loader: PokemonListLoader = Depends(get_loader)):
    """Start a network fetch in the background (no-op while one is running)."""
    accepted = loader.request_fetch()
    return {"accepted": accepted, "state": loader.state.to_dict()}


@app.post("/pokemon/load", status_code=202)
def load_pokemon(loader: PokemonListLoader = Depends(get_loader)):
    """Start a cache-preferring load in the background."""
    accepted = loader.request_load()
    return {"accepted": accepted, "state": loader.state.to_dict()}


@app.post("/pokemon/cancel")
def cancel_pokemon(loader: PokemonListLoader = Depends(get_loader)):
    """Cancel the running load and all in-flight requests."""
    loader.cancel_all_requests()
    return {"state": loader.state.to_dict()}


@app.put("/pokemon/search")
def search_pokemon(
    q: str = Query("", max_length=50),
    loader: PokemonListLoader = Depends(get_loader),
):
    """Update the search text; the filtered list follows after the debounce window."""
    loader.search_text = q
    return {"search": q}


@app.get("/pokemon/{pokemon_id}")
def pokemon_detail(pokemon_id: int, loader: PokemonListLoader = Depends(get_loader)):
    """Full detail payload for one Pokemon, fetched independently of the list."""
    try:
        pokemon = loader.fetch_item_details(pokemon_id)
    except RequestCancelledError:
        raise HTTPException(status_code=499, detail="Request was cancelled")
    except NetworkError as e:
        logger.warning(f"Detail fetch failed for #{pokemon_id}: {e.user_message}")
        return JSONResponse(status_code=502, content={"detail": e.user_message})
    except Exception as e:
        return JSONResponse(status_code=502, content={"detail": describe_error(e)})
    return PokemonDetailPayload.from_pokemon(pokemon).to_dict()


@app.get("/cache/stats")
def cache_stats(store: CacheStore = Depends(get_store)):
    """Get cache statistics."""
    return store.get_stats()
