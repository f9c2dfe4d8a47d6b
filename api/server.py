"""HTTP surface over the source pipelines.

Every route computes a fresh RankedResult and returns its envelope.
Upstream or database failures answer 500 with ``{"error", "details"}``;
an empty result is a normal 200 with an empty list.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Annotated, Any, Callable, Dict, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from agents.clob_whale_agent import ClobWhaleAgent
from agents.market_panel_agent import MarketPanelAgent, parse_panel_mode
from agents.stored_trades_agent import StoredTradesAgent
from config import load_config
from pipeline.errors import PersistenceFailure, SourceError
from pipeline.sink import error_envelope, to_envelope, write_artifact

logger = logging.getLogger(__name__)

ContextFactory = Callable[[], Dict[str, Any]]


@lru_cache(maxsize=1)
def _default_context() -> Dict[str, Any]:
    """Built on first request so importing the app has no side effects."""
    from run_agent import build_context

    return build_context(load_config())


def get_context(request: Request) -> Dict[str, Any]:
    return request.app.state.context_factory()


def _failure(error: str, exc: Exception) -> JSONResponse:
    logger.error("%s: %s", error, exc)
    return JSONResponse(status_code=500, content=error_envelope(error, str(exc)))


def create_app(context_factory: Optional[ContextFactory] = None) -> FastAPI:
    app = FastAPI(title="Whale Watch API", version="0.1.0")
    app.state.context_factory = context_factory or _default_context

    @app.get("/healthz", tags=["system"])
    def healthcheck() -> Dict[str, str]:
        """Basic readiness probe."""
        return {"status": "ok"}

    @app.get("/api/whale-trades", tags=["trades"])
    def whale_trades(context: Dict[str, Any] = Depends(get_context)):
        try:
            result = ClobWhaleAgent().compute(context)
        except SourceError as exc:
            return _failure("Failed to fetch whale trades", exc)
        return to_envelope(result)

    @app.get("/api/top-markets", tags=["markets"])
    def top_markets(
        context: Dict[str, Any] = Depends(get_context),
        filter: Annotated[
            Optional[str],
            Query(description="volume, competitive or volatile"),
        ] = None,
        min_volume: Annotated[
            Optional[int],
            Query(alias="minVolume", ge=0, description="24h volume floor in USD"),
        ] = None,
    ):
        mode = parse_panel_mode(filter)
        try:
            result = MarketPanelAgent().build(
                context, mode=mode,
                min_volume=float(min_volume) if min_volume is not None else None,
            )
        except SourceError as exc:
            return _failure("Database error", exc)
        return to_envelope(result)

    @app.get("/api/stored-trades", tags=["trades"])
    def stored_trades(context: Dict[str, Any] = Depends(get_context)):
        agent = StoredTradesAgent()
        try:
            result = agent.compute(context)
        except SourceError as exc:
            return _failure("Failed to fetch trades from database", exc)

        envelope = to_envelope(result)
        try:
            write_artifact(agent.artifact_path(context), envelope)
        except PersistenceFailure as exc:
            # The caller still gets the fresh result.
            logger.warning("Could not write public trades artifact: %s", exc)
        return envelope

    return app


app = create_app()


def main() -> None:
    import uvicorn

    config = load_config()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run("api.server:app", host=config.api.host, port=config.api.port,
                log_level="info")


if __name__ == "__main__":
    main()
