"""
FastAPI entry point: HTTP API, price WebSocket and the tick loop.

This module is the Composition Root: create_app() builds the relay context
once, wires the use cases to it, and starts the price ticker for the
lifetime of the application.  Clients connect to the WebSocket at ``/``
(or ``/ws``) with ``?token=<token>`` and receive
``{"ticker": ..., "price": "123.45"}`` once per second for each subscribed
ticker.

Run locally:
    uvicorn stock_relay.infrastructure.entrypoints.fastapi_app:app --port 3000
or:
    stock-relay
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, WebSocket
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

load_dotenv()

from stock_relay.application.services.connection_lifecycle import ConnectionState  # noqa: E402
from stock_relay.application.services.relay_context import RelayContext, build_relay_context  # noqa: E402
from stock_relay.application.use_cases.get_price_history import GetPriceHistoryUseCase  # noqa: E402
from stock_relay.application.use_cases.get_recommendations import GetRecommendationsUseCase  # noqa: E402
from stock_relay.application.use_cases.login_user import LoginUserUseCase  # noqa: E402
from stock_relay.application.use_cases.manage_subscription import (  # noqa: E402
    SubscribeTickerUseCase,
    UnsubscribeTickerUseCase,
)
from stock_relay.application.use_cases.register_user import RegisterUserUseCase  # noqa: E402
from stock_relay.domain.errors import (  # noqa: E402
    NotSubscribedError,
    RelayError,
    UnauthorizedError,
    UnknownSymbolError,
    UserAlreadyExistsError,
    UserNotFoundError,
    UserStoreError,
)
from stock_relay.domain.ports.user_store_port import IUserStore  # noqa: E402
from stock_relay.infrastructure.config.settings import Settings  # noqa: E402
from stock_relay.infrastructure.observability.logging_setup import (  # noqa: E402
    configure_logging,
    quiet_third_party,
)
from stock_relay.infrastructure.persistence.json_user_store import JsonUserStore  # noqa: E402
from stock_relay.infrastructure.transport.websocket_connection import WebSocketConnection  # noqa: E402

logger = logging.getLogger(__name__)

_STATUS_CODES: dict[type[RelayError], int] = {
    UnauthorizedError: 401,
    UserNotFoundError: 404,
    NotSubscribedError: 404,
    UserAlreadyExistsError: 409,
    UnknownSymbolError: 400,
    UserStoreError: 503,
}


class EmailRequest(BaseModel):
    email: str


class TickerRequest(BaseModel):
    token: str = ""
    ticker: str = ""


def _failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    status_code = next((code for cls, code in _STATUS_CODES.items() if isinstance(exc, cls)), 400)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _failure(status_code, str(exc))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    return _failure(422, f"Invalid request: {', '.join(fields) or 'body'}.")


def create_app(
    settings: Optional[Settings] = None,
    user_store: Optional[IUserStore] = None,
    context: Optional[RelayContext] = None,
    start_ticker: bool = True,
) -> FastAPI:
    """Build the FastAPI application around a single RelayContext.

    Args:
        settings:     Runtime settings; read from the environment when omitted.
        user_store:   IUserStore implementation; defaults to the JSON file in
                      ``settings.data_dir``.
        context:      Pre-built relay context (tests inject seeded ones).
        start_ticker: Start the 1 s price ticker with the application.
    """
    settings = settings or Settings.from_env()
    if context is None:
        context = build_relay_context(user_store or JsonUserStore(settings.users_file))

    register_uc = RegisterUserUseCase(context.user_store)
    login_uc = LoginUserUseCase(context.user_store)
    subscribe_uc = SubscribeTickerUseCase(context.user_store, context.lifecycle, context.simulator)
    unsubscribe_uc = UnsubscribeTickerUseCase(context.user_store, context.lifecycle)
    history_uc = GetPriceHistoryUseCase(context.simulator)
    recommendations_uc = GetRecommendationsUseCase(context.user_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_ticker:
            context.ticker.start()
        try:
            yield
        finally:
            await context.ticker.stop()

    app = FastAPI(title="Stock Relay", lifespan=lifespan)
    app.state.relay = context
    app.add_exception_handler(RelayError, relay_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # ------------------------------------------------------------------
    # HTTP API
    # ------------------------------------------------------------------

    @app.post("/api/register")
    def register(body: EmailRequest):
        try:
            user = register_uc.execute(body.email)
        except ValueError as exc:
            return _failure(422, str(exc))
        return {
            "success": True,
            "token": user.token,
            "email": user.email,
            "subscribedStocks": user.subscribed_stocks,
            "message": "Registration successful. Logging you in...",
        }

    @app.post("/api/login")
    def login(body: EmailRequest):
        user = login_uc.execute(body.email)
        return {
            "success": True,
            "token": user.token,
            "email": user.email,
            "subscribedStocks": user.subscribed_stocks,
        }

    @app.post("/api/subscribe")
    def subscribe(body: TickerRequest):
        price = subscribe_uc.execute(body.token, body.ticker)
        ticker = body.ticker.strip().upper()
        return {"success": True, "message": f"{ticker} subscribed.", "currentPrice": price}

    @app.post("/api/unsubscribe")
    def unsubscribe(body: TickerRequest):
        unsubscribe_uc.execute(body.token, body.ticker)
        ticker = body.ticker.strip().upper()
        return {"success": True, "message": f"{ticker} unsubscribed."}

    @app.get("/api/history/{ticker}")
    def history(ticker: str):
        try:
            prices = history_uc.execute(ticker)
        except UnknownSymbolError:
            return _failure(404, "Ticker history not found.")
        return {"success": True, "history": prices}

    @app.get("/api/recommendations")
    def recommendations(token: Optional[str] = None):
        recs = recommendations_uc.execute(token)
        return {
            "success": True,
            "recommendations": [
                {"ticker": r.ticker, "signalType": r.signal_type, "reason": r.reason}
                for r in recs
            ],
        }

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "connections": context.lifecycle.active_count,
            "ticks": context.ticker.ticks,
        }

    # ------------------------------------------------------------------
    # Price stream
    # ------------------------------------------------------------------

    async def price_stream(websocket: WebSocket):
        connection = WebSocketConnection(websocket)
        session = await context.lifecycle.open(connection, websocket.query_params.get("token"))
        if session.state is not ConnectionState.ACTIVE:
            return
        try:
            # inbound frames of either kind carry nothing; only the disconnect matters
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            context.lifecycle.close(connection.connection_id)

    app.add_api_websocket_route("/", price_stream)
    app.add_api_websocket_route("/ws", price_stream)

    # ------------------------------------------------------------------
    # Static assets (optional)
    # ------------------------------------------------------------------

    if os.path.isdir(settings.static_dir):
        login_page = os.path.join(settings.static_dir, "login.html")
        if os.path.isfile(login_page):

            @app.get("/", include_in_schema=False)
            def index():
                return FileResponse(login_page)

        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")

    return app


_settings = Settings.from_env()
configure_logging(_settings.log_level, json_logs=_settings.json_logs)
quiet_third_party()
app = create_app(_settings)


def main() -> None:
    import uvicorn

    logger.info("Stock relay listening on %s:%d", _settings.host, _settings.port)
    uvicorn.run(app, host=_settings.host, port=_settings.port, log_level=_settings.log_level.lower())


if __name__ == "__main__":
    main()
