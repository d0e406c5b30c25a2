"""
FastAPI server for the arbitrage dashboard.
Exposes bot state, the run toggle, the threshold and the wallet.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..bot import ArbitrageBot
from ..config import MAX_ARB_THRESHOLD, MIN_ARB_THRESHOLD
from ..state import AppState
from ..utils.logger import get_logger

logger = get_logger("api")

MAX_LOG_LIMIT = 100


def create_app(bot: ArbitrageBot, load_history: bool = True) -> FastAPI:
    """
    Build the dashboard API around a bot instance.

    Args:
        bot: Controller whose state is served
        load_history: Seed stats from the persistence sink on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if load_history:
            await bot.load_history()
        yield
        await bot.shutdown()

    app = FastAPI(title="Polymarket Arbitrage Dashboard API", lifespan=lifespan)
    app.state.bot = bot

    # Enable CORS for dashboard
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def config_payload() -> dict:
        return {
            "threshold": bot.state.threshold,
            "min_threshold": MIN_ARB_THRESHOLD,
            "max_threshold": MAX_ARB_THRESHOLD,
            "scan_interval_seconds": bot.config.scan_interval_seconds,
            "execution_delay_seconds": bot.config.execution_delay_seconds,
            "position_size_usd": bot.config.position_size_usd,
        }

    @app.get("/")
    async def root():
        """Health check."""
        return {
            "status": "ok",
            "run_state": bot.state.run_state.value,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/api/dashboard")
    async def api_dashboard(limit: Optional[int] = None):
        """Full dashboard state in one call."""
        return JSONResponse(content=bot.state.to_dict(log_limit=limit))

    @app.get("/api/markets")
    async def api_markets():
        """Markets from the latest scan tick."""
        markets = bot.state.to_dict()["markets"]
        return JSONResponse(content={"markets": markets, "count": len(markets)})

    @app.get("/api/logs")
    async def api_logs(limit: int = 50):
        """Activity log, newest first."""
        limit = max(0, min(limit, MAX_LOG_LIMIT))
        logs = [entry.to_dict() for entry in bot.state.log.latest(limit)]
        return JSONResponse(content={"logs": logs, "count": len(logs)})

    @app.get("/api/stats")
    async def api_stats():
        """Running statistics."""
        return JSONResponse(content=bot.state.stats.to_dict())

    @app.post("/api/bot/toggle")
    async def api_toggle():
        """Start or stop the bot."""
        state = bot.toggle()
        return {"run_state": state.run_state.value}

    @app.post("/api/bot/start")
    async def api_start():
        state = bot.start()
        return {"run_state": state.run_state.value}

    @app.post("/api/bot/stop")
    async def api_stop():
        state = bot.stop()
        return {"run_state": state.run_state.value}

    @app.get("/api/config")
    async def api_get_config():
        return config_payload()

    @app.put("/api/config")
    async def api_update_config(config: dict):
        """Update the arbitrage threshold."""
        if "threshold" not in config:
            raise HTTPException(status_code=400, detail="threshold is required")
        try:
            bot.set_threshold(float(config["threshold"]))
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"status": "updated", "config": config_payload()}

    @app.get("/api/wallet")
    async def api_wallet():
        """Connected wallet and network."""
        wallet = bot.state.wallet.to_dict()
        chain = bot.wallet.chain if bot.wallet else None
        wallet["available"] = bool(bot.wallet and bot.wallet.available)
        wallet["chain"] = {"id": chain.id, "name": chain.name} if chain else None
        return wallet

    @app.post("/api/wallet/connect")
    async def api_wallet_connect():
        address = await bot.connect_wallet()
        if not address:
            raise HTTPException(status_code=503, detail=bot.state.log.head.message)
        return bot.state.wallet.to_dict()

    @app.post("/api/wallet/refresh")
    async def api_wallet_refresh():
        """Re-read the connected account's balance."""
        await bot.refresh_wallet()
        return bot.state.wallet.to_dict()

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Push the dashboard state after every change."""
        await websocket.accept()
        updates: asyncio.Queue[AppState] = asyncio.Queue(maxsize=1)

        def on_change(state: AppState) -> None:
            # Only the latest state matters
            if updates.full():
                updates.get_nowait()
            updates.put_nowait(state)

        async def push_updates() -> None:
            while True:
                state = await updates.get()
                await websocket.send_json(state.to_dict())

        unsubscribe = bot.subscribe(on_change)
        logger.info("Dashboard client connected")
        sender: Optional[asyncio.Task] = None

        try:
            await websocket.send_json(bot.state.to_dict())
            sender = asyncio.create_task(push_updates())
            # Reading is what notices a disconnect while nothing is pushed
            while True:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_json({"type": "pong"})
        except WebSocketDisconnect:
            pass
        finally:
            unsubscribe()
            if sender:
                sender.cancel()
                await asyncio.gather(sender, return_exceptions=True)
            logger.info("Dashboard client disconnected")

    return app


def run_server(app: FastAPI, host: str = "0.0.0.0", port: int = 8000):
    """Run the API server."""
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    from ..main import main
    main()
