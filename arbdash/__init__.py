"""
Polymarket Arbitrage Dashboard

Simulated YES/NO arbitrage monitor for Polymarket-style binary markets.

Entry point: python -m arbdash.main
   - Scans a market feed every 2 seconds
   - Flags markets whose YES+NO prices sum below the threshold
   - Simulates fills, settlements and running profit
   - Serves the dashboard state over a FastAPI server

Key Modules:
- arbdash.bot: Run state machine and scan loop
- arbdash.state: Immutable application state and its reducer
- arbdash.arbitrage: Opportunity detection
- arbdash.execution: Simulated fills
- arbdash.feeds: Market data and settlement sources
- arbdash.storage: Best-effort persistence sinks
- arbdash.clients: Polymarket API, market websocket and wallet clients
- arbdash.api: FastAPI server for the dashboard
"""
