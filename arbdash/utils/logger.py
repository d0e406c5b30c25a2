"""
Structured logging for the arbitrage dashboard.
Supports JSON logging for log aggregation.
"""

import logging
import sys
from typing import Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['timestamp'] = self.formatTime(record, self.datefmt)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True,
    logger_name: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging configuration.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Whether to emit one JSON object per line
        logger_name: Optional specific logger name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name or "arbdash")
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers
    logger.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        formatter = CustomJsonFormatter(
            '%(timestamp)s %(level)s %(name)s %(message)s'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger with the given name."""
    return logging.getLogger(f"arbdash.{name}")


class TradeLogger:
    """Specialized logger for simulated trade events."""

    def __init__(self):
        self.logger = get_logger("trades")

    def opportunity_detected(
        self,
        opportunity_id: str,
        market_id: str,
        total_cost: float,
        potential_profit: float
    ):
        """Log when an arbitrage opportunity is detected."""
        self.logger.info(
            "Arbitrage opportunity detected",
            extra={
                "event": "opportunity_detected",
                "opportunity_id": opportunity_id,
                "market_id": market_id,
                "total_cost": total_cost,
                "potential_profit": potential_profit
            }
        )

    def trade_executed(
        self,
        opportunity_id: str,
        market_id: str,
        profit: float,
        latency_ms: float
    ):
        """Log when a simulated fill completes."""
        self.logger.info(
            "Simulated trade executed",
            extra={
                "event": "trade_executed",
                "opportunity_id": opportunity_id,
                "market_id": market_id,
                "profit_usd": profit,
                "latency_ms": latency_ms
            }
        )

    def trade_cancelled(self, opportunity_id: str, market_id: str):
        """Log when a pending simulated fill is cancelled."""
        self.logger.info(
            "Simulated trade cancelled",
            extra={
                "event": "trade_cancelled",
                "opportunity_id": opportunity_id,
                "market_id": market_id
            }
        )

    def settlement_claimed(self, amount: float):
        """Log a simulated settlement payout."""
        self.logger.info(
            "Settlement claimed",
            extra={
                "event": "settlement_claimed",
                "amount_usd": amount
            }
        )

    def persistence_failed(self, table: str, error: str):
        """Log a dropped write to the persistence sink."""
        self.logger.error(
            "Persistence write failed",
            extra={
                "event": "persistence_failed",
                "table": table,
                "error": error
            }
        )
