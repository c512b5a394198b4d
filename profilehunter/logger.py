"""
Structured logging for ProfileHunter.

Console and file output plus per-layer counters, so a batch run can report
how often each resolution layer was tried, how often it hit, and which
error kinds it ran into.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with console and file outputs.
    Tracks resolution metrics per layer.
    """

    def __init__(
        self,
        name: str = "profilehunter",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self.metrics = {
            "emails_processed": 0,
            "emails_resolved": 0,
            "api_credits_used": 0,
            "errors_by_type": {},
            "layer_stats": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"profilehunter_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # file always gets everything
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking

    def _layer(self, layer: str) -> dict:
        stats = self.metrics["layer_stats"]
        if layer not in stats:
            stats[layer] = {"attempts": 0, "hits": 0}
        return stats[layer]

    def record_layer_attempt(self, layer: str):
        self._layer(layer)["attempts"] += 1

    def record_layer_hit(self, layer: str):
        self._layer(layer)["hits"] += 1

    def record_error(self, layer: str, error_type: str):
        """Count an error kind (e.g. Timeout, HTTPError_429) seen by a layer."""
        key = f"{layer}:{error_type}"
        self.metrics["errors_by_type"][key] = self.metrics["errors_by_type"].get(key, 0) + 1

    def record_credit_used(self):
        self.metrics["api_credits_used"] += 1

    def record_email(self, resolved: bool):
        self.metrics["emails_processed"] += 1
        if resolved:
            self.metrics["emails_resolved"] += 1

    def get_metrics(self) -> dict:
        """Return current metrics with per-layer hit rates filled in."""
        metrics_copy = self.metrics.copy()
        for layer, stats in metrics_copy["layer_stats"].items():
            if stats["attempts"] > 0:
                stats["hit_rate"] = round(stats["hits"] / stats["attempts"], 3)
        return metrics_copy

    def log_metrics_summary(self):
        metrics = self.get_metrics()

        processed = metrics["emails_processed"]
        resolved = metrics["emails_resolved"]
        overall_rate = 0
        if processed > 0:
            overall_rate = round(resolved / processed * 100, 1)

        self.info("=== Resolution Session Metrics ===")
        self.info(f"Emails: {resolved}/{processed} resolved ({overall_rate}%)")
        self.info(f"Apollo credits used: {metrics['api_credits_used']}")

        if metrics["layer_stats"]:
            self.info("Layer hit rates:")
            for layer, stats in sorted(metrics["layer_stats"].items()):
                rate = stats.get("hit_rate", 0) * 100
                self.info(f"  {layer}: {stats['hits']}/{stats['attempts']} ({rate:.1f}%)")

        if metrics["errors_by_type"]:
            self.info("Error types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "profilehunter",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
