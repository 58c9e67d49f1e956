"""
Core Infrastructure for tta-bot.

This package provides foundational components:
    - config.py: Configuration loading and validation
    - errors.py: Error codes and exception taxonomy
    - logging/: Structured logging with numeric levels
    - metrics.py: Prometheus metrics collection
"""
