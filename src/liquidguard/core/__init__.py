"""
LiquidGuard Core Module

Core functionality shared by the hook engine:
- Exception hierarchy
- Configuration loading
- Structured logging setup
- Prometheus metrics
"""

__all__ = []
