"""
LiquidGuard - Liquidation and Range-Rebalance Hook Engine

A decision engine that sits between a liquidity pool's trade-execution path
and a set of external lending protocols.

Main Components:
- Health evaluation across heterogeneous lending protocols
- Liquidation dispatch through protocol-specific interfaces
- Bounded tick history and volatility estimation
- Tick-range optimization and position rebalancing
"""

__version__ = "0.1.0"
__author__ = "LiquidGuard Development Team"

__all__ = []
