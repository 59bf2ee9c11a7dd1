"""
PlaniTrad - Translation workload planning

This package contains the PlaniTrad scheduling core:
- schedulers: repartition engine, conflict detector, suggestion engine
- storage: SQLAlchemy models and the planning repository feeding the engines
- platform: Cross-cutting concerns (configuration, logging)
"""

__version__ = "0.1.0"
