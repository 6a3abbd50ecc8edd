"""
Infrastructure layer package.

Concrete implementations (adapters) of the ports defined in the domain
layer: market data, wallet session, notifications, execution and time.
"""
