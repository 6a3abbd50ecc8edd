"""
Infrastructure adapters for the command bounded context.

Each adapter implements a domain port (ABC). The market-data, wallet and
executor adapters are simulations; nothing here signs or broadcasts a
transaction.
"""
