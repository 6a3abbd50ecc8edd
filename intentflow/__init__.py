"""
IntentFlow: command interpretation and analysis core for a DeFi trading desk.

Application package root. This is a modular monolith using
hexagonal architecture (ports & adapters) with domain-driven design.

Bounded contexts:
    - command: Free-text command classification, multi-stage analysis
      pipeline, aggregation and the execution state machine.

Layers:
    - domain: Pure business logic, entities, ports (ABCs), errors.
    - application: Use cases, DTOs, session orchestration.
    - infrastructure: Adapters (market data, wallet, executor, notifications).
    - interfaces: FastAPI routers, Pydantic schemas.
    - shared: Cross-cutting concerns (errors, security, logging).
"""
