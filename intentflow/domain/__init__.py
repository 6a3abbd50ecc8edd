"""
Domain layer package.

Contains pure business logic: entities, value objects, domain services,
and port interfaces. This layer has ZERO external dependencies.
No framework imports, no network IO.
"""
