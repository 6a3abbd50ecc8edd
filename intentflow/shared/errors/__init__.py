"""
Shared error handling package.

Maps command domain errors to HTTP responses in one place.
"""
