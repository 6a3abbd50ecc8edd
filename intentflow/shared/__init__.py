"""
Shared module package.

Cross-cutting concerns of the HTTP host:
- Error handling and mapping
- Security middleware
- Rate limiting
- Logging configuration
"""
