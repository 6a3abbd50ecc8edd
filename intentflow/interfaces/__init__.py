"""
Interfaces layer package.

FastAPI routers and Pydantic schemas that expose the command core over
HTTP. This layer only translates; it holds no business logic.
"""
