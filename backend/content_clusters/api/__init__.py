"""API layer - FastAPI routers and request dependencies."""
