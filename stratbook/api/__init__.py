"""FastAPI routers for maps, strategies, versions and images."""
