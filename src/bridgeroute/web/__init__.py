"""Web boundary layer.

- contracts/: pydantic request and response models
- services/: request orchestration (balances, cache, allocation)
- controllers/: FastAPI routers and error handlers
"""

__all__ = [
    "contracts",
    "services",
    "controllers",
]
