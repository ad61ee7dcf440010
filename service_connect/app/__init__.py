"""
Connect service package: the performance and resilience layer in front of
the CenterPoint Connect REST API.

Structure:
- app.pipeline: Request pipeline wiring every component for one process.
- app.caching: Response cache and secure token cache.
- app.batching: Time-windowed request batcher.
- app.ratelimit: Fixed-window auth attempt limiter.
- app.health: Request/auth/cache counters and the health verdict.
- app.auth: Bearer token resolution.
- app.adapters: httpx dispatch capability.
- app.main: FastAPI health and metrics surface.
- app.cli: Operational commands.
"""
