"""
Web chat settings service package.

The service fronts workgroup image and settings lookups for the web chat
pages, serving them from an in-process cache that is populated from the
remote workgroup service and invalidated by workgroup change events.

Structure:
- app.main: FastAPI app, routes, and startup wiring.
- app.domain: Workgroup addresses and settings bundles.
- app.adapters: Workgroup service client and static asset access.
- app.caching: Cache-aside settings cache.
- app.images: Image resolution with blank-image fallback.
- app.notifications: Change channels and the Kafka change consumer.
"""
