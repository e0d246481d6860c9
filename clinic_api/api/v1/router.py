"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from clinic_api.api.v1 import (
    assessments,
    feedback,
    health,
    notes,
    notices,
    service_requests,
    service_types,
    services,
    test_templates,
)

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Catalogue
api_router.include_router(
    service_types.router,
    prefix="/service-types",
    tags=["service-types"],
)

# Intake
api_router.include_router(
    service_requests.router,
    prefix="/service-requests",
    tags=["service-requests"],
)

# Encounters
api_router.include_router(
    services.router,
    prefix="/services",
    tags=["services"],
)

# Encounter artifacts
api_router.include_router(
    notes.router,
    prefix="/notes",
    tags=["notes"],
)

api_router.include_router(
    notices.router,
    prefix="/notices",
    tags=["notices"],
)

api_router.include_router(
    feedback.router,
    prefix="/feedback",
    tags=["feedback"],
)

# Psychological tests
api_router.include_router(
    test_templates.router,
    prefix="/test-templates",
    tags=["test-templates"],
)

api_router.include_router(
    assessments.router,
    prefix="/tests",
    tags=["tests"],
)
