from fastapi import APIRouter

from app.api.v1.endpoints import agents, auth, dashboard, follow_ups, health, leads

router = APIRouter(prefix="/api/v1")

router.include_router(auth.router)
router.include_router(leads.router)
router.include_router(agents.router)
router.include_router(dashboard.router)
router.include_router(follow_ups.router)
router.include_router(health.router)
