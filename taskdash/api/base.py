from fastapi import APIRouter
from taskdash.api import health
from taskdash.features.tasks.api import router as tasks_router

api_router = APIRouter()

# Include all sub-routers
api_router.include_router(health.router)
api_router.include_router(tasks_router)
