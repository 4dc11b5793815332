from fastapi import APIRouter

from identity.presentation.routers.auth import router as auth_router
from identity.presentation.routers.events import router as events_router
from identity.presentation.routers.oauth2 import router as oauth2_router
from identity.presentation.routes.health import router as health_router

api = APIRouter()

routers = (auth_router, oauth2_router, events_router, health_router)
for router in routers:
    api.include_router(router)
