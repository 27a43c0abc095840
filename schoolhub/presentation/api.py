from fastapi import APIRouter

from schoolhub.presentation.routers.v1.gates import router as gates_router
from schoolhub.presentation.routers.v1.schools import router as schools_router
from schoolhub.presentation.routes.health import router as health_router

api = APIRouter()
api.include_router(health_router)

# Add all v1 routers here
routers = (gates_router, schools_router)
for router in routers:
    api.include_router(router, prefix="/v1")
