from fastapi import APIRouter

from src.sitehost.api.v1 import admin, auth, sites, users

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(sites.router)
api_router.include_router(users.router)
api_router.include_router(admin.router)
