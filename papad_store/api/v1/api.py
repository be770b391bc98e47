"""API v1 router aggregation"""
from fastapi import APIRouter
from papad_store.api.v1.endpoints import auth_endpoints, users_endpoints

api_router = APIRouter()

api_router.include_router(auth_endpoints.router,  prefix="/auth",  tags=["Authentication"])
api_router.include_router(users_endpoints.router, prefix="/users", tags=["Users"])
