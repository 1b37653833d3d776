# dashpipe/api/v1/api.py
from fastapi import APIRouter
from dashpipe.api.v1.endpoints import auth, stream, license, status

# Pipeline routes live at the root; introspection sits under /api
api_router = APIRouter()
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(stream.router, tags=["stream"])
api_router.include_router(license.router, tags=["license"])
api_router.include_router(status.router, prefix="/api", tags=["status"])
