"""
API Version 1 Router.

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from modules.backend.api.v1.endpoints import automation, missions, receipts, sbt, share, user

router = APIRouter()

router.include_router(missions.router, prefix="/missions", tags=["missions"])
router.include_router(receipts.router, prefix="/receipts", tags=["receipts"])
router.include_router(sbt.router, prefix="/sbt", tags=["badges"])
router.include_router(user.router, prefix="/user", tags=["user"])
router.include_router(automation.router, prefix="/automation", tags=["automation"])
router.include_router(share.router, prefix="/share", tags=["share"])
