"""
Service API Router.

Unversioned endpoints the Mini App calls directly, one router per
third-party integration.
"""

from fastapi import APIRouter

from modules.backend.api.services import account, carbon, donation, gas, petition, sbt

router = APIRouter()

router.include_router(carbon.router, prefix="/carbon", tags=["carbon"])
router.include_router(donation.router, prefix="/donation", tags=["donation"])
router.include_router(petition.router, prefix="/petition", tags=["petition"])
router.include_router(account.router, prefix="/account", tags=["account"])
router.include_router(sbt.router, prefix="/sbt", tags=["sbt"])
router.include_router(gas.router, prefix="/gas", tags=["gas"])
