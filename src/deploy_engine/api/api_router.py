"""API router initialization."""

from fastapi import APIRouter
from loguru import logger

from deploy_engine.api.approvals import router as approvals_router
from deploy_engine.api.deployments import router as deployments_router
from deploy_engine.api.monitoring import router as monitoring_router
from deploy_engine.api.rollbacks import router as rollbacks_router
from deploy_engine.api.snapshots import router as snapshots_router
from deploy_engine.api.tests import router as tests_router

# Create main API router
router = APIRouter()

# Mount API endpoints
router.include_router(deployments_router, tags=["deployments"])
router.include_router(approvals_router, tags=["approvals"])
router.include_router(monitoring_router, tags=["monitoring"])
router.include_router(tests_router, tags=["tests"])
router.include_router(snapshots_router, tags=["snapshots"])
router.include_router(rollbacks_router, tags=["rollbacks"])

logger.debug("API router initialized")
