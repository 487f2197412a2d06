from fastapi import APIRouter

from absence_coverage.api.backfills import absence_coverage_router, backfills_router, employee_workload_router
from absence_coverage.api.policies import router as policies_router
from absence_coverage.api.pto_requests import employee_pto_router, pto_requests_router
from absence_coverage.api.trainings import employee_training_router, trainings_router

api_router = APIRouter()
api_router.include_router(policies_router)
api_router.include_router(pto_requests_router)
api_router.include_router(employee_pto_router)
api_router.include_router(backfills_router)
api_router.include_router(absence_coverage_router)
api_router.include_router(employee_workload_router)
api_router.include_router(trainings_router)
api_router.include_router(employee_training_router)
