from fastapi import APIRouter

from leave_ledger.api.accruals import accrual_trigger_router
from leave_ledger.api.balances import (
    employee_balance_router,
    employee_transaction_router,
    organization_balance_router,
)
from leave_ledger.api.comp_off import comp_off_router
from leave_ledger.api.policies import router as policies_router
from leave_ledger.api.requests import requests_router

api_router = APIRouter()
api_router.include_router(policies_router)
api_router.include_router(organization_balance_router)
api_router.include_router(employee_balance_router)
api_router.include_router(employee_transaction_router)
api_router.include_router(requests_router)
api_router.include_router(comp_off_router)
api_router.include_router(accrual_trigger_router)
