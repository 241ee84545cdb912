from fastapi import APIRouter

from leave_ledger.api.accruals import accruals_router
from leave_ledger.api.balances import employee_balance_router
from leave_ledger.api.leave import employee_leave_router, leave_minutes_router

api_router = APIRouter()
api_router.include_router(employee_balance_router)
api_router.include_router(employee_leave_router)
api_router.include_router(leave_minutes_router)
api_router.include_router(accruals_router)
