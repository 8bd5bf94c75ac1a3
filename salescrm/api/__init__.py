"""
API package for the Sales CRM reporting backend.

Router modules:
- reports: analysis, summary tables, overview
- customers: caller-visible customer list
- users: supervisor reassignment
"""

from fastapi import APIRouter

from salescrm.api.reports import router as reports_router
from salescrm.api.customers import router as customers_router
from salescrm.api.users import router as users_router

api_router = APIRouter()

api_router.include_router(reports_router, tags=["reports"])
api_router.include_router(customers_router, tags=["customers"])
api_router.include_router(users_router, tags=["users"])

__all__ = [
    "api_router",
    "reports_router",
    "customers_router",
    "users_router",
]
