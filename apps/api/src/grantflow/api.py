from fastapi import APIRouter

from grantflow.modules.auth.router import router as auth_router
from grantflow.modules.fund_applications.router import router as fund_applications_router
from grantflow.modules.funds.router import router as funds_router
from grantflow.modules.projects.router import router as projects_router
from grantflow.modules.users.router import router as users_router
from grantflow.modules.validations.router import router as validations_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(users_router, prefix="/users", tags=["Users"])

api_router.include_router(validations_router, prefix="/validations", tags=["Validations"])

api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])

api_router.include_router(funds_router, prefix="/funds", tags=["Funds"])

api_router.include_router(
    fund_applications_router, prefix="/fund-applications", tags=["Fund Applications"]
)
