from fastapi import APIRouter
from testdeck.api.routes import health, users, projects, test_cases, imports, runs, history

api_router = APIRouter()

# Include all route modules
api_router.include_router(health.router)
api_router.include_router(users.auth_router)
api_router.include_router(users.router)
api_router.include_router(projects.router)
api_router.include_router(test_cases.router)
api_router.include_router(imports.router)
api_router.include_router(runs.router)
api_router.include_router(history.router)
