# FastAPI Routers
from formflow.routers.approvals import router as approvals_router
from formflow.routers.data_sources import router as data_sources_router
from formflow.routers.field_types import router as field_types_router
from formflow.routers.forms import router as forms_router
from formflow.routers.submissions import router as submissions_router

__all__ = [
    "approvals_router",
    "data_sources_router",
    "field_types_router",
    "forms_router",
    "submissions_router",
]
