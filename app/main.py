from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.invitations import router as invitations_router
from app.api.mailrooms import router as mailrooms_router
from app.api.organizations import router as organizations_router
from app.api.packages import router as packages_router
from app.api.residents import router as residents_router
from app.api.staff import router as staff_router
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.observability import ObservabilityMiddleware

app = FastAPI(title="Mailroom API")

configure_logging()
app.add_middleware(ObservabilityMiddleware)
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(organizations_router)
_include_api_router(mailrooms_router)
_include_api_router(packages_router)
_include_api_router(residents_router)
_include_api_router(invitations_router)
_include_api_router(staff_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
