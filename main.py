import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from config import settings
from api.v1.router import api_router
from core.errors import NotFoundError, PersistenceError, ValidationError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Onboarding Baseline API", version="1.0.0")

# CORS (public demo only – lock down in prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


# ───────── core errors ➜ HTTP ────────────────────────────────────────
@app.exception_handler(ValidationError)
async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={"detail": f"User {exc}. Please complete onboarding first."},
    )


@app.exception_handler(PersistenceError)
async def _persistence_error(_: Request, exc: PersistenceError) -> JSONResponse:
    return JSONResponse(status_code=500, content={"detail": "Failed to save onboarding"})


@app.get("/health", tags=["meta"])
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.env_name}
