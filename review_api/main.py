import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from review_api.api import deps
from review_api.api.v1.api import api_router
from review_api.core.config import settings
from review_api.schemas.schemas import HealthResponse

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    store_factory = app.dependency_overrides.get(
        deps.get_annotation_store, deps.get_annotation_store
    )
    store = store_factory()
    logger.info(
        f"Serving videos from {settings.VIDEO_DIR} "
        f"with {type(store).__name__} ({settings.STORAGE_BACKEND})"
    )
    yield


app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="Browse a folder of videos and annotate frame ranges",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_errors(exc)
    logger.warning(f"Rejected {request.method} {request.url.path}: {errors}")
    return JSONResponse(status_code=422, content={"detail": errors})


def jsonable_errors(exc: RequestValidationError):
    # ctx may carry the raw exception object from model validators
    errors = []
    for err in exc.errors():
        err = dict(err)
        if "ctx" in err:
            err["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(err)
    return errors


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} API", "version": "1.0.0"}


@app.get("/health", response_model=HealthResponse)
async def health_check():
    return HealthResponse(
        status="healthy",
        timestamp=time.time(),
        storage_backend=settings.STORAGE_BACKEND,
        video_dir=settings.VIDEO_DIR,
    )


app.include_router(api_router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
