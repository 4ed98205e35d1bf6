"""
INFERNUM HTTP API

This module exposes an InferenceEngine over HTTP with FastAPI.

ENDPOINTS:
- GET  /           Welcome message
- POST /inference  Load an image, schedule a VisionRequest
- GET  /results    Poll one completed result (non-blocking)
- GET  /health     Engine state and counters

WHAT THIS IS:
- A thin mapping from HTTP to schedule()/try_poll_response()
- Serialization of response envelopes to JSON

WHAT THIS IS NOT:
- A queue (the engine owns ordering)
- A result store (each result is returned exactly once)

CRITICAL CONSTRAINTS:
- Handlers NEVER block on inference
- POST /inference is rejected while the engine is processing
"""

from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import APIRouter, FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from loguru import logger

from ..engine import InferenceEngine
from ..errors import ImageReadError, WorkerUnavailableError
from ..schema import EngineResponse
from ..types import EngineState
from ..vision import VisionRequest, read_image
from .messages import EngineHealth, EngineStatsBody, InferenceRequestBody, InferenceResult

router = APIRouter()


def _engine(request: Request) -> InferenceEngine:
    return request.app.state.engine


def _to_result(response: EngineResponse) -> InferenceResult:
    metadata = response.metadata
    return InferenceResult(
        request_id=response.id,
        prompt=metadata.prompt,
        image_width=metadata.image_size.width,
        image_height=metadata.image_size.height,
        start_time=response.start_timestamp,
        duration=response.human_duration,
        duration_ms=response.duration_ms,
        response=response.result.result,
    )


@router.get("/")
async def root() -> str:
    return "Welcome to Infernum!"


@router.post("/inference")
def post_inference(body: InferenceRequestBody, request: Request) -> JSONResponse:
    """
    Schedule an inference on an image file.

    Returns:
        200 {"status": "scheduled", "request_id": id}
        400 if the engine is busy or the image cannot be read
        503 if the engine worker is gone
    """
    engine = _engine(request)

    if engine.state != EngineState.IDLE:
        logger.debug("Engine is still processing")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Engine is still processing"},
        )

    try:
        image = read_image(body.image_path)
    except ImageReadError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(e)},
        )

    try:
        request_id = engine.schedule(
            VisionRequest(
                prompt=body.prompt,
                image=image,
                sample_len=request.app.state.sample_len,
            )
        )
    except WorkerUnavailableError as e:
        logger.error(f"Failed to schedule inference: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": str(e)},
        )

    logger.info(f"Scheduled inference {request_id} successfully")

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "scheduled", "request_id": request_id},
    )


@router.get("/results")
async def get_result(request: Request) -> JSONResponse:
    """
    Return the next completed result, if any.

    Returns:
        200 {"status": "success", "response": {...}}
        200 {"status": "idle"|"processing", "message": ...} when nothing is ready
        500 {"status": "error", "message": ...} when the run failed
    """
    result = _engine(request).try_poll_response()

    if result.is_success:
        logger.info(f"Result {result.response.id} received successfully")
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "status": "success",
                "response": _to_result(result.response).model_dump(),
            },
        )

    if result.is_empty:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": result.state.as_str(), "message": "No result available"},
        )

    logger.warning(f"Inference {result.response.id} failed: {result.error}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": "error",
            "request_id": result.response.id,
            "message": str(result.error),
        },
    )


@router.get("/health", response_model=EngineHealth)
async def get_health(request: Request) -> EngineHealth:
    engine = _engine(request)
    stats = engine.stats()
    return EngineHealth(
        engine=engine.name,
        state=engine.state.as_str(),
        running=engine.is_running,
        pending=engine.pending,
        stats=EngineStatsBody(**asdict(stats)),
    )


def create_app(engine: InferenceEngine, sample_len: int = 50) -> FastAPI:
    """
    Build the FastAPI application around an engine.

    The engine is stopped when the application shuts down.

    Args:
        engine: Running InferenceEngine over VisionRequest
        sample_len: sample_len attached to every scheduled request
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Serving engine {engine.name!r}")
        yield
        # stop() joins the worker, keep it off the event loop
        await run_in_threadpool(engine.stop)

    app = FastAPI(
        title="Infernum",
        description="Background inference engine over HTTP",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.sample_len = sample_len
    app.include_router(router)
    return app
