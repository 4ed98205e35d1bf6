"""
HTTP MESSAGE SCHEMAS

Pydantic models for the infernum HTTP API.
"""

from typing import Optional

from pydantic import BaseModel, Field


class InferenceRequestBody(BaseModel):
    """Body of POST /inference."""

    prompt: str = Field(..., description="Prompt sent to the model")
    image_path: str = Field(..., min_length=1, description="Server-side path to a JPEG or PNG image")

    class Config:
        json_schema_extra = {
            "example": {
                "prompt": "describe the scene",
                "image_path": "/data/images/street.jpg"
            }
        }


class InferenceResult(BaseModel):
    """Completed inference as returned by GET /results."""

    request_id: int = Field(..., description="Engine request id", ge=0)
    prompt: str = Field(..., description="Prompt of the original request")
    image_width: int = Field(..., description="Width of the input image", ge=0)
    image_height: int = Field(..., description="Height of the input image", ge=0)
    start_time: float = Field(..., description="Inference start (seconds since epoch)")
    duration: str = Field(..., description="Human-readable inference duration")
    duration_ms: float = Field(..., description="Inference duration in milliseconds", ge=0.0)
    response: str = Field(..., description="Model output")


class EngineStatsBody(BaseModel):
    total_scheduled: int = Field(..., ge=0)
    total_completed: int = Field(..., ge=0)
    total_failed: int = Field(..., ge=0)
    pending: int = Field(..., ge=0)
    avg_duration_ms: float = Field(..., ge=0.0)
    last_duration_ms: Optional[float] = None
    uptime_seconds: float = Field(..., ge=0.0)


class EngineHealth(BaseModel):
    """Body of GET /health."""

    engine: str
    state: str = Field(..., description="Engine state (idle, processing)")
    running: bool
    pending: int = Field(..., ge=0)
    stats: EngineStatsBody
