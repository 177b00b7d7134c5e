"""
Schemas root module.
"""
from mediascout.schemas.media import HealthResponse, MediaRecordResponse

__all__ = ["HealthResponse", "MediaRecordResponse"]
