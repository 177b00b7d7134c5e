"""
媒体发现相关的响应模型
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from mediascout.extraction.base import MediaKind, MediaRecord


class MediaRecordResponse(BaseModel):
    """单条媒体记录（字段名与前端约定为 camelCase）"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: MediaKind
    url: str
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    author: str
    source: str
    timestamp: datetime

    @classmethod
    def from_record(cls, record: MediaRecord) -> "MediaRecordResponse":
        return cls(
            id=record.id,
            type=record.type,
            url=record.url,
            thumbnail_url=record.thumbnail_url,
            author=record.author,
            source=record.source,
            timestamp=record.timestamp,
        )


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    ytdlp: bool
    ffmpeg: bool
