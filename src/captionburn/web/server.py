"""
FastAPI server for CaptionBurn.

Start with: captionburn serve [--host 127.0.0.1] [--port 8000]
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import BackgroundTasks, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from captionburn.config.settings import Settings
from captionburn.domain.timed_text import SubtitleStyle, parse_segments
from captionburn.exceptions import CaptionBurnError, ErrorCategory
from captionburn.formats import encode, get_format
from captionburn.services.render import RenderRequest, RenderService
from captionburn.utils import ffmpeg
from captionburn.utils.logging import get_logger

log = get_logger(__name__)

STATUS_BY_CATEGORY: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.FORMAT: 400,
    ErrorCategory.DEPENDENCY: 503,
    ErrorCategory.CAPACITY: 429,
    ErrorCategory.ENCODE: 500,
    ErrorCategory.IO: 500,
}


class SubtitleExportBody(BaseModel):
    segments: list[dict[str, Any]] = Field(default_factory=list)
    style: Optional[dict[str, Any]] = None


def create_app(settings: Settings | None = None, service: RenderService | None = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: resolved settings (defaults to environment)
        service: render service to use (tests inject one with a fake encoder)
    """
    settings = settings or Settings()
    app = FastAPI(title="CaptionBurn", version="0.1.0")
    app.state.settings = settings
    app.state.render_service = service or RenderService(settings)

    @app.exception_handler(CaptionBurnError)
    async def _handle_caption_error(_request: Request, exc: CaptionBurnError) -> JSONResponse:
        status = STATUS_BY_CATEGORY.get(exc.category, 500)
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok", "ffmpeg": ffmpeg.ffmpeg_version(settings.ffmpeg_binary) is not None}

    @app.post("/api/render-video")
    async def render_video(
        request: Request,
        background_tasks: BackgroundTasks,
        videoFile: Optional[UploadFile] = File(default=None),
        subtitleStyle: Optional[str] = Form(default=None),
        segments: Optional[str] = Form(default=None),
        subtitlesEnabled: Optional[str] = Form(default=None),
    ) -> Response:
        video = await videoFile.read() if videoFile is not None else None
        render_request = RenderRequest.from_form(
            video=video,
            filename=videoFile.filename if videoFile is not None else None,
            style_json=subtitleStyle,
            segments_json=segments,
            enabled=subtitlesEnabled,
        )
        service: RenderService = request.app.state.render_service
        result = await run_in_threadpool(
            service.render,
            render_request,
            defer_cleanup=background_tasks.add_task,
        )
        return Response(
            content=result.content,
            media_type=result.media_type,
            headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
        )

    @app.post("/api/subtitles/{fmt}")
    async def export_subtitles(fmt: str, body: SubtitleExportBody) -> Response:
        subtitle_format = get_format(fmt)
        markup = encode(
            subtitle_format.name,
            parse_segments(body.segments),
            SubtitleStyle.from_dict(body.style),
        )
        return Response(
            content=markup,
            media_type=f"{subtitle_format.media_type}; charset=utf-8",
            headers={
                "Content-Disposition": f'attachment; filename="subtitles{subtitle_format.extension}"'
            },
        )

    return app
