from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for CaptionBurn.

    All settings are loaded from environment variables with the
    `CAPTIONBURN_` prefix and optional `.env` support.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAPTIONBURN_",
        env_file=".env",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Workspaces
    # ------------------------------------------------------------------
    workdir: str = Field(
        default=".captionburn",
        description="Root directory under which per-job workspaces are created.",
    )
    write_srt_copy: bool = Field(
        default=True,
        description="Also write an SRT rendering next to the ASS file in each workspace.",
    )
    allowed_video_extensions: list[str] = Field(
        default=[".mp4", ".mov", ".mkv", ".webm", ".avi", ".m4v"],
        description="Extensions kept for the staged input video; anything else becomes .mp4.",
    )

    # ------------------------------------------------------------------
    # External encoder
    # ------------------------------------------------------------------
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        description="ffmpeg executable name or path.",
    )
    video_codec: str = Field(
        default="libx264",
        description="Video codec used when burning subtitles (audio is always stream-copied).",
    )
    video_preset: str = Field(
        default="medium",
        description="Encoder preset passed to ffmpeg.",
    )
    video_crf: int = Field(
        default=20,
        description="Constant rate factor for the video re-encode.",
    )
    encode_timeout_seconds: float | None = Field(
        default=600.0,
        description="Kill the encoder after this many seconds (0 or empty disables).",
    )

    # ------------------------------------------------------------------
    # Admission control
    # ------------------------------------------------------------------
    max_concurrent_renders: int = Field(
        default=2,
        description="Maximum number of encoder processes running at once.",
    )
    queue_timeout_seconds: float = Field(
        default=30.0,
        description="How long a render waits for a free slot before being rejected.",
    )

    # ------------------------------------------------------------------
    # HTTP server
    # ------------------------------------------------------------------
    host: str = Field(
        default="127.0.0.1",
        description="Bind address for `captionburn serve`.",
    )
    port: int = Field(
        default=8000,
        description="Port for `captionburn serve`.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )

    @property
    def effective_timeout(self) -> float | None:
        if not self.encode_timeout_seconds:
            return None
        return float(self.encode_timeout_seconds)

    def to_public_dict(self) -> dict:
        """
        Return a dictionary of non-sensitive settings suitable
        for logging or CLI display.
        """
        return {
            "workdir": self.workdir,
            "write_srt_copy": self.write_srt_copy,
            "allowed_video_extensions": list(self.allowed_video_extensions),
            "ffmpeg_binary": self.ffmpeg_binary,
            "video_codec": self.video_codec,
            "video_preset": self.video_preset,
            "video_crf": self.video_crf,
            "encode_timeout_seconds": self.encode_timeout_seconds,
            "max_concurrent_renders": self.max_concurrent_renders,
            "queue_timeout_seconds": self.queue_timeout_seconds,
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level,
        }
