import os
import logging
from typing import Dict, Optional, Any

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_UPLOAD_DIR = "uploads"


class Config:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        self.host = os.environ.get("HOST", DEFAULT_HOST)
        self.port = int(os.environ.get("PORT", DEFAULT_PORT))
        self.debug = os.environ.get("DEBUG", "0") == "1"
        self.env = os.environ.get("APP_ENV", "production").lower()
        self.azure_speech_key = os.environ.get("AZURE_SPEECH_KEY", "")
        self.azure_speech_region = os.environ.get("AZURE_SPEECH_REGION", "")
        self.upload_dir = os.environ.get("UPLOAD_DIR", DEFAULT_UPLOAD_DIR)
        self.ffmpeg_binary = os.environ.get("FFMPEG_BINARY", "ffmpeg")
        self.engine = os.environ.get("ENGINE", "azure").lower()
        self.infra = os.environ.get("INFRA", "local").lower()

        # No wall-clock cap unless set; the engine's silence timeouts end sessions
        timeout_env = os.environ.get("SESSION_TIMEOUT", "").strip()
        self.session_timeout: Optional[float] = float(timeout_env) if timeout_env else None

    @property
    def is_development(self) -> bool:
        return self.env == "development"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "env": self.env,
            "upload_dir": self.upload_dir,
            "ffmpeg_binary": self.ffmpeg_binary,
            "engine": self.engine,
            "infra": self.infra,
            "session_timeout": self.session_timeout,
            "has_speech_credentials": bool(self.azure_speech_key and self.azure_speech_region),
        }


config = Config()


def get_config() -> Config:
    return config


def create_recognition_adapter(cfg: Config):
    """Create the speech recognition adapter based on ENGINE env var.

    Raises EngineConfigurationError at startup when credentials are missing.
    """
    engine = cfg.engine

    if engine == "azure":
        from adapters.azure.recognition import AzureConversationTranscriberAdapter
        recognition = AzureConversationTranscriberAdapter(cfg.azure_speech_key, cfg.azure_speech_region)
    else:
        raise ValueError(f"Unknown ENGINE: {engine!r}. Valid options: azure")

    logger.info(f"Recognition adapter: engine={engine}, region={cfg.azure_speech_region}")
    return recognition


def create_audio_adapter(cfg: Config):
    """Create the audio source adapter (always FFmpeg)."""
    from adapters.ffmpeg.audio import FFmpegAudioAdapter
    return FFmpegAudioAdapter(ffmpeg_binary=cfg.ffmpeg_binary)


def create_infra_adapters(cfg: Config):
    """Create infrastructure adapters based on INFRA env var."""
    from adapters.local.log_progress import LogProgressAdapter

    infra = cfg.infra

    if infra == "local":
        adapters = {
            "progress": LogProgressAdapter(),
        }
    else:
        raise ValueError(f"Unknown INFRA: {infra!r}. Valid options: local")

    logger.info(f"Infra adapters: {infra} -> {', '.join(type(v).__name__ for v in adapters.values())}")
    return adapters
