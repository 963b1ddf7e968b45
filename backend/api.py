"""FastAPI app for Echo Diarize.

POST /upload stores the audio file, runs one transcription session and
returns the diarized transcript. GET /audio/{filename} serves stored uploads.
"""

import logging
import os
import shutil
import time
import traceback
import uuid
from typing import Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from config import (
    Config,
    create_audio_adapter,
    create_infra_adapters,
    create_recognition_adapter,
    get_config,
)
from domain.errors import NoFileUploaded, TranscriptionError, UnexpectedProcessingError
from mappers import result_to_response
from models import ErrorResponse, HealthResponse, TranscriptionResponse
from use_cases.transcribe import AUTO_DETECT, TranscribeAudioUseCase, TranscribeRequest

logger = logging.getLogger(__name__)


def _store_upload(upload: UploadFile, upload_dir: str) -> str:
    """Copy the upload to <upload_dir>/<epoch_ms>-<hex8><ext> and return the stored path."""
    os.makedirs(upload_dir, exist_ok=True)
    ext = os.path.splitext(upload.filename or "")[1]
    path = os.path.join(upload_dir, f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}{ext}")
    with open(path, "wb") as out:
        shutil.copyfileobj(upload.file, out)
    return path


def _discard_upload(path: Optional[str]) -> None:
    if not path:
        return
    try:
        if os.path.exists(path):
            os.unlink(path)
    except OSError as e:
        logger.warning(f"Cleanup error: {e}")


def _error(status_code: int, body: ErrorResponse) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def create_app(
    cfg: Optional[Config] = None,
    use_case: Optional[TranscribeAudioUseCase] = None,
) -> FastAPI:
    cfg = cfg or get_config()
    if use_case is None:
        infra = create_infra_adapters(cfg)
        use_case = TranscribeAudioUseCase(
            recognition=create_recognition_adapter(cfg),
            audio=create_audio_adapter(cfg),
            progress=infra["progress"],
            session_timeout=cfg.session_timeout,
        )

    app = FastAPI(title="Echo Diarize", description="Diarized multi-language transcription of uploaded audio")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.config = cfg
    app.state.use_case = use_case

    @app.get("/", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    @app.post("/upload", response_model=TranscriptionResponse, response_model_exclude_none=True)
    async def upload(
        audio: Optional[UploadFile] = File(None),
        language: Optional[str] = Form(None),
    ):
        stored_path = None
        try:
            if audio is None or not audio.filename:
                raise NoFileUploaded("No file uploaded")

            try:
                stored_path = await run_in_threadpool(_store_upload, audio, cfg.upload_dir)
            finally:
                await audio.close()

            req = TranscribeRequest(audio_path=stored_path, language=language or AUTO_DETECT)
            try:
                result = await run_in_threadpool(use_case.execute, req)
            except TranscriptionError as e:
                logger.error(f"Transcription error: {e}")
                _discard_upload(stored_path)
                return _error(500, ErrorResponse(
                    type="error",
                    error="Transcription failed",
                    details=str(e),
                    stack=traceback.format_exc() if cfg.is_development else None,
                ))

            logger.info("Transcription completed, sending response...")
            return result_to_response(result)

        except NoFileUploaded as e:
            return _error(400, ErrorResponse(error=str(e)))
        except Exception as e:
            wrapped = UnexpectedProcessingError(str(e))
            logger.exception(f"Error processing audio: {wrapped}")
            _discard_upload(stored_path)
            return _error(500, ErrorResponse(error="Failed to process audio", details=str(wrapped)))

    @app.get("/audio/{filename}")
    async def get_audio(filename: str):
        path = os.path.join(cfg.upload_dir, os.path.basename(filename))
        if not os.path.isfile(path):
            raise HTTPException(status_code=404, detail="File not found")
        return FileResponse(path)

    return app
