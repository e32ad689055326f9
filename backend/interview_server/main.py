from typing import Any, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .config import Settings, get_settings
from .exceptions import ClientInputError, ExternalServiceError
from .history import SessionStore
from .schemas import (
    ConversationTurn,
    ErrorResponse,
    HealthResponse,
    InterviewParams,
    InterviewResponse,
)
from .services import TurnOrchestrator, build_openai_client

MISSING_AUDIO_MESSAGE = "No audio uploaded. Field name must be 'audio'."
TURN_FAILED_MESSAGE = "Interview turn failed. Please try again."


def create_app(
    settings: Settings | None = None,
    *,
    store: Optional[SessionStore] = None,
    client: Optional[Any] = None,
) -> FastAPI:
    config = settings or get_settings()
    app = FastAPI(title="Voice Mock Interview API", version="0.1.0")

    app.state.settings = config
    app.state.store = (
        store if store is not None else SessionStore(max_turns=config.history_max_turns)
    )
    app.state.orchestrator = TurnOrchestrator(
        client=client if client is not None else build_openai_client(config),
        store=app.state.store,
        settings=config,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allow_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ClientInputError)
    async def client_input_handler(request: Request, exc: ClientInputError) -> JSONResponse:
        logger.warning("Rejected {} {}: {}", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content=ErrorResponse(error=str(exc)).model_dump())

    @app.exception_handler(ExternalServiceError)
    async def external_service_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        logger.error("{} {} failed: {}", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=500, content=ErrorResponse(error=TURN_FAILED_MESSAGE).model_dump()
        )

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning("Rejected {} {}: {}", request.method, request.url.path, exc.errors())
        if any("audio" in error.get("loc", ()) for error in exc.errors()):
            message = MISSING_AUDIO_MESSAGE
        else:
            message = "Invalid request."
        return JSONResponse(status_code=400, content=ErrorResponse(error=message).model_dump())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.opt(exception=exc).error("{} {} failed unexpectedly", request.method, request.url.path)
        return JSONResponse(
            status_code=500, content=ErrorResponse(error=TURN_FAILED_MESSAGE).model_dump()
        )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(ok=True)

    @app.post(
        "/interview-turn",
        response_model=InterviewResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    )
    async def interview_turn(
        audio: Optional[UploadFile] = File(None, description="Recorded answer."),
        session_id: Optional[str] = Form(None, alias="sessionId"),
        job_title: Optional[str] = Form(None, alias="jobTitle"),
        difficulty: Optional[str] = Form(None),
        interview_type: Optional[str] = Form(None, alias="interviewType"),
    ) -> InterviewResponse:
        if audio is None:
            raise ClientInputError(MISSING_AUDIO_MESSAGE)
        data = await audio.read()
        if not data:
            raise ClientInputError("Uploaded audio is empty.")

        params = InterviewParams.from_form(
            config,
            job_title=job_title,
            difficulty=difficulty,
            interview_type=interview_type,
        )
        result = await app.state.orchestrator.submit_turn(
            audio=data,
            params=params,
            session_id=session_id,
            filename=audio.filename,
            content_type=audio.content_type,
        )
        return InterviewResponse(transcript=result.transcript, reply_text=result.reply_text)

    @app.get("/history/{session_id}", response_model=list[ConversationTurn])
    async def history(session_id: str) -> list[ConversationTurn]:
        return app.state.store.get(session_id)

    return app
