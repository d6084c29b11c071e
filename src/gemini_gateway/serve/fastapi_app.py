"""FastAPI gateway in front of a generation capability.

Endpoints:
- GET /health
- POST /generate-text            { "prompt": "..." }
- POST /generate-from-image      multipart: image + optional prompt
- POST /generate-from-document   multipart: document + optional prompt
- POST /generate-from-audio      multipart: audio + optional prompt
"""
from __future__ import annotations
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from gemini_gateway.common.errors import CapabilityError, GatewayError, ValidationError
from gemini_gateway.common.prompts import DEFAULT_PROMPTS, resolve_prompt
from gemini_gateway.common.schema import DEFAULT_MIME_TYPE, Attachment, GenerateOut, GenerateTextIn
from gemini_gateway.common.settings import Settings
from gemini_gateway.serve.capability import GeminiCapability, GenerationCapability

LOGGER = logging.getLogger("gemini_gateway.serve.app")

PROMPT_REQUIRED = "Prompt is required."

async def _run(capability: GenerationCapability, route: str, prompt: str, attachment: Attachment | None = None) -> GenerateOut:
    start = time.time()
    try:
        text = await capability.generate(prompt, attachment)
    except Exception as e:
        LOGGER.error("Error generating content on %s: %s", route, e)
        raise CapabilityError(str(e)) from e

    latency = int((time.time() - start) * 1000)
    LOGGER.info(
        "%s ok | prompt=%d chars attachment=%s latency=%sms",
        route,
        len(prompt),
        f"{attachment.mime_type} ({len(attachment.data)} bytes)" if attachment else "none",
        latency,
    )
    return GenerateOut(result=text)

async def _read_upload(upload: UploadFile | None) -> Attachment:
    if upload is None:
        raise ValidationError("No file uploaded.")
    data = await upload.read()
    return Attachment(data=data, mime_type=upload.content_type or DEFAULT_MIME_TYPE)

def create_app(settings: Settings | None = None, capability: GenerationCapability | None = None) -> FastAPI:
    """
    Build the gateway app.

    Args:
        settings: Process settings; defaults are used when omitted.
        capability: Generation backend; a ``GeminiCapability`` over ``settings``
            when omitted.
    """
    settings = settings or Settings()
    capability = capability or GeminiCapability(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not settings.api_key:
            LOGGER.warning("API_KEY is not set; generation requests will fail")
        LOGGER.info("Server ready on http://%s:%s (model=%s)", settings.host, settings.port, settings.model)
        yield

    app = FastAPI(title="gemini-gateway", lifespan=lifespan)

    @app.exception_handler(GatewayError)
    async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        LOGGER.debug("Rejected request to %s: %s", request.url.path, exc.errors())
        message = PROMPT_REQUIRED if request.url.path == "/generate-text" else "Invalid request."
        return JSONResponse(status_code=400, content={"message": message})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "model": settings.model}

    @app.post("/generate-text", response_model=GenerateOut)
    async def generate_text(body: GenerateTextIn | None = None) -> GenerateOut:
        if body is None or not body.prompt:
            raise ValidationError(PROMPT_REQUIRED)
        return await _run(capability, "/generate-text", body.prompt)

    @app.post("/generate-from-image", response_model=GenerateOut)
    async def generate_from_image(
        image: UploadFile | None = File(None),
        prompt: str | None = Form(None),
    ) -> GenerateOut:
        attachment = await _read_upload(image)
        return await _run(capability, "/generate-from-image", resolve_prompt(prompt, DEFAULT_PROMPTS["image"]), attachment)

    @app.post("/generate-from-document", response_model=GenerateOut)
    async def generate_from_document(
        document: UploadFile | None = File(None),
        prompt: str | None = Form(None),
    ) -> GenerateOut:
        attachment = await _read_upload(document)
        return await _run(capability, "/generate-from-document", resolve_prompt(prompt, DEFAULT_PROMPTS["document"]), attachment)

    @app.post("/generate-from-audio", response_model=GenerateOut)
    async def generate_from_audio(
        audio: UploadFile | None = File(None),
        prompt: str | None = Form(None),
    ) -> GenerateOut:
        attachment = await _read_upload(audio)
        return await _run(capability, "/generate-from-audio", resolve_prompt(prompt, DEFAULT_PROMPTS["audio"]), attachment)

    return app
