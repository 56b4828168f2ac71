"""
FastAPI application for the pixshop relay.

POST /api/generate accepts an edit request from a client, runs it against the
image model with the server's Gemini key and returns the result as a data URL.
Error bodies are {"error": ..., "details": ...}.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from pixshop.core.config import Config, get_config
from pixshop.core.operations import run_edit_request
from pixshop.logging_config import get_logger
from pixshop.relay.schemas import GenerateRequest, GenerateResponse, HealthResponse
from pixshop.utils.exceptions import PixshopError, ValidationError

logger = get_logger(__name__)

GENERATE_PATH = "/api/generate"


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = {"error": error}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def create_app(config: Config | None = None) -> FastAPI:
    """
    Build the relay app.

    Args:
        config: Relay configuration; defaults to get_config(). The Gemini key
            is read from it on every request, so a missing key surfaces as a
            500 on /api/generate rather than at startup.
    """
    config = config or get_config()
    app = FastAPI(title="pixshop relay", version="1.0.0")
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.cors_origins),
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            return _error(405, "Method not allowed")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def body_validation_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        details = f"{location}: {first.get('msg', '')}".strip(": ")
        logger.warning("Rejected malformed request body: %s", details)
        return _error(400, "Invalid request body", details or None)

    @app.get("/health", response_model=HealthResponse)
    def health():
        return HealthResponse(model=app.state.config.image_model)

    @app.options(GENERATE_PATH)
    def generate_preflight():
        return Response(status_code=200)

    @app.post(GENERATE_PATH, response_model=GenerateResponse)
    def generate(body: GenerateRequest):
        cfg: Config = app.state.config
        if not cfg.gemini_api_key:
            logger.error("Rejecting %s request: Gemini API key is not configured", body.type)
            return _error(500, "Gemini API key is not configured")

        request = body.to_edit_request()
        try:
            data_url = run_edit_request(request, cfg)
        except ValidationError as e:
            if e.field == "type":
                return _error(400, "Invalid operation type")
            logger.warning("Invalid %s request: %s", body.type, str(e))
            return _error(400, str(e))
        except PixshopError as e:
            logger.error("Error in %s request: %s", body.type, str(e))
            return _error(500, "Internal server error", str(e))
        except Exception as e:
            logger.exception("Unexpected error in %s request", body.type)
            return _error(500, "Internal server error", str(e) or type(e).__name__)

        logger.info("Completed %s request", body.type)
        return GenerateResponse(data=data_url)

    return app
