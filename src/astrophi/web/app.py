"""FastAPI web application for the camera service."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates

from astrophi import __version__
from astrophi.devices import (
    SETTABLE_OBJECTS,
    Clock,
    CommandRequest,
    ConfigRequestBody,
    Services,
    build_services,
)
from astrophi.drivers.cameras import CameraPort
from astrophi.drivers.config import DriverConfig
from astrophi.errors import AstroPhiError
from astrophi.observability import get_logger
from astrophi.utils.executor import run_blocking

logger = get_logger(__name__)

# Paths
WEB_DIR = Path(__file__).parent
TEMPLATES_DIR = WEB_DIR / "templates"

__all__ = ["create_app"]


def _services(request: Request) -> Services:
    return request.app.state.services


def create_app(
    config: DriverConfig | None = None,
    *,
    port: CameraPort | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The application provides:
    - Dashboard UI at /
    - Camera info at /info
    - Commands (Shoot, Reset, Preview, Exposure, Solve) at /command
    - Whitelisted config access at /config
    - The service log at /logs

    Devices are created when the app starts (lifespan), not here, so a
    fresh app can be built per test.

    Args:
        config: Service configuration. None uses DriverConfig() defaults
            (digital twin, counter file in the current directory).
        port: Camera port overriding the one selected by ``config.mode``.
        clock: Time source for capture pacing.

    Returns:
        Configured FastAPI application ready for uvicorn.

    Example:
        >>> app = create_app(DriverConfig(mode=DriverMode.HARDWARE))
        >>> uvicorn.run(app, host="0.0.0.0", port=3000)
    """
    config = config or DriverConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting camera services...", mode=config.mode.value)
        # A corrupt counter file aborts startup
        services = build_services(config, port=port, clock=clock)
        app.state.services = services
        try:
            yield
        finally:
            logger.info("Shutting down camera services...")
            await run_blocking(services.close)

    app = FastAPI(
        title="AstroPhi",
        description="Remote control for a tethered camera with plate solving",
        version=__version__,
        lifespan=lifespan,
    )

    templates = Jinja2Templates(directory=TEMPLATES_DIR)

    @app.exception_handler(AstroPhiError)
    async def astrophi_error_handler(
        request: Request, exc: AstroPhiError
    ) -> PlainTextResponse:
        """Turn a device fault into a 500 with a short text body."""
        logger.error(
            "Request failed",
            path=request.url.path,
            error_type=type(exc).__name__,
            detail=exc.detail,
        )
        return PlainTextResponse(exc.detail, status_code=500)

    # Routes
    @app.get("/", response_class=HTMLResponse)
    async def dashboard(request: Request) -> HTMLResponse:
        """Render the control dashboard.

        The page drives the JSON endpoints below from the browser: it shows
        /info, posts commands and config requests, and displays returned
        preview, exposure and solve images.
        """
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "title": "AstroPhi",
                "mode": config.mode.value,
                "settable_objects": sorted(SETTABLE_OBJECTS),
            },
        )

    @app.get("/info")
    async def info(request: Request) -> JSONResponse:
        """Return camera exposure settings and the shot counter."""
        snapshot = await _services(request).dispatcher.info()
        return JSONResponse(snapshot.to_dict())

    @app.post("/command")
    async def command(request: Request, body: CommandRequest) -> Response:
        """Execute a command and return its raw result.

        Shoot and Reset return an empty body; Preview, Exposure and Solve
        return image bytes.
        """
        data = await _services(request).dispatcher.dispatch(body.root)
        return Response(content=data, media_type="application/octet-stream")

    @app.post("/config")
    async def configure(request: Request, body: ConfigRequestBody) -> PlainTextResponse:
        """Set or get a whitelisted camera config object."""
        text = await _services(request).dispatcher.configure(body.root)
        return PlainTextResponse(text)

    @app.get("/logs")
    async def logs() -> PlainTextResponse:
        """Return the service log file."""
        log_file = config.log_file
        if log_file is None:
            raise HTTPException(status_code=404, detail="File logging disabled")
        try:
            text = await run_blocking(log_file.read_text, "utf-8", "replace")
        except FileNotFoundError:
            raise HTTPException(status_code=404, detail="Log file not found") from None
        except OSError as e:
            logger.error("Could not read log file", path=str(log_file), error=str(e))
            raise HTTPException(status_code=500, detail="Could not read log file") from e
        return PlainTextResponse(text)

    return app

