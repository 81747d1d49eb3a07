# app.py
import argparse
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

import jinja2
from fastapi import FastAPI, Depends, Request, status
from fastapi.responses import HTMLResponse, PlainTextResponse

# Import application settings and the Settings class
from config.app_config import get_app_settings, Settings
from utils import coap_helper
from utils.data_models import Command, HealthResponse
from utils.errors import GatewayError

CMD_PATH = "/pwr/cmd/"

logger = logging.getLogger(__name__)


# --- Logging Setup ---
def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=settings.LOG_FORMAT, force=True)


def render_index() -> str:
    """Render the index page once; it never changes while the process runs."""
    env = jinja2.Environment(
        loader=jinja2.PackageLoader("utils", "templates"),
        autoescape=jinja2.select_autoescape(["html"]),
    )
    return env.get_template("index.html").render(
        cmd_status=CMD_PATH + Command.STATUS.value,
        cmd_on=CMD_PATH + Command.ON.value,
        cmd_off=CMD_PATH + Command.OFF.value,
    )


# --- Application Lifespan ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info(f"Starting up pwr-gateway (CoAP endpoint: {settings.COAP_URL}, timeout: {settings.COAP_TIMEOUT}s)")
    yield
    logger.info("pwr-gateway shut down.")


def get_settings(request: Request) -> Settings:
    """FastAPI dependency returning the settings the app was created with."""
    return request.app.state.settings


# --- API Endpoints ---
async def index(request: Request):
    """Landing page with links to the three power commands."""
    return HTMLResponse(request.app.state.index_html)


async def power_command(op: str, settings: Settings = Depends(get_settings)):
    """Relay a power command to the device and report its state.

    Unknown commands are treated as a status query.
    """
    try:
        power_status = await coap_helper.execute(op, settings.COAP_URL, settings.COAP_TIMEOUT)
    except GatewayError as e:
        logger.error(f"Power command '{op}' failed: {e}")
        return PlainTextResponse(str(e), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse(power_status.describe())


# --- Health Check Endpoint ---
async def health_check(settings: Settings = Depends(get_settings)):
    """
    Reports that the gateway is serving requests. The device is not contacted.
    """
    return HealthResponse(
        application_status="healthy",
        coap_url=settings.COAP_URL,
        timestamp=datetime.now(timezone.utc),
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    if settings is None:
        settings = get_app_settings()

    app = FastAPI(
        title="Power Switch Gateway",
        version="0.1.0",
        description="Query and switch a remote power outlet over CoAP through a small HTTP interface.",
        lifespan=lifespan)
    app.state.settings = settings
    app.state.index_html = render_index()

    app.add_api_route("/", index, methods=["GET"], response_class=HTMLResponse, include_in_schema=False)
    app.add_api_route("/pwr/", index, methods=["GET"], response_class=HTMLResponse, summary="Power switch page")
    app.add_api_route(CMD_PATH + "{op}", power_command, methods=["GET"], response_class=PlainTextResponse,
                      summary="Send a power command to the device")
    app.add_api_route("/health", health_check, methods=["GET"], response_model=HealthResponse,
                      status_code=status.HTTP_200_OK, tags=["Management"])
    return app


# --- FastAPI App ---
configure_logging(get_app_settings())
app = create_app()


def parse_listen_address(value: str):
    host, sep, port = value.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise argparse.ArgumentTypeError(f"expected HOST:PORT, got '{value}'")
    return host, int(port)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pwr-gateway", description="HTTP to CoAP power switch gateway")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("-t", "--trace", action="store_true", help="Enable debug logging including HTTP server traces")
    parser.add_argument("-l", "--listen", type=parse_listen_address, default=None,
                        help="HTTP listen address as HOST:PORT (default: 127.0.0.1:8080)")
    parser.add_argument("-c", "--coap-url", default=None, help="CoAP base URL (default: coap://127.0.0.1/)")
    parser.add_argument("--timeout", type=float, default=None, help="CoAP request timeout in seconds (default: 5)")
    return parser.parse_args(argv)


def settings_from_arguments(args: argparse.Namespace) -> Settings:
    """Build settings from the environment, with command-line flags taking precedence."""
    overrides = {}
    if args.listen is not None:
        overrides["API_HOST"], overrides["API_PORT"] = args.listen
    if args.coap_url is not None:
        overrides["COAP_URL"] = args.coap_url
    if args.timeout is not None:
        overrides["COAP_TIMEOUT"] = args.timeout
    if args.debug or args.trace:
        overrides["LOG_LEVEL"] = "debug"
    return Settings(**overrides)


def main(argv: Optional[List[str]] = None) -> None:
    import uvicorn

    args = parse_arguments(argv)
    app_settings = settings_from_arguments(args)
    configure_logging(app_settings)
    logger.info(f"pwr-gateway listening on {app_settings.get_listen_address()}, relaying to {app_settings.COAP_URL}")
    uvicorn.run(
        create_app(app_settings),
        host=app_settings.API_HOST,
        port=app_settings.API_PORT,
        log_level="trace" if args.trace else app_settings.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
