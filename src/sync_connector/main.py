"""Main application entry point."""

import asyncio
import hmac
import signal
import sys
from datetime import datetime, timezone
from typing import Optional

from aiohttp import web, web_runner

from .config.settings import AppSettings, get_settings
from .core.connector import Connector
from .destinations.factory import DestinationFactory
from .protocol.envelope import RpcDispatcher
from .protocol.errors import BackendError
from .utils.logging import get_logger, setup_logging


CONNECTOR_KEY = web.AppKey("connector", Connector)
DISPATCHER_KEY = web.AppKey("dispatcher", RpcDispatcher)
SETTINGS_KEY = web.AppKey("settings", AppSettings)

logger = get_logger("main")


def is_authorized(request: web.Request, settings: AppSettings) -> bool:
    """Check the shared secret query parameter, when one is configured."""
    expected = settings.server.shared_secret
    if not expected:
        return True

    supplied = request.query.get(settings.server.secret_query_param, "")
    return hmac.compare_digest(supplied.encode(), expected.encode())


def http_status_for(response: dict) -> int:
    """200 for results, 500 for backend errors, 400 for any other error."""
    error = response.get("error")
    if error is None:
        return 200
    if error["code"] == BackendError.code:
        return 500
    return 400


async def rpc_handler(request: web.Request) -> web.Response:
    """JSON-RPC entry point."""
    settings = request.app[SETTINGS_KEY]

    if not is_authorized(request, settings):
        logger.warning("Rejected unauthenticated request", remote=request.remote)
        return web.Response(status=401, text="Unauthorized")

    raw_request = await request.read()
    response = await request.app[DISPATCHER_KEY].handle(raw_request)
    return web.json_response(response, status=http_status_for(response))


async def health_handler(request: web.Request) -> web.Response:
    """Health check endpoint."""
    settings = request.app[SETTINGS_KEY]
    health_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
        "destination": settings.destination.kind
    }
    return web.json_response(health_data)


def create_app(
    connector: Optional[Connector] = None,
    settings: Optional[AppSettings] = None
) -> web.Application:
    """Build the aiohttp application.

    Args:
        connector: Connector to serve; built from settings when omitted
        settings: Application settings
    """
    settings = settings or get_settings()
    connector = connector or Connector(DestinationFactory.create_destination(settings=settings))

    app = web.Application()
    app[SETTINGS_KEY] = settings
    app[CONNECTOR_KEY] = connector
    app[DISPATCHER_KEY] = RpcDispatcher(connector)

    app.router.add_post('/', rpc_handler)
    app.router.add_get('/health', health_handler)

    async def close_connector(app: web.Application):
        await app[CONNECTOR_KEY].close()

    app.on_cleanup.append(close_connector)
    return app


class ConnectorApp:
    """Main connector application."""

    def __init__(self):
        """Initialize the application."""
        self.settings = get_settings()
        self.logger = get_logger("DestinationConnector")
        self.running = False
        self.web_runner: Optional[web_runner.AppRunner] = None

    async def startup(self):
        """Application startup."""
        self.logger.info(
            "Starting destination connector",
            version=self.settings.version,
            environment=self.settings.environment,
            destination=self.settings.destination.kind
        )

        self.web_runner = web_runner.AppRunner(create_app(settings=self.settings))
        await self.web_runner.setup()

        site = web_runner.TCPSite(self.web_runner, self.settings.server.host, self.settings.server.port)
        await site.start()

        self.running = True
        self.logger.info(
            "Destination connector started",
            host=self.settings.server.host,
            port=self.settings.server.port,
            auth_enabled=bool(self.settings.server.shared_secret)
        )

    async def shutdown(self):
        """Application shutdown."""
        self.logger.info("Shutting down destination connector")
        self.running = False

        if self.web_runner:
            await self.web_runner.cleanup()

        self.logger.info("Destination connector stopped")

    async def run(self):
        """Run until a shutdown signal arrives."""
        await self.startup()

        try:
            while self.running:
                await asyncio.sleep(1)
        finally:
            await self.shutdown()


def setup_signal_handlers(app: ConnectorApp):
    """Set up signal handlers for graceful shutdown."""
    def signal_handler(signum, frame):
        app.logger.info(f"Received signal {signum}")
        app.running = False

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def main():
    """Main entry point."""
    setup_logging()

    app = ConnectorApp()
    setup_signal_handlers(app)

    await app.run()


def run():
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        sys.exit(0)
    except Exception as e:
        print(f"Application failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
