"""
Health and metrics HTTP surface for the connect service.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.responses import JSONResponse

from shared.config import ConnectConfig, get_config
from shared.logging import configure_logging, get_logger

from .adapters.http_dispatcher import HttpDispatcher
from .health.monitor import HealthStatus
from .models import HttpResponse, RequestSpec
from .pipeline import RequestPipeline


class ConnectService:
    """Builds the pipeline and exposes /health and /metrics."""

    def __init__(self, config: Optional[ConnectConfig] = None, pipeline: Optional[RequestPipeline] = None):
        self.config = config or get_config()
        configure_logging(
            self.config.server_name,
            self.config.log_level,
            log_format=self.config.log_format,
            enable_token_masking=self.config.enable_token_masking,
        )
        self.logger = get_logger("connect.service")
        self.pipeline = pipeline or RequestPipeline(self.config)
        self.dispatcher = HttpDispatcher.from_config(self.config)
        self.app = self._create_app()
        self._setup_routes()

    def _create_app(self) -> FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            self.logger.info(
                "Connect service starting",
                environment=self.config.environment,
                base_url=self.config.base_url,
            )
            yield
            await self.pipeline.close()
            await self.dispatcher.aclose()
            self.logger.info("Connect service stopped")

        return FastAPI(
            title="CenterPoint Connect Service",
            version=self.config.server_version,
            docs_url="/docs" if self.config.is_development() else None,
            redoc_url=None,
            lifespan=lifespan,
        )

    def _setup_routes(self):

        @self.app.get("/health")
        async def health_check():
            """Health verdict derived from request, auth, cache and error counters."""
            report = self.pipeline.health()
            body = {
                "service": self.config.server_name,
                "version": self.config.server_version,
                **report.to_dict(),
            }
            status_code = 503 if report.status == HealthStatus.UNHEALTHY else 200
            return JSONResponse(status_code=status_code, content=body)

        @self.app.get("/metrics")
        async def metrics_endpoint():
            """Prometheus metrics endpoint."""
            if self.pipeline.metrics is None:
                return Response(status_code=404)
            from prometheus_client import CONTENT_TYPE_LATEST
            return Response(content=self.pipeline.metrics.render(), media_type=CONTENT_TYPE_LATEST)

    async def call_tool(
        self,
        request: RequestSpec,
        token: Optional[str] = None,
        identifier: str = "default",
        tool_name: Optional[str] = None,
    ) -> HttpResponse:
        """Entry point for the tool transport: authenticate, then execute upstream.

        The service assumes a single upstream principal. Response cache keys
        do not include credentials, so a response cached for one token is
        served to any caller that authenticates.
        """
        bearer = await self.pipeline.authenticate(identifier, token)
        for name in [name for name in request.headers if name.lower() == "authorization"]:
            del request.headers[name]
        request.headers["Authorization"] = bearer
        return await self.pipeline.execute(request, self.dispatcher, tool_name=tool_name)

    def run(self):
        """Run the service."""
        import uvicorn
        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.replace("warn", "warning"),
        )


def create_app(config: Optional[ConnectConfig] = None) -> FastAPI:
    return ConnectService(config).app


if __name__ == "__main__":
    ConnectService().run()
