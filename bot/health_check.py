"""
Health Check endpoint для мониторинга и Docker/Kubernetes.

Поднимает простой HTTP сервер (aiohttp) для проверки здоровья бота.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from aiohttp import web

logger = logging.getLogger(__name__)

StatsProvider = Callable[[], Dict[str, Any]]


class HealthCheckServer:
    """
    Endpoints:
        GET /health - статусы компонентов + статистика воркера
        GET /ready  - готовность принимать события
        GET /live   - процесс жив
    """

    def __init__(self, port: int = 8080, host: str = '0.0.0.0', stats_provider: Optional[StatsProvider] = None):
        self.port = port
        self.host = host
        self.stats_provider = stats_provider
        self.status = {
            "status": "starting",
            "started_at": datetime.now(timezone.utc).isoformat(),
            "checks": {}
        }
        self._runner: Optional[web.AppRunner] = None

    def update(self, component: str, status: str):
        """
        Обновление статуса компонента.

        Args:
            component: Название компонента (config, bot, worker, sentry)
            status: 'ok', 'disabled', 'running' или 'error: ...'
        """
        self.status["checks"][component] = status
        logger.debug(f"Health status updated: {component} = {status}")

    def _is_healthy(self) -> bool:
        return all(
            check in ("ok", "disabled", "running")
            for check in self.status["checks"].values()
        )

    async def health_handler(self, request: web.Request) -> web.Response:
        healthy = self._is_healthy()
        body = dict(self.status)
        body["status"] = "healthy" if healthy else "degraded"
        body["timestamp"] = datetime.now(timezone.utc).isoformat()

        if self.stats_provider:
            try:
                body["stats"] = self.stats_provider()
            except Exception as e:
                logger.error(f"Health check stats error: {e}", exc_info=True)
                body["stats"] = {"error": str(e)}

        return web.json_response(body, status=200 if healthy else 503)

    async def readiness_handler(self, request: web.Request) -> web.Response:
        ready = self.status["checks"].get("bot") == "running"
        return web.json_response({"ready": ready}, status=200 if ready else 503)

    async def liveness_handler(self, request: web.Request) -> web.Response:
        return web.json_response({"alive": True}, status=200)

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get('/health', self.health_handler)
        app.router.add_get('/ready', self.readiness_handler)
        app.router.add_get('/live', self.liveness_handler)
        app.router.add_get('/', self.health_handler)
        return app

    async def start(self):
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()

        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info(f"✅ Health check server started on port {self.port}")
        logger.info(f"   GET http://{self.host}:{self.port}/health - Full health check")

    async def stop(self):
        if self._runner:
            logger.info("🛑 Остановка health check сервера...")
            await self._runner.cleanup()
            self._runner = None


__all__ = ['HealthCheckServer']
