"""
Web chat settings service.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Query, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import SettingNotFoundError, WebchatException
from shared.logging import set_workgroup_context
from shared.retry import RetryConfig
from shared.circuit_breaker import CircuitBreaker
from .adapters.blank_image import BlankImageProvider
from .adapters.workgroup_client import WorkgroupSettingsClient
from .caching.settings_cache import SettingsCache, get_settings_cache
from .domain.models import WorkgroupId
from .images.image_resolver import ImageResolver
from .notifications.change_notifier import WorkgroupChangeNotifier
from .notifications.kafka_consumer import WorkgroupChangeConsumer

IMAGE_CONTENT_TYPE = "image/jpeg"
DEFAULT_BLANK_IMAGE = Path(__file__).parent / "static" / "images" / "blank.gif"


class WebchatService(BaseService):
    """Serves workgroup images and settings from the settings cache."""

    def __init__(self,
                 config: Optional[ServiceConfig] = None,
                 *,
                 notifier: Optional[WorkgroupChangeNotifier] = None,
                 settings_cache: Optional[SettingsCache] = None,
                 blank_images: Optional[BlankImageProvider] = None):
        super().__init__("webchat", 8080, config)
        if settings_cache is None:
            settings_cache = get_settings_cache(self._build_settings_cache)
        self.settings_cache = settings_cache
        # Webhook and Kafka changes go to the notifier the cache listens on
        self.notifier = notifier or settings_cache.notifier or WorkgroupChangeNotifier()
        self.settings_cache.follow(self.notifier)
        self.blank_images = blank_images or BlankImageProvider(
            self.config.blank_image_path or DEFAULT_BLANK_IMAGE
        )
        self.image_resolver = ImageResolver(self.settings_cache, self.blank_images, metrics=self.metrics)

        self.change_consumer: Optional[WorkgroupChangeConsumer] = None
        if self.config.kafka_notifications_enabled:
            self.change_consumer = WorkgroupChangeConsumer(
                bootstrap_servers=self.config.kafka_bootstrap,
                group_id=self.config.kafka_group_id,
                topic=self.config.workgroup_changes_topic,
                notifier=self.notifier
            )

        self._setup_webchat_routes()

    def _build_settings_cache(self) -> SettingsCache:
        client = WorkgroupSettingsClient(
            self.config.workgroup_service_url,
            timeout=self.config.workgroup_request_timeout,
            retry_config=RetryConfig(
                max_attempts=self.config.workgroup_retry_attempts,
                base_delay=self.config.workgroup_retry_base_delay,
                max_delay=10.0
            ),
            circuit_breaker=CircuitBreaker(
                "workgroup_service",
                failure_threshold=self.config.workgroup_failure_threshold,
                recovery_timeout=self.config.workgroup_recovery_timeout
            )
        )
        return SettingsCache(
            client,
            metrics=self.metrics,
            max_entries=self.config.settings_cache_max_entries
        )

    def _setup_webchat_routes(self):
        """Set up image, settings and change routes."""

        @self.app.get("/")
        async def root():
            return {
                "service": self.service_name,
                "message": "Web chat workgroup settings service",
                "version": "1.0.0",
                "endpoints": [
                    "/images/{image_name}",
                    "/workgroups/{workgroup}/settings/{key}",
                    "/workgroups/{workgroup}/changed"
                ]
            }

        @self.app.get("/images/{image_name}")
        async def get_image(image_name: str, workgroup: Optional[str] = Query(default=None)):
            """Return a workgroup image, or the blank image when unavailable."""
            set_workgroup_context(workgroup)
            image_bytes = await self.image_resolver.resolve_image(image_name, workgroup)
            return Response(content=image_bytes, media_type=IMAGE_CONTENT_TYPE)

        @self.app.get("/workgroups/{workgroup:path}/settings/{key}")
        async def get_setting(workgroup: str, key: str):
            """Return one chat setting of a workgroup."""
            workgroup_id = WorkgroupId.parse(workgroup)
            set_workgroup_context(str(workgroup_id))

            slot = await self.settings_cache.get(workgroup_id, key)
            if slot is None:
                raise SettingNotFoundError(key, str(workgroup_id))

            return {
                "workgroup": str(workgroup_id),
                "key": slot.key,
                "value": slot.value,
                "type": int(slot.type)
            }

        @self.app.post("/workgroups/{workgroup:path}/changed", status_code=202)
        async def workgroup_changed(workgroup: str):
            """Accept a change notification for a workgroup."""
            workgroup_id = WorkgroupId.parse(workgroup)
            subscribers = self.notifier.publish(workgroup_id)
            return {"status": "accepted", "workgroup": str(workgroup_id), "subscribers": subscribers}

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report cache, notification and upstream state."""
        dependencies: Dict[str, Any] = {
            "settings_cache": self.settings_cache.stats(),
            "invalidation_consumer": "ok" if self.settings_cache.is_consuming() else "stopped"
        }

        client = getattr(self.settings_cache, "client", None)
        breaker = getattr(client, "circuit_breaker", None)
        if breaker is not None:
            dependencies["workgroup_service"] = breaker.get_state()

        if self.change_consumer is not None:
            dependencies["kafka"] = "ok" if self.change_consumer.is_running() else "error"

        return dependencies

    async def start(self):
        """Start the invalidation consumer and, when enabled, the Kafka feed."""
        await self.settings_cache.start()
        if self.change_consumer is not None:
            try:
                await self.change_consumer.start()
            except WebchatException as e:
                # Without the feed entries only refresh through the webhook
                self.logger.error("Workgroup change feed unavailable", error=str(e))
        self.logger.info("Webchat service components started")

    async def stop(self):
        """Stop background components."""
        if self.change_consumer is not None:
            await self.change_consumer.stop()
        await self.settings_cache.stop()
        self.logger.info("Webchat service components stopped")


def create_app():
    """Create FastAPI application."""
    service = WebchatService()
    return service.app


if __name__ == "__main__":
    service = WebchatService()
    service.run()
