"""
Kafka consumer feeding workgroup change events into the notifier.
"""

import asyncio
import functools
import json
from typing import Any, Optional

import kafka
from kafka.errors import KafkaError

from shared.logging import get_logger
from shared.errors import WebchatException, ValidationError
from ..domain.models import WorkgroupId
from .change_notifier import WorkgroupChangeNotifier


class WorkgroupChangeConsumer:
    """Consumes the workgroup-changes topic and publishes on the notifier.

    Record values are JSON objects carrying a ``workgroup`` address; when the
    value has none, the record key is read as the address.
    """

    def __init__(self, bootstrap_servers: str, group_id: str, topic: str,
                 notifier: WorkgroupChangeNotifier):
        self.bootstrap_servers = bootstrap_servers
        self.group_id = group_id
        self.topic = topic
        self.notifier = notifier
        self.logger = get_logger("webchat.kafka.consumer")
        self.consumer: Optional[kafka.KafkaConsumer] = None
        self.running = False
        self._consumer_task: Optional[asyncio.Task] = None

    async def start(self, start_loop: bool = True):
        """Start the Kafka consumer."""
        try:
            self.consumer = kafka.KafkaConsumer(
                self.topic,
                bootstrap_servers=self.bootstrap_servers,
                group_id=self.group_id,
                value_deserializer=lambda x: x,
                key_deserializer=lambda x: x,
                auto_offset_reset='latest',
                enable_auto_commit=True,
                max_poll_records=100,
                session_timeout_ms=30000,
                heartbeat_interval_ms=10000
            )
        except Exception as e:
            self.logger.error("Failed to start Kafka consumer", error=str(e))
            raise WebchatException("KAFKA_CONSUMER_START_FAILED", str(e))

        self.running = True
        if start_loop:
            self._consumer_task = asyncio.create_task(self._consume_loop())
        self.logger.info("Kafka consumer started", group_id=self.group_id, topic=self.topic)

    async def stop(self):
        """Stop the Kafka consumer."""
        self.running = False
        if self._consumer_task:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
            self._consumer_task = None

        if self.consumer:
            self.consumer.close()
            self.consumer = None
            self.logger.info("Kafka consumer stopped")

    def handle_record(self, record: Any) -> Optional[WorkgroupId]:
        """Publish the workgroup named by a record; malformed records are skipped."""
        try:
            workgroup_id = self._extract_workgroup(record)
        except (ValidationError, ValueError, UnicodeDecodeError) as e:
            self.logger.warning(
                "Skipping malformed workgroup change record",
                topic=record.topic,
                offset=record.offset,
                error=str(e)
            )
            return None

        self.notifier.publish(workgroup_id)
        return workgroup_id

    @staticmethod
    def _extract_workgroup(record: Any) -> WorkgroupId:
        address = None
        if record.value:
            payload = json.loads(record.value.decode("utf-8"))
            if isinstance(payload, dict):
                address = payload.get("workgroup")
        if address is not None and not isinstance(address, str):
            raise ValueError(f"Workgroup address must be a string, got {type(address).__name__}")
        if not address and record.key:
            address = record.key.decode("utf-8")
        if not address:
            raise ValueError("Record carries no workgroup address")
        return WorkgroupId.parse(address)

    async def _consume_loop(self):
        """Main consumption loop."""
        loop = asyncio.get_running_loop()
        while self.running:
            try:
                if not self.consumer:
                    await asyncio.sleep(1)
                    continue

                # poll() blocks, keep it off the event loop
                message_batch = await loop.run_in_executor(
                    None, functools.partial(self.consumer.poll, timeout_ms=1000)
                )

                if not message_batch or not isinstance(message_batch, dict):
                    await asyncio.sleep(0)
                    continue

                for records in message_batch.values():
                    for record in records:
                        try:
                            self.handle_record(record)
                        except Exception as e:
                            # Skip the record, keep the rest of the batch
                            self.logger.error(
                                "Failed to handle workgroup change record",
                                topic=record.topic,
                                offset=record.offset,
                                error=str(e)
                            )

            except KafkaError as e:
                self.logger.error("Kafka error in consume loop", error=str(e))
                await asyncio.sleep(5)

            except asyncio.CancelledError:
                break

            except Exception as e:
                self.logger.error("Unexpected error in consume loop", error=str(e))
                await asyncio.sleep(1)

    def is_running(self) -> bool:
        """Check if consumer is running."""
        return self.running
