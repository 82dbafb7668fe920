"""
Workgroup change notifications.

Change events travel over channels: producers (the change webhook, the Kafka
consumer) publish workgroup addresses on the notifier, and each subscriber
drains its own channel.
"""

from .change_notifier import WorkgroupChangeChannel, WorkgroupChangeNotifier
from .kafka_consumer import WorkgroupChangeConsumer

__all__ = [
    "WorkgroupChangeChannel",
    "WorkgroupChangeNotifier",
    "WorkgroupChangeConsumer",
]
