"""Pub/Sub topic administration over google-cloud-pubsub."""

from __future__ import annotations

from typing import Any

import structlog

from pipeline_harness.resources.lookup import Lookup, lookup

logger = structlog.get_logger()


class PubSubMessagingService:
    """MessagingService backed by ``pubsub_v1.PublisherClient``.

    The client is created on first use so that building a harness never
    requires credentials.
    """

    def __init__(self, publisher: Any | None = None) -> None:
        self._publisher = publisher

    @property
    def publisher(self) -> Any:
        if self._publisher is None:
            from google.cloud import pubsub_v1

            self._publisher = pubsub_v1.PublisherClient()
        return self._publisher

    def get_topic(self, name: str) -> Lookup[Any]:
        return lookup(lambda: self.publisher.get_topic(request={"topic": name}))

    def create_topic(self, name: str) -> None:
        self.publisher.create_topic(request={"name": name})
        logger.info("pubsub.topic_created", topic=name)

    def delete_topic(self, name: str) -> None:
        self.publisher.delete_topic(request={"topic": name})
        logger.info("pubsub.topic_deleted", topic=name)
