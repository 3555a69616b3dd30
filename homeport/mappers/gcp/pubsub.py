"""Pub/Sub topics to RabbitMQ topic exchanges and subscriptions to bound queues."""

from __future__ import annotations

import json
import re
from typing import Any

from homeport.core.constants import DEFAULT_NETWORK, LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult
from homeport.mappers.tables import health_check

RABBITMQ_IMAGE = "rabbitmq:3.12-management-alpine"
AMQP_PORT = 5672
MANAGEMENT_PORT = 15672

_DURATION = re.compile(r"^(\d+(?:\.\d+)?)s$")

_RABBITMQ_CONF = """# Generated for Pub/Sub topic {topic}
listeners.tcp.default = {amqp_port}
management.tcp.port = {management_port}
management.load_definitions = /etc/rabbitmq/definitions.json

default_user = {user}
default_pass = {password}
default_vhost = /

disk_free_limit.absolute = 2GB
vm_memory_high_watermark.relative = 0.6
heartbeat = 60
consumer_timeout = 600000
log.console.level = info
"""

_SETUP_SCRIPT = """#!/bin/bash
# Wait for RabbitMQ and print connection details for topic {topic}.
set -euo pipefail

RABBITMQ_HOST="${{RABBITMQ_HOST:-localhost}}"

until curl -sf -u {user}:{password} "http://$RABBITMQ_HOST:{management_port}/api/overview" > /dev/null; do
  echo "Waiting for RabbitMQ..."
  sleep 5
done

echo "Exchange '{topic}' and queue '{queue}' are loaded from definitions.json"
echo "AMQP URL: amqp://{user}:{password}@$RABBITMQ_HOST:{amqp_port}/"
"""


def duration_millis(duration: str) -> int | None:
    """``"86400s"`` becomes ``86400000``; anything else gives None."""
    match = _DURATION.match(duration or "")
    if not match:
        return None
    return int(float(match.group(1)) * 1000)


def rabbitmq_definitions(
    topic: str, queue: str, queue_arguments: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Definitions declaring a topic exchange bound to one durable queue."""
    return {
        "rabbit_version": "3.12.0",
        "vhosts": [{"name": "/"}],
        "exchanges": [
            {
                "name": topic,
                "vhost": "/",
                "type": "topic",
                "durable": True,
                "auto_delete": False,
                "internal": False,
                "arguments": {},
            }
        ],
        "queues": [
            {
                "name": queue,
                "vhost": "/",
                "durable": True,
                "auto_delete": False,
                "arguments": dict(queue_arguments or {}),
            }
        ],
        "bindings": [
            {
                "source": topic,
                "vhost": "/",
                "destination": queue,
                "destination_type": "queue",
                "routing_key": "#",
                "arguments": {},
            }
        ],
    }


class PubSubTopicMapper(BaseMapper):
    """Maps ``google_pubsub_topic`` to RabbitMQ."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.PUBSUB_TOPIC, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        topic = resource.get_config_str("name") or resource.name
        queue = f"{topic}-default-subscription"
        result = self.new_result(resource, f"rabbitmq-{topic}", RABBITMQ_IMAGE)
        svc = result.service
        assert svc is not None

        user = self.credentials.username("rabbit")
        password = self.credentials.password()
        svc.environment = {
            "RABBITMQ_DEFAULT_USER": user,
            "RABBITMQ_DEFAULT_PASS": password,
        }
        svc.ports = [f"{AMQP_PORT}:{AMQP_PORT}", f"{MANAGEMENT_PORT}:{MANAGEMENT_PORT}"]
        svc.volumes = [
            f"./data/{svc.name}:/var/lib/rabbitmq",
            "./config/rabbitmq/definitions.json:/etc/rabbitmq/definitions.json:ro",
            "./config/rabbitmq/rabbitmq.conf:/etc/rabbitmq/rabbitmq.conf:ro",
        ]
        svc.health_check = health_check("rabbitmq")
        svc.labels[f"{LABEL_PREFIX}.topic"] = topic

        queue_arguments: dict[str, Any] = {}
        ttl = duration_millis(resource.get_config_str("message_retention_duration"))
        if ttl:
            queue_arguments["x-message-ttl"] = ttl

        result.add_config(
            "config/rabbitmq/definitions.json",
            json.dumps(rabbitmq_definitions(topic, queue, queue_arguments), indent=2)
            + "\n",
        )
        params = {
            "topic": topic,
            "queue": queue,
            "user": user,
            "password": password,
            "amqp_port": AMQP_PORT,
            "management_port": MANAGEMENT_PORT,
        }
        result.add_config(
            "config/rabbitmq/rabbitmq.conf", _RABBITMQ_CONF.format(**params)
        )
        result.add_script("setup_rabbitmq_pubsub.sh", _SETUP_SCRIPT.format(**params))

        self._add_warnings(resource, result)
        result.add_manual_step(
            f"Open the RabbitMQ console at http://localhost:{MANAGEMENT_PORT}"
        )
        result.add_manual_step(
            "Replace Pub/Sub client code with an AMQP client publishing to the "
            f"'{topic}' topic exchange"
        )
        return result

    @staticmethod
    def _add_warnings(resource: Resource, result: MappingResult) -> None:
        if resource.get_config_bool("message_ordering_enabled") or (
            resource.get_config_bool("enable_message_ordering")
        ):
            result.add_warning(
                "Message ordering is enabled; RabbitMQ only preserves order per "
                "queue with a single active consumer."
            )
            result.add_manual_step(
                "Enable single active consumer on queues that need ordering"
            )
        dead_letter = resource.get_config_str("dead_letter_topic") or (
            resource.get_config_str("dead_letter_policy.dead_letter_topic")
        )
        if dead_letter:
            result.add_warning(f"Dead-letter topic '{dead_letter}' is configured.")
            result.add_manual_step(
                "Declare a dead-letter exchange and set x-dead-letter-exchange "
                "on the queue"
            )
        if resource.get_config_str("kms_key_name"):
            result.add_warning(
                "Topic is encrypted with a customer-managed key; RabbitMQ data "
                "at rest is not encrypted by default."
            )
        if resource.get_config_str("schema_settings.schema"):
            result.add_warning("Message schema validation is not enforced by RabbitMQ.")


_DECLARE_SCRIPT = """#!/bin/bash
# Declare queue {queue} bound to exchange {topic} on the broker for the topic.
set -euo pipefail

RABBITMQ_HOST="${{RABBITMQ_HOST:-localhost}}"
RABBITMQ_USER="${{RABBITMQ_USER:?set RABBITMQ_USER to the broker user}}"
RABBITMQ_PASS="${{RABBITMQ_PASS:?set RABBITMQ_PASS to the broker password}}"

admin() {{
  rabbitmqadmin --host "$RABBITMQ_HOST" --port {management_port} \\
    --username "$RABBITMQ_USER" --password "$RABBITMQ_PASS" "$@"
}}

admin import config/rabbitmq/subscriptions/{queue}.json
echo "Queue '{queue}' now receives messages published to '{topic}'"
"""


def subscription_definitions(
    topic: str,
    queue: str,
    queue_arguments: dict[str, Any],
    dead_letter_exchange: str = "",
) -> dict[str, Any]:
    """
    Definitions adding one queue and its binding to an existing exchange.

    A dead-letter exchange, when named, is declared alongside so the queue's
    ``x-dead-letter-exchange`` argument resolves.
    """
    definitions = rabbitmq_definitions(topic, queue, queue_arguments)
    if dead_letter_exchange:
        dlx = dict(definitions["exchanges"][0], name=dead_letter_exchange)
        definitions["exchanges"].append(dlx)
    return definitions


class PubSubSubscriptionMapper(BaseMapper):
    """
    Maps ``google_pubsub_subscription`` to a queue bound to its topic exchange.

    The broker itself belongs to the topic's result, so this produces
    definitions and a declare script but no service.
    """

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.PUBSUB_SUBSCRIPTION, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        queue = resource.get_config_str("name") or resource.name
        topic_ref = resource.get_config_str("topic")
        topic = topic_ref.rstrip("/").rsplit("/", 1)[-1] or queue
        broker = self.sanitize_name(f"rabbitmq-{topic}")

        result = MappingResult(
            service=None,
            source_resource_id=resource.id,
            source_type=resource.type.name,
        )
        result.add_network(DEFAULT_NETWORK)

        queue_arguments: dict[str, Any] = {}
        ttl = duration_millis(
            resource.get_config_str("message_retention_duration")
            or resource.get_config_str("messageRetentionDuration")
        )
        if ttl:
            queue_arguments["x-message-ttl"] = ttl

        dead_letter = resource.get_config_str(
            "dead_letter_policy.dead_letter_topic"
        ) or resource.get_config_str("deadLetterPolicy.deadLetterTopic")
        dlx = ""
        if dead_letter:
            dlx = f"{topic}.dlx"
            queue_arguments["x-dead-letter-exchange"] = dlx
            queue_arguments["x-dead-letter-routing-key"] = "dead-letter"
            result.add_warning(
                f"Dead-letter topic '{dead_letter}' is replaced by the '{dlx}' "
                "exchange; bind a queue to it to keep rejected messages."
            )

        result.add_config(
            f"config/rabbitmq/subscriptions/{queue}.json",
            json.dumps(
                subscription_definitions(topic, queue, queue_arguments, dlx),
                indent=2,
            )
            + "\n",
        )
        result.add_script(
            f"declare_subscription_{queue}.sh",
            _DECLARE_SCRIPT.format(
                topic=topic, queue=queue, management_port=MANAGEMENT_PORT
            ),
        )

        self._add_warnings(resource, result)
        result.add_manual_step(
            f"Run declare_subscription_{queue}.sh once the '{broker}' broker is up"
        )
        result.add_manual_step(
            f"Point subscribers at queue '{queue}' with an AMQP client"
        )
        return result

    @staticmethod
    def _add_warnings(resource: Resource, result: MappingResult) -> None:
        push_endpoint = resource.get_config_str(
            "push_config.push_endpoint"
        ) or resource.get_config_str("pushConfig.pushEndpoint")
        if push_endpoint:
            result.add_warning(
                f"Push delivery to {push_endpoint} has no RabbitMQ equivalent."
            )
            result.add_manual_step(
                "Run a consumer that reads the queue and forwards each message "
                "to the push endpoint"
            )
        if resource.get_config_bool("enable_message_ordering") or (
            resource.get_config_bool("enableMessageOrdering")
        ):
            result.add_warning(
                "Message ordering is enabled; use a single active consumer."
            )
            result.add_manual_step("Set x-single-active-consumer on the queue")
        if resource.get_config_bool("enable_exactly_once_delivery") or (
            resource.get_config_bool("enableExactlyOnceDelivery")
        ):
            result.add_warning(
                "Exactly-once delivery is enabled; RabbitMQ delivers at least "
                "once, so consumers must be idempotent."
            )
        message_filter = resource.get_config_str("filter")
        if message_filter:
            result.add_warning(
                f"Subscription filter '{message_filter}' is not applied; the "
                "queue is bound with routing key '#'."
            )
