"""Cloud Tasks queue to a Redis broker with a Celery worker."""

from __future__ import annotations

import json
from typing import Any

from homeport.core.constants import DEFAULT_NETWORK, LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import HealthCheck, MappingResult, ServiceDefinition
from homeport.mappers.tables import (
    DEFAULT_VERSIONS,
    ENGINE_DATA_DIRS,
    ENGINE_PORTS,
    health_check,
    image_for,
)

WORKER_BASE_IMAGE = "python:3.12-slim"
DEFAULT_CONCURRENCY = 4

_CELERY_CONFIG = """# Generated for Cloud Tasks queue {queue}
import os

broker_url = os.environ["CELERY_BROKER_URL"]
result_backend = os.environ.get("CELERY_RESULT_BACKEND", broker_url)

task_default_queue = "{queue}"
task_acks_late = True
task_reject_on_worker_lost = True
worker_prefetch_multiplier = 1
worker_concurrency = {concurrency}
{annotations}{time_limit}"""

_TASKS_MODULE = """# Register the handlers that used to receive Cloud Tasks HTTP calls.
from celery import Celery

app = Celery("{queue}")
app.config_from_object("celeryconfig")


@app.task(name="{queue}.handle")
def handle(payload):
    raise NotImplementedError("port the Cloud Tasks handler here")
"""

_WORKER_DOCKERFILE = """FROM {base_image}

# Generated for Cloud Tasks queue: {queue}

RUN pip install --no-cache-dir "celery[redis]>=5.3"

WORKDIR /app
COPY config/celery/celeryconfig.py config/celery/tasks.py /app/

CMD ["celery", "-A", "tasks", "worker", "-Q", "{queue}", "--loglevel=INFO"]
"""


def _first_int(resource: Resource, *paths: str) -> int:
    for path in paths:
        value = resource.get_config_int(path)
        if value:
            return value
    return 0


def _first_str(resource: Resource, *paths: str) -> str:
    for path in paths:
        value = resource.get_config_str(path)
        if value:
            return value
    return ""


class CloudTasksQueueMapper(BaseMapper):
    """Maps ``google_cloud_tasks_queue`` to Redis plus a Celery worker."""

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.CLOUD_TASKS_QUEUE, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        queue = resource.get_config_str("name") or resource.name
        version = DEFAULT_VERSIONS["redis"]
        result = self.new_result(
            resource, f"tasks-{queue}", image_for("redis", version)
        )
        broker = result.service
        assert broker is not None

        password = self.credentials.password()
        port = ENGINE_PORTS["redis"]
        broker.command = [
            "redis-server",
            "--requirepass",
            password,
            "--appendonly",
            "yes",
        ]
        broker.ports = [f"{port}:{port}"]
        broker.volumes = [f"./data/{broker.name}:{ENGINE_DATA_DIRS['redis']}"]
        broker.health_check = health_check("redis", password=password)
        broker.labels[f"{LABEL_PREFIX}.queue"] = queue

        broker_url = f"redis://:{password}@{broker.name}:{port}/0"
        worker = ServiceDefinition(
            name=self.sanitize_name(f"worker-{queue}"),
            image=f"{self.sanitize_name(queue)}-worker:latest",
            environment={"CELERY_BROKER_URL": broker_url},
            networks=[DEFAULT_NETWORK],
            labels={
                f"{LABEL_PREFIX}.source": resource.type.name,
                f"{LABEL_PREFIX}.resource": resource.name,
            },
            depends_on=[broker.name],
            health_check=HealthCheck(
                test=("CMD-SHELL", "celery -A tasks inspect ping || exit 1"),
                interval="60s",
                timeout="10s",
            ),
        )
        result.additional_services.append(worker)

        result.add_config(
            "config/celery/celeryconfig.py", self._celery_config(resource, queue)
        )
        result.add_config("config/celery/tasks.py", _TASKS_MODULE.format(queue=queue))
        result.add_config(
            f"Dockerfile.{worker.name}",
            _WORKER_DOCKERFILE.format(base_image=WORKER_BASE_IMAGE, queue=queue),
        )

        self._add_warnings(resource, result)
        result.add_manual_step(
            f"Build the worker image: docker build -f Dockerfile.{worker.name} "
            f"-t {worker.image} ."
        )
        result.add_manual_step(
            "Port the Cloud Tasks HTTP handlers into config/celery/tasks.py"
        )
        result.add_manual_step(
            "Replace CreateTask calls with handle.apply_async(...) in producers"
        )
        return result

    @staticmethod
    def _celery_config(resource: Resource, queue: str) -> str:
        per_second = _first_int(
            resource,
            "rate_limits.max_dispatches_per_second",
            "rate_limits.maxDispatchesPerSecond",
            "rateLimits.maxDispatchesPerSecond",
        )
        concurrency = _first_int(
            resource,
            "rate_limits.max_concurrent_dispatches",
            "rate_limits.maxConcurrentDispatches",
            "rateLimits.maxConcurrentDispatches",
        )
        attempts = _first_int(
            resource,
            "retry_config.max_attempts",
            "retry_config.maxAttempts",
            "retryConfig.maxAttempts",
        )
        annotations: dict[str, Any] = {}
        if per_second:
            annotations["rate_limit"] = f"{per_second}/s"
        if attempts > 1:
            annotations["max_retries"] = attempts - 1
        deadline = resource.get_config_str("dispatch_deadline")
        seconds = deadline[:-1] if deadline.endswith("s") else ""
        time_limit = (
            f"task_time_limit = {int(float(seconds))}\n"
            if seconds.replace(".", "", 1).isdigit()
            else ""
        )
        return _CELERY_CONFIG.format(
            queue=queue,
            concurrency=min(concurrency, 64) if concurrency else DEFAULT_CONCURRENCY,
            annotations=(
                f"task_annotations = {json.dumps({'*': annotations})}\n"
                if annotations
                else ""
            ),
            time_limit=time_limit,
        )

    @staticmethod
    def _add_warnings(resource: Resource, result: MappingResult) -> None:
        state = resource.get_config_str("state").upper()
        if state in ("PAUSED", "DISABLED"):
            result.add_warning(
                f"Queue is {state.lower()}; the worker starts consuming at once."
            )
        if _first_str(
            resource,
            "app_engine_routing_override.service",
            "appEngineRoutingOverride.service",
        ):
            result.add_warning(
                "Tasks are routed to App Engine; point the handlers at the "
                "self-hosted service instead."
            )
        if _first_int(
            resource,
            "retry_config.max_attempts",
            "retry_config.maxAttempts",
            "retryConfig.maxAttempts",
        ):
            result.add_warning(
                "Retry backoff settings are not carried over; tune "
                "autoretry_for and retry_backoff on the Celery task."
            )
