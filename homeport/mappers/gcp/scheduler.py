"""Cloud Scheduler job to an Ofelia cron container."""

from __future__ import annotations

import shlex

from homeport.core.constants import LABEL_PREFIX
from homeport.domain import catalog
from homeport.domain.resource import Resource
from homeport.mappers.base import BaseMapper
from homeport.mappers.credentials import CredentialGenerator
from homeport.mappers.result import MappingResult

OFELIA_IMAGE = "mcuadros/ofelia:v0.3.12"
CURL_IMAGE = "curlimages/curl:8.7.1"
DEFAULT_TIME_ZONE = "UTC"

_OFELIA_CONFIG = """; Generated for Cloud Scheduler job {job}
[global]
save-folder = /var/log/ofelia

[job-run "{job}"]
schedule = {schedule}
image = {image}
command = {command}
no-overlap = true
"""


def ofelia_schedule(schedule: str) -> str:
    """
    Translate a unix cron expression into Ofelia's seconds-first form.

    Five-field expressions gain a leading ``0`` seconds field; ``@hourly``
    style descriptors and six-field expressions pass through.
    """
    schedule = " ".join(schedule.split())
    if not schedule or schedule.startswith("@"):
        return schedule
    if len(schedule.split(" ")) == 5:
        return f"0 {schedule}"
    return schedule


def curl_command(uri: str, method: str = "POST") -> str:
    """Command line that replays an HTTP target."""
    parts = ["curl", "-fsS", "-X", (method or "POST").upper(), uri]
    return " ".join(shlex.quote(p) for p in parts)


class CloudSchedulerJobMapper(BaseMapper):
    """
    Maps ``google_cloud_scheduler_job`` to Ofelia.

    HTTP targets are replayed with curl on schedule. Pub/Sub and App Engine
    targets get a placeholder command plus a manual step.
    """

    def __init__(self, credentials: CredentialGenerator | None = None):
        super().__init__(catalog.CLOUD_SCHEDULER_JOB, credentials)

    def map(self, resource: Resource) -> MappingResult:
        resource = self.validate(resource)
        job = self.sanitize_name(resource.get_config_str("name") or resource.name)
        result = self.new_result(resource, f"scheduler-{job}", OFELIA_IMAGE)
        svc = result.service
        assert svc is not None

        schedule = ofelia_schedule(resource.get_config_str("schedule"))
        if not schedule:
            raise ValueError(f"Scheduler job '{resource.id}' has no schedule")
        time_zone = (
            resource.get_config_str("time_zone")
            or resource.get_config_str("timeZone")
            or DEFAULT_TIME_ZONE
        )

        svc.command = ["daemon", "--config=/etc/ofelia/config.ini"]
        svc.environment = {"TZ": time_zone}
        svc.volumes = [
            "/var/run/docker.sock:/var/run/docker.sock:ro",
            f"./config/ofelia/{job}.ini:/etc/ofelia/config.ini:ro",
        ]
        svc.labels[f"{LABEL_PREFIX}.schedule"] = schedule

        command = self._target_command(resource, result)
        result.add_config(
            f"config/ofelia/{job}.ini",
            _OFELIA_CONFIG.format(
                job=job, schedule=schedule, image=CURL_IMAGE, command=command
            ),
        )

        state = resource.get_config_str("state").upper()
        if state in ("PAUSED", "DISABLED"):
            result.add_warning(
                f"Job is {state.lower()} in Cloud Scheduler but will run here; "
                "leave the service stopped until it should fire."
            )
        attempts = resource.get_config_int("retry_config.retry_count")
        if attempts > 0:
            result.add_warning(
                f"Job retries {attempts} time(s) on failure; Ofelia does not retry."
            )
        deadline = resource.get_config_str("attempt_deadline")
        if deadline:
            result.add_warning(f"Attempt deadline {deadline} is not enforced.")

        result.add_manual_step(
            f"Review config/ofelia/{job}.ini and trigger the job once by hand"
        )
        return result

    def _target_command(self, resource: Resource, result: MappingResult) -> str:
        uri = resource.get_config_str("http_target.uri") or (
            resource.get_config_str("httpTarget.uri")
        )
        if uri:
            method = resource.get_config_str(
                "http_target.http_method"
            ) or resource.get_config_str("httpTarget.httpMethod")
            if resource.get_config_dict("http_target.oidc_token") or (
                resource.get_config_dict("http_target.oauth_token")
            ):
                result.add_warning(
                    "HTTP target authenticates with a Google-issued token; "
                    "add credentials to the curl command."
                )
            if resource.get_config_str("http_target.body"):
                result.add_manual_step("Add the request body to the curl command")
            return curl_command(uri, method)

        topic = resource.get_config_str("pubsub_target.topic_name") or (
            resource.get_config_str("pubsubTarget.topicName")
        )
        if topic:
            result.add_warning(f"Job publishes to Pub/Sub topic {topic}.")
            result.add_manual_step(
                "Replace the job command with a publish to the RabbitMQ exchange "
                f"for '{topic.rsplit('/', 1)[-1]}'"
            )
            return "echo 'publish to the topic exchange here'"

        relative_uri = resource.get_config_str(
            "app_engine_http_target.relative_uri"
        ) or resource.get_config_str("appEngineHttpTarget.relativeUri")
        if relative_uri:
            result.add_warning(f"Job calls App Engine path {relative_uri}.")
            result.add_manual_step(
                "Point the job command at the self-hosted App Engine service"
            )
            return "echo 'call the self-hosted service here'"

        result.add_warning("Job has no target; the generated command is a no-op.")
        return "true"
