"""
AWS CloudFormation template parser.

Templates are read as data and never deployed or evaluated. Short-form
intrinsic tags (``!Ref``, ``!GetAtt``, ``!Sub``...) are rewritten into their
long form by a dedicated loader so both spellings look the same afterwards.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any

import yaml

from homeport.core.constants import (
    CLOUDFORMATION_PATTERNS,
    DEFAULT_AWS_REGION,
    METADATA_OUTPUT_PREFIX,
    REGEX_CFN_SUB_VARIABLE,
)
from homeport.core.errors import ParseError, UnsupportedFormatError
from homeport.core.logging import LogContext
from homeport.core.path_utils import (
    iter_files,
    peek_text,
    read_text_file,
    require_files,
    resolve_input_path,
)
from homeport.domain import catalog
from homeport.domain.catalog import opaque_type
from homeport.domain.infrastructure import Infrastructure
from homeport.domain.resource import Provider, Resource, ResourceType
from homeport.parsers.base import (
    Format,
    FormatParser,
    ParseOptions,
    aws_region_from_zone,
)

logger = logging.getLogger(__name__)

VERSIONED_CONFIDENCE = 0.95
SHARE_SCALE = 0.9

_SUFFIXES = (".yaml", ".yml", ".json", ".template")
_SUB_VARIABLE = re.compile(REGEX_CFN_SUB_VARIABLE)
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")

CFN_TYPE_TABLE: dict[str, ResourceType] = {
    "AWS::EC2::Instance": catalog.EC2_INSTANCE,
    "AWS::Lambda::Function": catalog.LAMBDA_FUNCTION,
    "AWS::ECS::Cluster": catalog.ECS_CLUSTER,
    "AWS::ECS::Service": catalog.ECS_SERVICE,
    "AWS::EKS::Cluster": catalog.EKS_CLUSTER,
    "AWS::S3::Bucket": catalog.S3_BUCKET,
    "AWS::EC2::Volume": catalog.EBS_VOLUME,
    "AWS::EFS::FileSystem": catalog.EFS_FILE_SYSTEM,
    "AWS::RDS::DBInstance": catalog.RDS_INSTANCE,
    "AWS::RDS::DBCluster": catalog.RDS_CLUSTER,
    "AWS::DynamoDB::Table": catalog.DYNAMODB_TABLE,
    "AWS::ElastiCache::CacheCluster": catalog.ELASTICACHE_CLUSTER,
    "AWS::ElastiCache::ReplicationGroup": catalog.ELASTICACHE_REPLICATION_GROUP,
    "AWS::EC2::VPC": catalog.AWS_VPC,
    "AWS::EC2::Subnet": catalog.AWS_SUBNET,
    "AWS::EC2::SecurityGroup": catalog.AWS_SECURITY_GROUP,
    "AWS::EC2::InternetGateway": catalog.AWS_INTERNET_GATEWAY,
    "AWS::EC2::NatGateway": catalog.AWS_NAT_GATEWAY,
    "AWS::ElasticLoadBalancingV2::LoadBalancer": catalog.AWS_LB,
    "AWS::Route53::HostedZone": catalog.ROUTE53_ZONE,
    "AWS::CloudFront::Distribution": catalog.CLOUDFRONT_DISTRIBUTION,
    "AWS::ApiGateway::RestApi": catalog.API_GATEWAY_REST_API,
    "AWS::SQS::Queue": catalog.SQS_QUEUE,
    "AWS::SNS::Topic": catalog.SNS_TOPIC,
    "AWS::Kinesis::Stream": catalog.KINESIS_STREAM,
    "AWS::Events::Rule": catalog.EVENTBRIDGE_RULE,
    "AWS::SecretsManager::Secret": catalog.SECRETS_MANAGER_SECRET,
    "AWS::KMS::Key": catalog.KMS_KEY,
    "AWS::CertificateManager::Certificate": catalog.ACM_CERTIFICATE,
    "AWS::IAM::Role": catalog.IAM_ROLE,
    "AWS::IAM::ManagedPolicy": catalog.IAM_POLICY,
    "AWS::Cognito::UserPool": catalog.COGNITO_USER_POOL,
}

# Property names that carry a human-readable resource name
_NAME_PROPERTIES = (
    "BucketName",
    "DBInstanceIdentifier",
    "DBClusterIdentifier",
    "FunctionName",
    "QueueName",
    "TopicName",
    "TableName",
    "ClusterName",
    "ServiceName",
    "RoleName",
    "Name",
)


class CloudFormationLoader(yaml.SafeLoader):
    """SafeLoader that understands CloudFormation short-form tags."""


def _construct_intrinsic(
    loader: CloudFormationLoader, tag_suffix: str, node: yaml.Node
) -> dict[str, Any]:
    if isinstance(node, yaml.ScalarNode):
        value: Any = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    if tag_suffix in ("Ref", "Condition"):
        return {tag_suffix: value}
    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)
    return {f"Fn::{tag_suffix}": value}


CloudFormationLoader.add_multi_constructor("!", _construct_intrinsic)


def to_snake_case(name: str) -> str:
    """``DBInstanceClass`` becomes ``db_instance_class``."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def map_cfn_type(cfn_type: str) -> ResourceType:
    """Map a CloudFormation type onto a ResourceType, passing unknowns through."""
    return CFN_TYPE_TABLE.get(cfn_type) or opaque_type(cfn_type, Provider.AWS)


def looks_like_cloudformation(content: str) -> bool:
    """Cheap textual check for a CloudFormation template."""
    return "AWSTemplateFormatVersion" in content or (
        "Resources" in content and "AWS::" in content
    )


def extract_references(value: Any) -> list[str]:
    """
    Collect logical IDs referenced through intrinsic functions.

    Understands ``Ref``, ``Fn::GetAtt`` (list or dotted string) and
    ``${Name}`` / ``${Name.Attr}`` placeholders inside ``Fn::Sub``. Order of
    first appearance is kept and duplicates are dropped.
    """
    found: list[str] = []

    def add(name: Any) -> None:
        if isinstance(name, str) and name and name not in found:
            found.append(name)

    def walk(node: Any) -> None:
        if isinstance(node, list):
            for item in node:
                walk(item)
            return
        if not isinstance(node, dict):
            return
        for key, item in node.items():
            if key == "Ref":
                add(item)
            elif key == "Fn::GetAtt":
                if isinstance(item, list) and item:
                    add(item[0])
                elif isinstance(item, str):
                    add(item.split(".", 1)[0])
            elif key == "Fn::Sub":
                template = item[0] if isinstance(item, list) and item else item
                if isinstance(template, str):
                    for name in _SUB_VARIABLE.findall(template):
                        add(name)
                walk(item)
            else:
                walk(item)

    walk(value)
    return found


def _resolve_value(value: Any, parameters: dict[str, Any]) -> Any:
    """Replace ``Ref`` to parameters with their defaults; keep everything else."""
    if isinstance(value, dict):
        ref = value.get("Ref")
        if set(value) == {"Ref"} and isinstance(ref, str) and ref in parameters:
            param = parameters[ref]
            default = param.get("Default") if isinstance(param, dict) else None
            if default is not None:
                return default
        return {k: _resolve_value(v, parameters) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve_value(v, parameters) for v in value]
    return value


def _tags(properties: dict[str, Any]) -> dict[str, str]:
    tags = properties.get("Tags")
    if isinstance(tags, dict):
        return {str(k): str(v) for k, v in tags.items()}
    if isinstance(tags, list):
        return {
            str(tag["Key"]): str(tag.get("Value", ""))
            for tag in tags
            if isinstance(tag, dict) and "Key" in tag
        }
    return {}


class CloudFormationParser(FormatParser):
    """Parses CloudFormation templates in YAML or JSON."""

    @property
    def provider(self) -> Provider:
        return Provider.AWS

    @property
    def supported_formats(self) -> list[Format]:
        return [Format.CLOUDFORMATION]

    def validate(self, path: str) -> None:
        resolved = resolve_input_path(path)
        if resolved.is_file() and resolved.suffix.lower() not in _SUFFIXES:
            raise UnsupportedFormatError(path, "CloudFormation template")

    def detect_confidence(self, path: str) -> float:
        """
        Score 0.95 when a format version is declared.

        Otherwise score the share of ``AWS::`` types among all declared
        resource types, times 0.9. Directories pool every candidate file.
        """
        root = Path(path)
        if root.is_file():
            if root.suffix.lower() not in _SUFFIXES:
                return 0.0
            files = [root]
        elif root.is_dir():
            files = iter_files(root, CLOUDFORMATION_PATTERNS)
        else:
            return 0.0

        aws = total = 0
        for file_path in files:
            content = peek_text(file_path)
            if not looks_like_cloudformation(content):
                continue
            if "AWSTemplateFormatVersion" in content:
                return VERSIONED_CONFIDENCE
            try:
                template = self._load(file_path, content)
            except ParseError:
                continue
            declared = template.get("Resources")
            if not isinstance(declared, dict):
                continue
            for entry in declared.values():
                if isinstance(entry, dict):
                    total += 1
                    if str(entry.get("Type", "")).startswith("AWS::"):
                        aws += 1
        if total == 0:
            return 0.0
        return (aws / total) * SHARE_SCALE

    def parse(self, path: str, options: ParseOptions | None = None) -> Infrastructure:
        """
        Parse one template or every template under a directory.

        YAML and JSON files that are not CloudFormation are skipped.

        Raises:
            InvalidPathError: If the path does not exist.
            NoFilesFoundError: If a directory holds no candidate files.
            ParseError: If a template is malformed and ignore_errors is off.

        """
        opts = options or ParseOptions()
        root = resolve_input_path(path)
        files = (
            [root]
            if root.is_file()
            else require_files(
                root,
                CLOUDFORMATION_PATTERNS,
                opts.include_patterns,
                opts.exclude_patterns,
            )
        )
        base_dir = root.parent if root.is_file() else root

        with LogContext(operation="parse_cloudformation", provider="aws"):
            infra = Infrastructure(Provider.AWS)
            for file_path in files:
                opts.check_cancelled("parse_cloudformation")
                try:
                    content = read_text_file(file_path, opts.max_file_bytes)
                    if not looks_like_cloudformation(content):
                        opts.emit("file_skipped", str(file_path), "not a template")
                        continue
                    template = self._load(file_path, content)
                    source = file_path.relative_to(base_dir).as_posix()
                    count = self._parse_template(infra, template, source, opts)
                except ParseError as e:
                    if not opts.ignore_errors:
                        raise
                    logger.warning("Skipping unreadable template: %s", e.message)
                    opts.emit("file_skipped", str(file_path), e.message)
                    continue

                opts.emit("file_parsed", str(file_path), count=count)

            logger.info("Parsed %d resources from CloudFormation", len(infra))
            return infra

    @staticmethod
    def _load(file_path: Path, content: str) -> dict[str, Any]:
        try:
            if file_path.suffix.lower() == ".json":
                template = json.loads(content)
            else:
                template = yaml.load(content, Loader=CloudFormationLoader)  # noqa: S506
        except json.JSONDecodeError as e:
            raise ParseError(file_path, f"invalid JSON at line {e.lineno}") from e
        except yaml.YAMLError as e:
            raise ParseError(file_path, f"invalid YAML: {e}") from e
        if not isinstance(template, dict):
            raise ParseError(file_path, "template must be a mapping")
        return template

    def _parse_template(
        self,
        infra: Infrastructure,
        template: dict[str, Any],
        source: str,
        opts: ParseOptions,
    ) -> int:
        declared = template.get("Resources") or {}
        if not isinstance(declared, dict):
            return 0
        parameters = template.get("Parameters") or {}
        if not isinstance(parameters, dict):
            parameters = {}
        outputs = template.get("Outputs") or {}
        if not isinstance(outputs, dict):
            raise ParseError(source, "Outputs must be a mapping")

        for key in ("Description", "AWSTemplateFormatVersion"):
            if template.get(key):
                infra.metadata[to_snake_case(key)] = str(template[key])
        for name, output in outputs.items():
            if isinstance(output, dict):
                infra.metadata[f"{METADATA_OUTPUT_PREFIX}{name}"] = json.dumps(
                    output.get("Value"), sort_keys=True, default=str
                )

        added = 0
        for logical_id, entry in declared.items():
            if not isinstance(entry, dict) or not isinstance(entry.get("Type"), str):
                logger.warning(
                    "Skipping resource %s without a Type in %s", logical_id, source
                )
                continue
            resource_type = map_cfn_type(entry["Type"])
            if not opts.includes(resource_type):
                continue
            resource = self._convert(
                str(logical_id), entry, resource_type, parameters, source, opts
            )
            for dep in self._dependencies(entry):
                if dep in declared:
                    resource.add_dependency(dep)
            infra.add_resource(resource)
            added += 1
        return added

    @staticmethod
    def _dependencies(entry: dict[str, Any]) -> list[str]:
        depends_on = entry.get("DependsOn") or []
        if isinstance(depends_on, str):
            depends_on = [depends_on]
        explicit = [str(d) for d in depends_on]
        implicit = extract_references(entry.get("Properties") or {})
        return explicit + [r for r in implicit if r not in explicit]

    @staticmethod
    def _convert(
        logical_id: str,
        entry: dict[str, Any],
        resource_type: ResourceType,
        parameters: dict[str, Any],
        source: str,
        opts: ParseOptions,
    ) -> Resource:
        properties = entry.get("Properties")
        properties = properties if isinstance(properties, dict) else {}

        config: dict[str, Any] = {
            to_snake_case(key): _resolve_value(value, parameters)
            for key, value in properties.items()
        }
        config["cfn_type"] = entry["Type"]
        config["source_file"] = source
        if entry.get("Condition"):
            config["condition"] = entry["Condition"]

        name = next(
            (
                config[to_snake_case(key)]
                for key in _NAME_PROPERTIES
                if isinstance(config.get(to_snake_case(key)), str)
            ),
            logical_id,
        )

        zone = config.get("availability_zone")
        if isinstance(zone, str) and zone:
            region = aws_region_from_zone(zone)
        else:
            region = opts.default_region(DEFAULT_AWS_REGION)

        return Resource(
            id=logical_id,
            name=name,
            type=resource_type,
            region=region,
            config=config,
            tags=_tags(properties),
        )
