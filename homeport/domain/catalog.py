"""
Catalog of known resource types.

Type names follow Terraform provider naming, which is the lingua franca all
four discovery formats are normalised to. Unknown names are not an error:
``resolve_type`` returns an opaque type so new provider types flow through.
"""

from __future__ import annotations

from homeport.domain.resource import Category, Provider, ResourceType

_CATALOG: dict[str, ResourceType] = {}


def _register(name: str, provider: Provider, category: Category) -> ResourceType:
    resource_type = ResourceType(name, provider, category)
    _CATALOG[name] = resource_type
    return resource_type


# GCP: compute
GCE_INSTANCE = _register("google_compute_instance", Provider.GCP, Category.COMPUTE)
GCE_INSTANCE_TEMPLATE = _register(
    "google_compute_instance_template", Provider.GCP, Category.COMPUTE
)
GKE_CLUSTER = _register("google_container_cluster", Provider.GCP, Category.COMPUTE)
GKE_NODE_POOL = _register("google_container_node_pool", Provider.GCP, Category.COMPUTE)
CLOUD_RUN_SERVICE = _register(
    "google_cloud_run_service", Provider.GCP, Category.COMPUTE
)
CLOUD_RUN_V2_SERVICE = _register(
    "google_cloud_run_v2_service", Provider.GCP, Category.COMPUTE
)
CLOUD_FUNCTION = _register(
    "google_cloudfunctions_function", Provider.GCP, Category.COMPUTE
)
CLOUD_FUNCTION_V2 = _register(
    "google_cloudfunctions2_function", Provider.GCP, Category.COMPUTE
)
APP_ENGINE_APP = _register(
    "google_app_engine_application", Provider.GCP, Category.COMPUTE
)
CLOUD_SCHEDULER_JOB = _register(
    "google_cloud_scheduler_job", Provider.GCP, Category.COMPUTE
)

# GCP: storage
GCS_BUCKET = _register("google_storage_bucket", Provider.GCP, Category.STORAGE)
GCE_DISK = _register("google_compute_disk", Provider.GCP, Category.STORAGE)
FILESTORE_INSTANCE = _register(
    "google_filestore_instance", Provider.GCP, Category.STORAGE
)

# GCP: database
CLOUD_SQL_INSTANCE = _register(
    "google_sql_database_instance", Provider.GCP, Category.DATABASE
)
CLOUD_SQL_DATABASE = _register("google_sql_database", Provider.GCP, Category.DATABASE)
MEMORYSTORE_REDIS = _register("google_redis_instance", Provider.GCP, Category.DATABASE)
SPANNER_INSTANCE = _register("google_spanner_instance", Provider.GCP, Category.DATABASE)
FIRESTORE_DATABASE = _register(
    "google_firestore_database", Provider.GCP, Category.DATABASE
)
BIGTABLE_INSTANCE = _register(
    "google_bigtable_instance", Provider.GCP, Category.DATABASE
)

# GCP: networking
VPC_NETWORK = _register("google_compute_network", Provider.GCP, Category.NETWORKING)
VPC_SUBNETWORK = _register(
    "google_compute_subnetwork", Provider.GCP, Category.NETWORKING
)
FIREWALL = _register("google_compute_firewall", Provider.GCP, Category.NETWORKING)
CLOUD_DNS_ZONE = _register("google_dns_managed_zone", Provider.GCP, Category.NETWORKING)
GLOBAL_ADDRESS = _register(
    "google_compute_global_address", Provider.GCP, Category.NETWORKING
)
CLOUD_ROUTER = _register("google_compute_router", Provider.GCP, Category.NETWORKING)
BACKEND_SERVICE = _register(
    "google_compute_backend_service", Provider.GCP, Category.NETWORKING
)
URL_MAP = _register("google_compute_url_map", Provider.GCP, Category.NETWORKING)
FORWARDING_RULE = _register(
    "google_compute_global_forwarding_rule", Provider.GCP, Category.NETWORKING
)

# GCP: messaging
PUBSUB_TOPIC = _register("google_pubsub_topic", Provider.GCP, Category.MESSAGING)
PUBSUB_SUBSCRIPTION = _register(
    "google_pubsub_subscription", Provider.GCP, Category.MESSAGING
)
CLOUD_TASKS_QUEUE = _register(
    "google_cloud_tasks_queue", Provider.GCP, Category.MESSAGING
)

# GCP: security
SECRET_MANAGER_SECRET = _register(
    "google_secret_manager_secret", Provider.GCP, Category.SECURITY
)
KMS_KEY_RING = _register("google_kms_key_ring", Provider.GCP, Category.SECURITY)
KMS_CRYPTO_KEY = _register("google_kms_crypto_key", Provider.GCP, Category.SECURITY)
CLOUD_ARMOR_POLICY = _register(
    "google_compute_security_policy", Provider.GCP, Category.SECURITY
)

# GCP: identity
SERVICE_ACCOUNT = _register("google_service_account", Provider.GCP, Category.IDENTITY)
PROJECT_IAM_MEMBER = _register(
    "google_project_iam_member", Provider.GCP, Category.IDENTITY
)
PROJECT_IAM_BINDING = _register(
    "google_project_iam_binding", Provider.GCP, Category.IDENTITY
)
IDENTITY_PLATFORM_CONFIG = _register(
    "google_identity_platform_config", Provider.GCP, Category.IDENTITY
)

# AWS
EC2_INSTANCE = _register("aws_instance", Provider.AWS, Category.COMPUTE)
LAMBDA_FUNCTION = _register("aws_lambda_function", Provider.AWS, Category.COMPUTE)
ECS_CLUSTER = _register("aws_ecs_cluster", Provider.AWS, Category.COMPUTE)
ECS_SERVICE = _register("aws_ecs_service", Provider.AWS, Category.COMPUTE)
EKS_CLUSTER = _register("aws_eks_cluster", Provider.AWS, Category.COMPUTE)
S3_BUCKET = _register("aws_s3_bucket", Provider.AWS, Category.STORAGE)
EBS_VOLUME = _register("aws_ebs_volume", Provider.AWS, Category.STORAGE)
EFS_FILE_SYSTEM = _register("aws_efs_file_system", Provider.AWS, Category.STORAGE)
RDS_INSTANCE = _register("aws_db_instance", Provider.AWS, Category.DATABASE)
RDS_CLUSTER = _register("aws_rds_cluster", Provider.AWS, Category.DATABASE)
DYNAMODB_TABLE = _register("aws_dynamodb_table", Provider.AWS, Category.DATABASE)
ELASTICACHE_CLUSTER = _register(
    "aws_elasticache_cluster", Provider.AWS, Category.DATABASE
)
ELASTICACHE_REPLICATION_GROUP = _register(
    "aws_elasticache_replication_group", Provider.AWS, Category.DATABASE
)
AWS_VPC = _register("aws_vpc", Provider.AWS, Category.NETWORKING)
AWS_SUBNET = _register("aws_subnet", Provider.AWS, Category.NETWORKING)
AWS_SECURITY_GROUP = _register("aws_security_group", Provider.AWS, Category.NETWORKING)
AWS_INTERNET_GATEWAY = _register(
    "aws_internet_gateway", Provider.AWS, Category.NETWORKING
)
AWS_NAT_GATEWAY = _register("aws_nat_gateway", Provider.AWS, Category.NETWORKING)
AWS_LB = _register("aws_lb", Provider.AWS, Category.NETWORKING)
ROUTE53_ZONE = _register("aws_route53_zone", Provider.AWS, Category.NETWORKING)
CLOUDFRONT_DISTRIBUTION = _register(
    "aws_cloudfront_distribution", Provider.AWS, Category.NETWORKING
)
API_GATEWAY_REST_API = _register(
    "aws_api_gateway_rest_api", Provider.AWS, Category.NETWORKING
)
SQS_QUEUE = _register("aws_sqs_queue", Provider.AWS, Category.MESSAGING)
SNS_TOPIC = _register("aws_sns_topic", Provider.AWS, Category.MESSAGING)
KINESIS_STREAM = _register("aws_kinesis_stream", Provider.AWS, Category.MESSAGING)
EVENTBRIDGE_RULE = _register(
    "aws_cloudwatch_event_rule", Provider.AWS, Category.MESSAGING
)
SECRETS_MANAGER_SECRET = _register(
    "aws_secretsmanager_secret", Provider.AWS, Category.SECURITY
)
KMS_KEY = _register("aws_kms_key", Provider.AWS, Category.SECURITY)
ACM_CERTIFICATE = _register("aws_acm_certificate", Provider.AWS, Category.SECURITY)
IAM_ROLE = _register("aws_iam_role", Provider.AWS, Category.IDENTITY)
IAM_POLICY = _register("aws_iam_policy", Provider.AWS, Category.IDENTITY)
COGNITO_USER_POOL = _register("aws_cognito_user_pool", Provider.AWS, Category.IDENTITY)

# Azure
AZURE_LINUX_VM = _register(
    "azurerm_linux_virtual_machine", Provider.AZURE, Category.COMPUTE
)
AZURE_STORAGE_ACCOUNT = _register(
    "azurerm_storage_account", Provider.AZURE, Category.STORAGE
)
AZURE_POSTGRES_FLEXIBLE = _register(
    "azurerm_postgresql_flexible_server", Provider.AZURE, Category.DATABASE
)
AZURE_VNET = _register("azurerm_virtual_network", Provider.AZURE, Category.NETWORKING)
AZURE_SERVICEBUS_NAMESPACE = _register(
    "azurerm_servicebus_namespace", Provider.AZURE, Category.MESSAGING
)
AZURE_KEY_VAULT = _register("azurerm_key_vault", Provider.AZURE, Category.SECURITY)
AZURE_USER_IDENTITY = _register(
    "azurerm_user_assigned_identity", Provider.AZURE, Category.IDENTITY
)

# Longest names first so substring matching prefers the most specific type
_BY_LENGTH = sorted(_CATALOG, key=len, reverse=True)
_NAMESPACE_SEPARATORS = frozenset("/.:")


def lookup_type(name: str) -> ResourceType | None:
    """Return the catalogued type with exactly this name, if any."""
    return _CATALOG.get(name)


def opaque_type(name: str, default_provider: Provider = Provider.GCP) -> ResourceType:
    """
    Build a pass-through type for a name the catalog does not know.

    Args:
        name: Raw type name.
        default_provider: Provider used when the prefix is unrecognised.

    Returns:
        ResourceType with category UNKNOWN.

    """
    provider = Provider.from_type_name(name) or default_provider
    return ResourceType(name, provider, Category.UNKNOWN)


def resolve_type(name: str, default_provider: Provider = Provider.GCP) -> ResourceType:
    """
    Map a declared type string onto a ResourceType.

    Tries an exact lookup, then a match on the trailing segment of namespaced
    strings such as ``registry.terraform.io/hashicorp/google_compute_instance``,
    and finally falls back to an opaque type.

    Args:
        name: Declared type string.
        default_provider: Provider for opaque types with unknown prefixes.

    Returns:
        The resolved ResourceType. Never raises.

    """
    exact = _CATALOG.get(name)
    if exact is not None:
        return exact
    for known in _BY_LENGTH:
        # Only match whole trailing segments so that e.g.
        # google_compute_instance_group never resolves to an instance
        if name.endswith(known) and name[-len(known) - 1] in _NAMESPACE_SEPARATORS:
            return _CATALOG[known]
    return opaque_type(name, default_provider)


def types_for_provider(provider: Provider) -> list[ResourceType]:
    """Return every catalogued type owned by ``provider``."""
    return [rt for rt in _CATALOG.values() if rt.provider is provider]


def types_in_category(category: Category) -> list[ResourceType]:
    """Return every catalogued type in ``category``."""
    return [rt for rt in _CATALOG.values() if rt.category is category]
