"""Constants used throughout Homeport."""

# Default locations
DEFAULT_GCP_REGION = "us-central1"
DEFAULT_AWS_REGION = "us-east-1"
GLOBAL_REGION = "global"

# Terraform state
TFSTATE_SUPPORTED_VERSIONS = (3, 4)
TFSTATE_MODE_MANAGED = "managed"
TERRAFORM_MODULE_PREFIX = "module."

# File patterns
TFSTATE_PATTERNS = ("*.tfstate",)
TERRAFORM_PATTERNS = ("*.tf",)
YAML_PATTERNS = ("*.yaml", "*.yml")
CLOUDFORMATION_PATTERNS = ("*.yaml", "*.yml", "*.json", "*.template")

# Directories never descended into during discovery
IGNORED_DIRECTORIES = frozenset(
    {".git", ".terraform", "node_modules", "__pycache__", ".venv"}
)

# Live API target schemes
GCP_API_SCHEME = "gcp://"

# Regular expression patterns
REGEX_DM_REFERENCE = r"\$\(ref\.([^.)]+)"
REGEX_CFN_SUB_VARIABLE = r"\$\{([A-Za-z0-9]+)(?:\.[A-Za-z0-9.]+)?\}"

# Metadata key prefixes
METADATA_OUTPUT_PREFIX = "output."
METADATA_VARIABLE_PREFIX = "var."

# Redaction marker for sensitive values
REDACTED_VALUE = "<redacted>"

# Generated services
DEFAULT_NETWORK = "homeport"
DEFAULT_RESTART_POLICY = "unless-stopped"
LABEL_PREFIX = "homeport"
