"""
Provisioner Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Cluster lifecycle
CLUSTER_TYPES = ("dedicated", "shared")

# Deployment status codes written by the control plane itself
DEPLOYMENT_INITIATED = "DEPLOYMENT_INITIATED"
DEPLOYMENT_FAILED = "DEPLOYMENT_FAILED"
UPDATE_FAILED = "UPDATE_FAILED"
STACK_NOT_FOUND = "STACK_NOT_FOUND"
NOT_DEPLOYED = "NOT_DEPLOYED"
STATUS_CHECK_FAILED = "STATUS_CHECK_FAILED"

# Network Configuration
PRIVATE_NETWORKS = ("10.0.0.0/8", "172.16.0.0/12", "192.168.0.0/16")
SUBNET_TIERS = ("public", "private_app", "private_db")
AVAILABILITY_ZONE_COUNT = 3
# Parent block is split into 16 equal slots; 9 are used, 7 are headroom
SUBNET_SPLIT_BITS = 4
# Smallest subnet AWS accepts
MIN_SUBNET_PREFIX = 28

# Stack Configuration
DEFAULT_STACK_NAME_PREFIX = "control-plane"
# Leaves room for the prefix and id suffix inside the stack name limit
CLUSTER_NAME_MAX_LENGTH = 100
STACK_NAME_MAX_LENGTH = 128
STACK_TIMEOUT_MINUTES = 60
STACK_CAPABILITIES = ("CAPABILITY_IAM", "CAPABILITY_NAMED_IAM")
TEMPLATE_KEY_SUFFIX = "-main-template.yaml"
DEFAULT_MANAGED_BY = "ControlPlaneAPI"
RECENT_EVENTS_LIMIT = 10

# Cross-account Configuration
STS_MIN_SESSION_DURATION = 900
STS_MAX_SESSION_DURATION = 43200
DEFAULT_SESSION_DURATION = 3600
ACCOUNT_ID_PATTERN = r"^\d{12}$"
SESSION_NAME_MAX_LENGTH = 64

# AWS Configuration
DEFAULT_AWS_REGION = "us-east-1"
DEFAULT_AWS_MAX_ATTEMPTS = 3

# Database Configuration
DEFAULT_DATABASE_URL = "postgresql://localhost/provisioner"

# Log Configuration
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
