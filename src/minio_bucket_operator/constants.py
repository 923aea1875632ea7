"""Constants for the MinIO Bucket Operator."""

# API Group
API_GROUP = "minio.ixday.github.io"
API_VERSION = "v1alpha1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_BUCKET = "Bucket"
KIND_POLICY = "Policy"

PLURAL_BUCKETS = "buckets"
PLURAL_POLICIES = "policies"

# Finalizers
FINALIZER_BUCKET = "bucket.ixday.github.io/finalizer"
FINALIZER_POLICY = "policy.ixday.github.io/finalizer"

# Annotations
ANNOTATION_BUCKET_SECRET = "bucket.ixday.github.io/secret"
ANNOTATION_POLICY_SECRET = "policy.ixday.github.io/secret"
ANNOTATION_SECRET_VERSION = f"{API_GROUP}/secret-version"
ANNOTATION_MANAGED_BY = f"{API_GROUP}/managed-by"

# Field Manager
FIELD_MANAGER = "minio-bucket-operator"
CONTROLLER_NAME = "minio-bucket-operator"

# Derived external names join their parts with this separator
SEPARATOR = "."

# Credential secret fields
SECRET_FIELD_USER = "user"
SECRET_FIELD_PASSWORD = "password"
SECRET_FIELD_ENDPOINT = "endpoint"

DEFAULT_CONNECTION_SECRET = "minio-controller-secret"

# Condition Types
COND_AVAILABLE = "Available"
COND_BUCKET_EXISTS = "BucketExists"

# Condition Reasons
REASON_RECONCILING = "Reconciling"
REASON_BUCKET_DOES_NOT_EXIST = "BucketDoesNotExist"
REASON_INVALID_POLICY = "InvalidPolicy"
REASON_SECRET_FAILED = "SecretCreationFailed"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_BUCKET_CREATED = "BucketCreated"
EVENT_REASON_BUCKET_DELETED = "BucketDeleted"
EVENT_REASON_ANONYMOUS_POLICY_UPDATED = "AnonymousPolicyUpdated"
EVENT_REASON_POLICY_APPLIED = "PolicyApplied"
EVENT_REASON_POLICY_DELETED = "PolicyDeleted"
EVENT_REASON_POLICY_FAILED = "PolicyFailed"
EVENT_REASON_CREDENTIALS_CREATED = "CredentialsCreated"

# Policy document
POLICY_VERSION = "2012-10-17"
ARN_PREFIX = "arn:aws:s3:::"
