"""Mappers for AWS resource types."""

from homeport.mappers.aws.rds import RDSInstanceMapper
from homeport.mappers.aws.s3 import S3BucketMapper

__all__ = ["RDSInstanceMapper", "S3BucketMapper"]
