"""AWS parsers."""

from homeport.parsers.aws.cloudformation import CloudFormationParser
from homeport.parsers.aws.terraform import AWSTerraformParser
from homeport.parsers.aws.tfstate import AWSTFStateParser

__all__ = ["AWSTFStateParser", "AWSTerraformParser", "CloudFormationParser"]
