"""cf-utils - CloudFormation stack reconciliation toolkit."""

__version__ = "0.1.0"
