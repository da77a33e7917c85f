"""cf-utils data models.

Pure data structures built from CloudFormation API responses. No client coupling.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class StackStatus:
    """Stack and change set status groupings used when polling."""

    SUCCESS = frozenset({"CREATE_COMPLETE", "UPDATE_COMPLETE"})
    FAILED = frozenset(
        {
            "ROLLBACK_COMPLETE",
            "ROLLBACK_FAILED",
            "CREATE_FAILED",
            "UPDATE_FAILED",
            "DELETE_FAILED",
            "UPDATE_ROLLBACK_COMPLETE",
            "UPDATE_ROLLBACK_FAILED",
        }
    )
    DELETED = "DELETE_COMPLETE"

    CHANGE_SET_SUCCESS = frozenset({"CREATE_COMPLETE", "UPDATE_COMPLETE", "DELETE_COMPLETE"})
    CHANGE_SET_FAILED = "FAILED"


class StackAction(StrEnum):
    """What an upsert did to the stack."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class NoOpReason(StrEnum):
    """Provider messages that mean "nothing to change" rather than failure.

    CloudFormation reports these only in free-form messages (no error code),
    so matching is by substring.
    """

    NO_UPDATES = "No updates are to be performed"
    NO_CHANGES = "didn't contain changes"
    CLI_NO_CHANGES = "No changes to deploy"

    @classmethod
    def match(cls, text: str | None) -> NoOpReason | None:
        """Return the no-op reason found in text, if any."""
        if not text:
            return None
        for reason in cls:
            if reason.value in text:
                return reason
        return None


@dataclass(frozen=True)
class Stack:
    """A CloudFormation stack as returned by describe_stacks."""

    name: str
    stack_id: str
    status: str
    outputs: dict[str, str] = field(default_factory=dict)
    parameters: dict[str, str] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_description(cls, data: Mapping[str, Any]) -> Stack:
        return cls(
            name=data["StackName"],
            stack_id=data.get("StackId", ""),
            status=data["StackStatus"],
            outputs={o["OutputKey"]: o["OutputValue"] for o in data.get("Outputs", [])},
            parameters={
                p["ParameterKey"]: p.get("ParameterValue", "") for p in data.get("Parameters", [])
            },
            raw=dict(data),
        )

    def bucket_outputs(self) -> dict[str, str]:
        """Outputs whose key names an S3 bucket (key ends with "Bucket")."""
        return {k: v for k, v in self.outputs.items() if k.endswith("Bucket")}


@dataclass(frozen=True)
class UpsertOptions:
    """Options for upsert_stack.

    contains_transforms=None means "scan the template to find out".
    """

    review: bool = False
    s3_bucket: str | None = None
    s3_prefix: str = ""
    contains_transforms: bool | None = None
    via_cli: bool = False

    @classmethod
    def coerce(cls, options: UpsertOptions | bool | None) -> UpsertOptions:
        """Accept a bare bool as shorthand for review=<bool>."""
        if options is None:
            return cls()
        if isinstance(options, bool):
            return cls(review=options)
        return options


@dataclass(frozen=True)
class UpsertRequest:
    """Input to upsert_stack. `template` is a local path or an S3 https URL."""

    stack_name: str
    template: str
    parameters: tuple[tuple[str, str], ...] = ()
    options: UpsertOptions = field(default_factory=UpsertOptions)

    @classmethod
    def build(
        cls,
        stack_name: str,
        template: str,
        parameters: Mapping[str, str] | None = None,
        options: UpsertOptions | bool | None = None,
    ) -> UpsertRequest:
        return cls(
            stack_name=stack_name,
            template=template,
            parameters=tuple((parameters or {}).items()),
            options=UpsertOptions.coerce(options),
        )

    @property
    def cfn_parameters(self) -> list[dict[str, str]]:
        return to_cfn_parameters(dict(self.parameters))


@dataclass(frozen=True)
class UpsertOutcome:
    """Result of a successful upsert.

    `stack` is None only when a change set turned out to be a no-op and the
    stack was therefore not touched.
    """

    action: StackAction
    stack: Stack | None


def to_cfn_parameters(parameters: Mapping[str, str]) -> list[dict[str, str]]:
    """{"Key": "Value"} -> [{"ParameterKey": "Key", "ParameterValue": "Value"}]"""
    return [{"ParameterKey": k, "ParameterValue": v} for k, v in parameters.items()]


def parse_parameter_overrides(pairs: tuple[str, ...] | list[str]) -> dict[str, str]:
    """Parse KEY=VALUE strings (as given on the command line)."""
    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid parameter (expected KEY=VALUE): {pair}")
        result[key] = value
    return result


@dataclass(frozen=True)
class ResourceNames:
    """Naming conventions for project resources and parameters.

    Core resources:   <prefix><stage>-<suffix>
    Org resources:    <prefix><org>-<stage>-<suffix>
    Tenant resources: <prefix><tenant>-<stage>-<suffix>
    Parameters add the region after the stage.
    """

    project_prefix: str
    stage: str
    region: str
    organization: str | None = None
    tenant: str | None = None

    @property
    def resource_prefix(self) -> str:
        return f"{self.project_prefix}{self.stage}-"

    def resource(self, suffix: str) -> str:
        return self.resource_prefix + suffix

    def org_resource(self, suffix: str) -> str:
        return f"{self.project_prefix}{self._require('organization')}-{self.stage}-{suffix}"

    def tenant_resource(self, suffix: str) -> str:
        return f"{self.project_prefix}{self._require('tenant')}-{self.stage}-{suffix}"

    @property
    def parameter_prefix(self) -> str:
        return f"{self.project_prefix}{self.stage}-{self.region}-"

    def parameter(self, name: str) -> str:
        return self.parameter_prefix + name

    def org_parameter(self, name: str) -> str:
        return f"{self.project_prefix}{self._require('organization')}-{self.stage}-{self.region}-{name}"

    def tenant_parameter(self, name: str) -> str:
        return f"{self.project_prefix}{self._require('tenant')}-{self.stage}-{self.region}-{name}"

    def _require(self, attr: str) -> str:
        value = getattr(self, attr)
        if not value:
            raise ValueError(f"{attr} is unset")
        return value
