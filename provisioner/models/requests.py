"""
Request Models

Pydantic models for caller-supplied deployment input.
"""

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from provisioner.constants import ACCOUNT_ID_PATTERN
from provisioner.exceptions import ValidationError


class StackParameter(BaseModel):
    ParameterKey: str = Field(min_length=1)
    ParameterValue: str


class StackTag(BaseModel):
    Key: str = Field(min_length=1)
    Value: str


class DelegationRequest(BaseModel):
    """Cross-account target for one remote operation."""

    target_account_id: str = Field(pattern=ACCOUNT_ID_PATTERN)
    role_name: str = Field(min_length=1)
    external_id: Optional[str] = None


class DeploymentOverrides(BaseModel):
    """Parameters and tags appended after the built-in defaults."""

    parameters: List[StackParameter] = []
    tags: List[StackTag] = []

    def parameter_dicts(self) -> List[Dict[str, str]]:
        return [p.model_dump() for p in self.parameters]

    def tag_dicts(self) -> List[Dict[str, str]]:
        return [t.model_dump() for t in self.tags]

    @classmethod
    def from_pairs(
        cls, parameters: Iterable[str] = (), tags: Iterable[str] = ()
    ) -> "DeploymentOverrides":
        """
        Build overrides from CLI-style pairs.

        From: ["Key1=Value1", "Key2=Value2"]
        To: [{"ParameterKey": "Key1", "ParameterValue": "Value1"}, ...]

        Raises:
            ValidationError: If a pair has no '='
        """
        return parse_overrides(
            {
                "parameters": [
                    {"ParameterKey": key, "ParameterValue": value}
                    for key, value in _split_pairs(parameters)
                ],
                "tags": [
                    {"Key": key, "Value": value} for key, value in _split_pairs(tags)
                ],
            }
        )


def parse_overrides(data: Optional[Dict[str, Any]]) -> DeploymentOverrides:
    """
    Validate raw override input.

    Raises:
        ValidationError: If the input does not match the override schema
    """
    try:
        return DeploymentOverrides.model_validate(data or {})
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid deployment parameters", context=_summarize(e)
        )


def parse_delegation(data: Optional[Dict[str, Any]]) -> Optional[DelegationRequest]:
    """
    Validate raw cross-account input; None means same-account.

    Raises:
        ValidationError: If the input does not match the delegation schema
    """
    if not data:
        return None
    try:
        return DelegationRequest.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid cross-account configuration", context=_summarize(e)
        )


def _split_pairs(pairs: Iterable[str]) -> List[tuple]:
    result = []
    for pair in pairs:
        if "=" not in pair:
            raise ValidationError(
                f"Expected KEY=VALUE, got '{pair}'",
            )
        key, value = pair.split("=", 1)
        result.append((key.strip(), value))
    return result


def _summarize(error: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in item['loc'])}: {item['msg']}"
        for item in error.errors()
    )
