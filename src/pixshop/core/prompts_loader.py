"""
Load instruction templates from the bundled prompts.yaml file.

Templates are defined in src/pixshop/prompts.yaml and loaded once per process.
Use render_prompt(operation, **values) to fill one in.
"""

import importlib.resources
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from pixshop.utils.exceptions import ConfigurationError

# Module-level cache for parsed prompts
_prompts_data: dict[str, Any] | None = None


class OperationPrompt(BaseModel):
    """Schema for one operation's instruction template."""

    model_config = {"extra": "allow"}

    template: str = Field(..., min_length=1, description="Instruction template string")


class ExpandPrompt(OperationPrompt):
    """Expand carries the optional-prompt variants of its instruction line."""

    instruction_with_prompt: str = Field(..., min_length=1)
    instruction_default: str = Field(..., min_length=1)


class PromptsSchema(BaseModel):
    """Schema for prompts.yaml."""

    model_config = {"extra": "allow"}

    edit: OperationPrompt
    filter: OperationPrompt
    adjustment: OperationPrompt
    placement: OperationPrompt
    grid: OperationPrompt
    expand: ExpandPrompt


def _load_prompts() -> dict[str, Any]:
    """Load and parse prompts.yaml from the package. Cached after first call.

    Raises:
        ConfigurationError: If YAML is missing, malformed, or fails validation.
    """
    global _prompts_data
    if _prompts_data is not None:
        return _prompts_data

    try:
        resource = importlib.resources.files("pixshop").joinpath("prompts.yaml")
        with resource.open(encoding="utf-8") as f:
            raw = f.read()
    except FileNotFoundError as e:
        raise ConfigurationError(
            "prompts.yaml not found. This file is required and should be bundled with the package."
        ) from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse prompts.yaml: {e}. Check YAML syntax and formatting."
        ) from e

    if data is None:
        raise ConfigurationError("prompts.yaml is empty. Expected one section per operation.")

    try:
        PromptsSchema(**data)
    except ValidationError as e:
        errors = "\n".join(
            [f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        )
        raise ConfigurationError(
            f"Invalid prompts.yaml structure:\n{errors}\n"
            "Expected a section with a 'template' key for every operation."
        ) from e

    _prompts_data = data
    return _prompts_data


def get_prompt(key: str, subkey: str | None = None) -> str | None:
    """
    Get a prompt string from prompts.yaml.

    Args:
        key: Top-level key (e.g. "edit").
        subkey: Optional nested key (e.g. "template").

    Returns:
        The prompt string, or None if not found.
    """
    data = _load_prompts()
    value = data.get(key)
    if value is None:
        return None
    if subkey is not None:
        value = value.get(subkey) if isinstance(value, dict) else None
    return value if isinstance(value, str) else None


def render_prompt(operation: str, **values: Any) -> str:
    """
    Fill the template for operation with values.

    Raises:
        ConfigurationError: If the template is missing or references an unknown placeholder.
    """
    template = get_prompt(operation, "template")
    if not template:
        raise ConfigurationError(f"{operation}.template not found in prompts.yaml.")
    try:
        return template.format(**values).strip()
    except KeyError as e:
        raise ConfigurationError(
            f"{operation}.template uses placeholder {e} that was not provided."
        ) from e
