import json
from pathlib import Path
from typing import TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from chainpilot.errors import ConfigurationError
from chainpilot.models import WorkflowManifest

ConfigT = TypeVar("ConfigT", bound=BaseModel)


def load_manifest(workflow_dir: Path) -> WorkflowManifest:
    """
    Load a parsed WorkflowManifest from a manifest.yaml file in the given directory.

    Args:
        workflow_dir: The directory containing the manifest.yaml file.

    Returns:
        The parsed WorkflowManifest object.

    Raises:
        FileNotFoundError: If manifest.yaml does not exist.
        yaml.YAMLError: If the YAML is invalid.
        pydantic.ValidationError: If the manifest does not match the schema.
    """
    manifest_path = workflow_dir / "manifest.yaml"
    if not manifest_path.exists():
        raise FileNotFoundError(f"Manifest not found at {manifest_path}")

    with open(manifest_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    return WorkflowManifest(**data)


def load_workflow_config(path: str | Path, schema: type[ConfigT]) -> ConfigT:
    """
    Read a workflow config file (JSON or YAML) and validate it against `schema`.

    Raises:
        ConfigurationError: If the file is missing, unparsable, or invalid.
            Pydantic's first failing field is carried in `field`.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Config file not found at {config_path}")

    text = config_path.read_text(encoding="utf-8")
    try:
        if config_path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Config file {config_path} is not valid: {e}") from e

    return parse_workflow_config(data or {}, schema)


def parse_workflow_config(data: dict, schema: type[ConfigT]) -> ConfigT:
    """Validate an already-parsed config mapping."""
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ()))
        raise ConfigurationError(
            f"Invalid workflow config: {first.get('msg', 'validation failed')}",
            field=field,
            detail=str(e),
        ) from e
