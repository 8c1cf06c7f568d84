"""
Loading of local template and parameters files.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import jsonschema
import yaml

logger = logging.getLogger(__name__)


class CloudFormationYAMLLoader(yaml.SafeLoader):
    """YAML loader that can handle CloudFormation intrinsic functions."""
    pass


def cfn_tag_constructor(loader, tag_suffix, node):
    """Construct a CloudFormation short-form tag as its long-form mapping."""
    key = tag_suffix if tag_suffix in ("Ref", "Condition") else f"Fn::{tag_suffix}"
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
        if tag_suffix == "GetAtt" and "." in value:
            value = value.split(".", 1)
        return {key: value}
    elif isinstance(node, yaml.SequenceNode):
        return {key: loader.construct_sequence(node, deep=True)}
    elif isinstance(node, yaml.MappingNode):
        return {key: loader.construct_mapping(node, deep=True)}
    else:
        raise yaml.constructor.ConstructorError(
            None, None,
            f"could not determine a constructor for the tag '!{tag_suffix}'",
            node.start_mark)


cfn_tags = [
    'Ref', 'GetAtt', 'GetAZs', 'ImportValue', 'Join', 'Select',
    'Split', 'Sub', 'Transform', 'Base64', 'Cidr', 'FindInMap',
    'Condition', 'Equals', 'If', 'Not', 'And', 'Or'
]

for tag in cfn_tags:
    CloudFormationYAMLLoader.add_constructor(
        f'!{tag}',
        lambda loader, node, tag=tag: cfn_tag_constructor(loader, tag, node)
    )


PARAMETERS_SCHEMA: Dict[str, Any] = {
    "type": "array",
    "items": {
        "type": "object",
        "required": ["ParameterKey"],
        "properties": {
            "ParameterKey": {"type": "string"},
            "ParameterValue": {"type": "string"},
            "UsePreviousValue": {"type": "boolean"},
            "ResolvedValue": {"type": "string"},
        },
        "anyOf": [
            {"required": ["ParameterValue"]},
            {"required": ["UsePreviousValue"]},
        ],
    },
}


def parse_template(body: str) -> Dict[str, Any]:
    """Parse a template body, JSON or YAML."""
    stripped = body.lstrip()
    if stripped.startswith("{"):
        return dict(json.loads(body))
    return dict(yaml.load(body, Loader=CloudFormationYAMLLoader) or {})


def load_template_body(path: Union[str, Path]) -> str:
    """Read a template file as text."""
    template_path = Path(path)
    if not template_path.exists():
        raise FileNotFoundError(f"Template file not found: {template_path}")
    with open(template_path, 'r') as f:
        return f.read()


def load_template(path: Union[str, Path]) -> Dict[str, Any]:
    """Load and parse a template file."""
    return parse_template(load_template_body(path))


def load_parameters(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Load a parameters file.

    The file holds a JSON list of ParameterKey/ParameterValue entries,
    the same shape the CloudFormation API accepts.

    Raises:
        FileNotFoundError: The file does not exist
        ValueError: The file is not a valid parameters list
    """
    params_path = Path(path)
    if not params_path.exists():
        raise FileNotFoundError(f"Parameters file not found: {params_path}")

    with open(params_path, 'r') as f:
        try:
            parameters = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {params_path}: {e}") from e

    try:
        jsonschema.validate(parameters, PARAMETERS_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ValueError(f"Invalid parameters file {params_path}: {e.message}") from e

    logger.debug(f"Loaded {len(parameters)} parameters from {params_path}")
    return list(parameters)
