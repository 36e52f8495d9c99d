"""YAML parser for agent profile files."""

import yaml
from pathlib import Path

from .models import AgentProfile


class ProfileParseError(Exception):
    """Raised when an agent profile YAML file cannot be parsed."""

    def __init__(self, message: str, file_path: Path):
        self.file_path = file_path
        super().__init__(f"{message} (file: {file_path})")


def parse_profile_yaml(file_path: Path) -> AgentProfile:
    """Parse a YAML agent profile file.

    The profile id is the file name without extension. Keys may use the
    wizard's camelCase names or snake_case.

    Args:
        file_path: Path to the YAML file.

    Returns:
        AgentProfile instance.

    Raises:
        ProfileParseError: If the file cannot be parsed or required fields are missing.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ProfileParseError("File not found", file_path)
    except yaml.YAMLError as e:
        raise ProfileParseError(f"Invalid YAML syntax: {e}", file_path)
    except OSError as e:
        raise ProfileParseError(f"Failed to read file: {e}", file_path)

    if not isinstance(data, dict):
        raise ProfileParseError("YAML root must be a dictionary", file_path)

    if not (data.get('name') or data.get('businessName') or data.get('business_name')):
        raise ProfileParseError("Missing required field: name", file_path)

    for mapping_field in ('tools', 'integrations', 'weeklyHours', 'weekly_hours', 'socialMedia', 'social_media'):
        if mapping_field in data and not isinstance(data[mapping_field], (dict, type(None))):
            raise ProfileParseError(f"Field '{mapping_field}' must be a mapping", file_path)

    try:
        return AgentProfile.from_dict(data, profile_id=file_path.stem)
    except (TypeError, ValueError, AttributeError) as e:
        raise ProfileParseError(f"Failed to construct AgentProfile: {e}", file_path)
