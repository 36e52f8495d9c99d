"""Profile registry for loading YAML-defined agent profiles."""

import logging
from pathlib import Path
from typing import Optional

from django.conf import settings

from .models import AgentProfile
from .yaml_parser import parse_profile_yaml, ProfileParseError

logger = logging.getLogger(__name__)


class ProfileNotFoundError(Exception):
    """Raised when a requested agent profile cannot be found."""
    pass


class ProfileRegistry:
    """Read-only source of :class:`AgentProfile` snapshots.

    Loads profiles lazily on first access from ``settings.PROFILES_DIR``
    (``./profiles/*.yml``) or an explicit directory.
    """

    def __init__(self, directory: Optional[Path] = None):
        self._directory = directory
        self._profiles: dict[str, AgentProfile] = {}
        self._loaded = False

    @property
    def directory(self) -> Path:
        return Path(self._directory or settings.PROFILES_DIR)

    def get_profile(self, profile_id: str) -> AgentProfile:
        """Get a profile by ID.

        Args:
            profile_id: The profile identifier (YAML filename without extension).

        Raises:
            ProfileNotFoundError: If the profile cannot be found.
        """
        if not self._loaded:
            self._load_profiles()

        profile = self._profiles.get(profile_id)
        if profile is None:
            raise ProfileNotFoundError(f"Profile '{profile_id}' not found in registry")

        return profile

    def list_profiles(self) -> list[str]:
        if not self._loaded:
            self._load_profiles()

        return list(self._profiles.keys())

    def _load_profiles(self):
        """Load all profiles from the profiles directory."""
        if self._loaded:
            return

        profiles_dir = self.directory
        if not profiles_dir.exists():
            logger.warning(f"Profiles directory not found: {profiles_dir}")
            self._loaded = True
            return

        # Sorted for deterministic loading
        yaml_files = sorted(profiles_dir.glob('*.yml')) + sorted(profiles_dir.glob('*.yaml'))

        for yaml_file in yaml_files:
            try:
                profile = parse_profile_yaml(yaml_file)
            except ProfileParseError as e:
                logger.error(f"Failed to parse profile file: {e}")
                raise
            self._profiles[profile.profile_id] = profile
            logger.debug(f"Loaded profile: {profile.profile_id} from {yaml_file.name}")

        logger.info(f"Loaded {len(self._profiles)} profiles from {profiles_dir}")
        self._loaded = True

    def reload(self):
        """Force reload of all profiles from disk."""
        self._profiles.clear()
        self._loaded = False
        self._load_profiles()
