"""
The signed-in user's profile, as stored in profile.json.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from . import config
from .utils import read_json, write_json_atomic

logger = logging.getLogger(__name__)


def _first(entries: Any, field: str) -> str:
    """Value of `field` in the first record of a list, or ''."""
    if not isinstance(entries, list) or not entries:
        return ""
    first = entries[0]
    if not isinstance(first, dict):
        return ""
    value = first.get(field)
    return value if isinstance(value, str) else ""


@dataclass
class UserProfile:
    """Profile shown by the UI after login."""
    name: str = ""
    email: str = ""
    avatar_url: str = ""

    def to_dict(self) -> Dict[str, str]:
        """Convert to the dictionary written to disk and sent to the UI."""
        return {'name': self.name, 'email': self.email, 'avatar': self.avatar_url}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UserProfile':
        """Create from dictionary."""
        avatar = data.get('avatar', data.get('avatar_url', ""))
        return cls(
            name=str(data.get('name') or ""),
            email=str(data.get('email') or ""),
            avatar_url=str(avatar or ""),
        )

    @classmethod
    def from_people_response(cls, data: Dict[str, Any],
                             name_placeholder: str = config.PROFILE_NAME_PLACEHOLDER) -> 'UserProfile':
        """
        Normalize a People API response.

        Args:
            data: Decoded JSON body with optional names, emailAddresses and photos lists
            name_placeholder: Display name to use when the provider sends none

        Returns:
            UserProfile with missing fields set to empty strings
        """
        if not isinstance(data, dict):
            data = {}
        name = _first(data.get('names'), 'displayName') or name_placeholder
        email = _first(data.get('emailAddresses'), 'value')
        avatar = _first(data.get('photos'), 'url')
        if avatar.startswith("http://"):
            avatar = "https://" + avatar[len("http://"):]
        return cls(name=name, email=email, avatar_url=avatar)


class ProfileStore:
    """Reads and writes profile.json in the config directory."""

    def __init__(self, config_dir: str):
        self.config_dir = config_dir
        self.path = os.path.join(config_dir, config.PROFILE_FILE)

    def save(self, profile: UserProfile) -> None:
        write_json_atomic(self.path, profile.to_dict())
        logger.info(f"Saved profile to {self.path}")

    def load(self) -> Optional[UserProfile]:
        """The stored profile, or None if absent or unreadable."""
        if not os.path.exists(self.path):
            return None
        try:
            data = read_json(self.path)
        except (OSError, ValueError, RecursionError) as e:
            logger.warning(f"Could not read profile {self.path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Profile {self.path} is not a JSON object")
            return None
        return UserProfile.from_dict(data)

    def load_or_guest(self) -> Dict[str, str]:
        profile = self.load()
        if profile is None:
            return dict(config.GUEST_PROFILE)
        return profile.to_dict()

    def delete(self) -> bool:
        if not os.path.exists(self.path):
            return False
        os.remove(self.path)
        logger.info("Deleted profile")
        return True

    def exists(self) -> bool:
        return os.path.exists(self.path)
