import json
import os
import platform
import shutil
import stat
import logging
from typing import Any, Callable, Dict

from . import config

logger = logging.getLogger(__name__)

# notifier(event, payload) forwards an event to the UI layer
Notifier = Callable[[str, Dict[str, Any]], None]

if platform.system() == "Windows":
    import win32api
    import win32con
    import win32security


def default_config_dir() -> str:
    """Per-user directory holding the profile and key files."""
    return os.path.join(os.path.expanduser("~"), config.CONFIG_DIR_NAME)


def ensure_dir(path: str) -> str:
    os.makedirs(path, exist_ok=True)
    return path


def read_json(path: str) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def write_json_atomic(path: str, data: Dict[str, Any]) -> None:
    """
    Write pretty JSON next to the target, then move it into place and
    restrict it to the owner.
    """
    ensure_dir(os.path.dirname(path))
    tmp_path = path + '.tmp'
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        shutil.move(tmp_path, path)
    except Exception as e:
        logger.error(f"Error writing {path}: {e}", exc_info=True)
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise

    if not restrict_file_permissions(path):
        logger.warning(f"Failed to set secure file permissions for {path}.")


def restrict_file_permissions(filepath: str) -> bool:
    """
    Make a file readable/writable by its owner only.

    POSIX gets mode 600. On Windows the DACL is replaced with one read/write
    entry for the current user and marked protected, so nothing is inherited
    from the config directory.

    Returns:
        False if the Windows ACL could not be applied
    """
    if platform.system() != 'Windows':
        os.chmod(filepath, stat.S_IRUSR | stat.S_IWUSR)
        return True

    try:
        owner_sid = win32security.LookupAccountName(None, win32api.GetUserName())[0]
        dacl = win32security.ACL()
        dacl.AddAccessAllowedAce(
            win32security.ACL_REVISION,
            win32con.GENERIC_READ | win32con.GENERIC_WRITE,
            owner_sid
        )
        win32security.SetNamedSecurityInfo(
            filepath,
            win32security.SE_FILE_OBJECT,
            win32security.DACL_SECURITY_INFORMATION | win32security.PROTECTED_DACL_SECURITY_INFORMATION,
            None, None, dacl, None
        )
    except win32api.error as e:
        logger.error(f"Failed to restrict Windows ACL on {filepath}: {e}")
        return False
    return True
