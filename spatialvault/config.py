"""
Configuration constants for the Spatialshot credential subsystem.
"""

import os

# Application Metadata
APP_VERSION = "1.0"  # Use: Current version of the credential subsystem. Type: str. Range: Semantic versioning string (e.g., "1.0.0")
APP_NAME = "Spatialshot"  # Use: Application name shown on the browser auth page and in logs. Type: str. Range: Any valid string.
CONFIG_DIR_NAME = ".spatialshot"  # Use: Name of the hidden directory within the user's home directory where profile and key files are stored. Type: str. Range: Any valid directory name.

# File and Directory Names
PROFILE_FILE = "profile.json"  # Use: Filename for the signed-in user's profile. Type: str. Range: Any valid filename.
KEY_FILE_SUFFIX = "_key.json"  # Use: Suffix appended to a provider identifier to name its encrypted secret file (e.g. "gemini_key.json"). Type: str. Range: Any valid filename suffix.

# Security Settings
SALT_SIZE = 16  # Use: Size of the per-secret salt in bytes for key derivation. Type: int. Range: 16 bytes (128 bits); stored payloads with any other length are rejected.
KEY_SIZE = 32  # Use: Size of the encryption key in bytes. Corresponds to AES-256. Type: int. Range: 32 bytes.
NONCE_SIZE = 12  # Use: Size of the Nonce (Number used once) in bytes for AES-GCM. Type: int. Range: 12 bytes (96 bits) is the recommended size for GCM.
TAG_SIZE = 16  # Use: Size of the authentication tag in bytes for AES-GCM. Always the last TAG_SIZE bytes of ciphertext||tag. Type: int. Range: 16 bytes (128 bits).
PBKDF2_ITERATIONS = 100000  # Use: Number of iterations for PBKDF2-HMAC-SHA256 key derivation. Type: int. Range: At least 100,000. Changing it makes existing key files unreadable.
PAYLOAD_VERSION = 1  # Use: Version number written into every encrypted secret payload. Type: int. Range: Positive integer.
PAYLOAD_ALGORITHM = "aes-256-gcm"  # Use: Algorithm literal written into every encrypted secret payload. Type: str. Range: "aes-256-gcm"

# Provider Identifiers
PROVIDER_NAME_PATTERN = r"[A-Za-z0-9][A-Za-z0-9_-]{0,63}"  # Use: Regular expression a provider identifier must match before it can name a key file. Type: str (regex). Range: Must not allow path separators.
GEMINI_PROVIDER = "gemini"  # Use: Provider identifier for the Gemini API key. Type: str. Range: Matches PROVIDER_NAME_PATTERN.
IMGBB_PROVIDER = "imgbb"  # Use: Provider identifier for the ImgBB API key. Saving it closes the ImgBB setup window. Type: str. Range: Matches PROVIDER_NAME_PATTERN.

# OAuth Settings
REDIRECT_HOST = "127.0.0.1"  # Use: Interface the loopback listener binds to. Type: str. Range: A loopback address.
REDIRECT_PORT = 3456  # Use: Fixed port of the loopback listener. Changing it requires updating the redirect URI registered with the OAuth provider. Type: int. Range: 1024-65535.
REDIRECT_URI = f"http://localhost:{REDIRECT_PORT}"  # Use: Redirect URI sent to the provider. Must match the registered URI exactly (scheme, host, port). Type: str (f-string). Range: Derived from REDIRECT_PORT.
USER_INFO_ENDPOINT = "https://people.googleapis.com/v1/people/me?personFields=names,emailAddresses,photos"  # Use: Profile endpoint queried with the access token. Type: str. Range: Valid HTTPS URL.
OAUTH_SCOPE = "profile email"  # Use: Space-separated scopes requested during authorization. Type: str. Range: Scopes understood by the provider.
OAUTH_CLIENT_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data", "credentials.json")  # Use: Bundled OAuth client configuration ("web" or "installed" variant). Type: str. Range: Valid file path.
OAUTH_CLIENT_FILE_ENV = "SPATIALSHOT_OAUTH_CLIENT_FILE"  # Use: Environment variable that, when set, points at an OAuth client configuration file used instead of the bundled one. Type: str. Range: Any environment variable name.
HTTP_TIMEOUT_SECONDS = 20.0  # Use: Timeout for token exchange and profile requests. Type: float. Range: Positive number.
CALLBACK_TIMEOUT_SECONDS = 300  # Use: How long the loopback listener waits for the browser redirect before giving up. Type: int. Range: Positive integer; None disables the limit.
CALLBACK_POLL_INTERVAL_SECONDS = 0.5  # Use: Upper bound on a single accept wait, so cancellation and timeout are noticed promptly. Type: float. Range: Positive number.
CALLBACK_READ_TIMEOUT_SECONDS = 2.0  # Use: Longest wait for a connected client to send its request line; idle (preconnect) sockets are dropped after this. Type: float. Range: Positive number.

# Profile Settings
GUEST_PROFILE = {"name": "Guest", "email": "", "avatar": ""}  # Use: Profile returned to the UI when no profile file exists or it is unreadable. Type: dict[str, str]. Range: Keys "name", "email", "avatar".
PROFILE_NAME_PLACEHOLDER = ""  # Use: Display name used when the provider returns none. Type: str. Range: Any string; empty keeps the field blank.

# UI Events
EVENT_AUTH_SUCCESS = "auth-success"  # Use: Event emitted with the profile payload after a successful login. Type: str. Range: Any string.
EVENT_IMGBB_CONFIGURED = "close-imgbb-window"  # Use: Event emitted after the ImgBB key is saved so the UI can close its setup window. Type: str. Range: Any string.

# Auth Page Settings
AUTH_PAGE_TEMPLATE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "data", "auth_page.html")  # Use: HTML template served to the browser when the flow ends. Type: str. Range: Valid file path.
PAGE_COLOR_SUCCESS = "#202124"  # Use: Title color on the success page. Type: str. Range: Any CSS color.
PAGE_COLOR_ERROR = "#d93025"  # Use: Title color on the error pages. Type: str. Range: Any CSS color.

# Logging
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'  # Use: Format string passed to logging.basicConfig by the entry point. Type: str. Range: Valid logging format string.
