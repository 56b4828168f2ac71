"""
Configuration management for pixshop.

Holds the Gemini credential (relay side), the relay URL (client side), model
selection, timeouts and the canvas geometry knobs.
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from pixshop.logging_config import get_logger
from pixshop.utils.exceptions import ConfigurationError

logger = get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image-preview"
DEFAULT_RELAY_HOST = "127.0.0.1"
DEFAULT_RELAY_PORT = 8000
DEFAULT_RELAY_URL = f"http://{DEFAULT_RELAY_HOST}:{DEFAULT_RELAY_PORT}/api/generate"
DEFAULT_TRANSPORT = "relay"

# Transport ids accepted by validate(); do not import from pixshop.core.transports (circular import)
KNOWN_TRANSPORTS = ("relay", "direct")


@dataclass
class Config:
    """Configuration for the pixshop client and relay."""

    # Gemini credential lives only where the relay (or the direct transport) runs
    gemini_api_key: str = field(default="", repr=False)
    gemini_base_url: str = DEFAULT_GEMINI_BASE_URL
    image_model: str = DEFAULT_IMAGE_MODEL

    # Client side
    relay_url: str = DEFAULT_RELAY_URL
    default_transport: str = DEFAULT_TRANSPORT

    # Relay server
    relay_host: str = DEFAULT_RELAY_HOST
    relay_port: int = DEFAULT_RELAY_PORT
    cors_origins: tuple[str, ...] = ("*",)

    # Canvas geometry
    marker_radius_ratio: float = 0.015  # fraction of the shorter side
    expand_ratio: float = 0.5  # fraction of the expanded dimension added per expand
    grid_cell_size: int = 512
    max_image_pixels: int = 4_000_000

    # Timeout Configuration (seconds)
    generation_timeout: int = 180

    # Debug: log raw request/response with image data truncated
    debug_api: bool = False

    _validated: bool = field(default=False, repr=False)

    @classmethod
    def from_env(cls) -> "Config":
        """
        Create a Config instance from environment variables.

        Environment variables:
            GEMINI_API_KEY: Required by the relay server and the direct transport
            PIXSHOP_GEMINI_BASE_URL: Optional Gemini REST base URL
            PIXSHOP_IMAGE_MODEL: Optional image model id
            PIXSHOP_RELAY_URL: Relay endpoint used by the relay transport
            PIXSHOP_TRANSPORT: Default transport ('relay' or 'direct')
            PIXSHOP_RELAY_HOST / PIXSHOP_RELAY_PORT: Bind address for `pixshop serve`
            PIXSHOP_CORS_ORIGINS: Comma-separated allowed origins, or '*'
            PIXSHOP_TIMEOUT: Request timeout in seconds
            PIXSHOP_DEBUG_API: 1/true/yes to log truncated payloads

        Returns:
            Config instance populated from environment
        """

        def _int_env(name: str, default: int) -> int:
            val = os.getenv(name)
            if val is None or val == "":
                return default
            try:
                return int(val)
            except ValueError as e:
                raise ConfigurationError(f"{name} must be an integer, got {val!r}.") from e

        raw_origins = os.getenv("PIXSHOP_CORS_ORIGINS", "*").strip()
        if not raw_origins or raw_origins == "*":
            cors_origins: tuple[str, ...] = ("*",)
        else:
            cors_origins = tuple(o.strip() for o in raw_origins.split(",") if o.strip())

        debug_api = os.getenv("PIXSHOP_DEBUG_API", "").strip().lower() in ("1", "true", "yes")

        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            gemini_base_url=os.getenv("PIXSHOP_GEMINI_BASE_URL") or DEFAULT_GEMINI_BASE_URL,
            image_model=os.getenv("PIXSHOP_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            relay_url=os.getenv("PIXSHOP_RELAY_URL") or DEFAULT_RELAY_URL,
            default_transport=os.getenv("PIXSHOP_TRANSPORT") or DEFAULT_TRANSPORT,
            relay_host=os.getenv("PIXSHOP_RELAY_HOST") or DEFAULT_RELAY_HOST,
            relay_port=_int_env("PIXSHOP_RELAY_PORT", DEFAULT_RELAY_PORT),
            cors_origins=cors_origins,
            generation_timeout=_int_env("PIXSHOP_TIMEOUT", 180),
            debug_api=debug_api,
        )

    def validate(self, require_api_key: bool = False) -> None:
        """
        Validate the configuration.

        The API key is only required where Gemini is called from this process:
        the relay server and the direct transport. Pass require_api_key=True
        there; it is implied when default_transport is 'direct'.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        logger.debug("Validating config")

        if self.default_transport not in KNOWN_TRANSPORTS:
            raise ConfigurationError(
                f"Unknown default_transport: {self.default_transport!r}. "
                f"Must be one of: {', '.join(KNOWN_TRANSPORTS)}."
            )
        if not 0 < self.marker_radius_ratio < 0.5:
            raise ConfigurationError(
                f"marker_radius_ratio must be between 0 and 0.5, got {self.marker_radius_ratio}."
            )
        if self.expand_ratio <= 0:
            raise ConfigurationError(f"expand_ratio must be positive, got {self.expand_ratio}.")
        if self.grid_cell_size <= 0:
            raise ConfigurationError(
                f"grid_cell_size must be positive, got {self.grid_cell_size}."
            )
        if self.generation_timeout <= 0:
            raise ConfigurationError(
                f"generation_timeout must be positive, got {self.generation_timeout}."
            )
        if self.default_transport == "relay" and not self.relay_url:
            raise ConfigurationError(
                "Relay URL is required for the relay transport. Set PIXSHOP_RELAY_URL."
            )
        if (require_api_key or self.default_transport == "direct") and not self.gemini_api_key:
            raise ConfigurationError(
                "Gemini API key is required. Set GEMINI_API_KEY environment variable "
                "or provide it explicitly."
            )

        self._validated = True

    def is_valid(self) -> bool:
        """Return True if validate() has completed successfully."""
        return self._validated

    def set_api_key(self, api_key: str) -> None:
        """
        Set the Gemini API key.

        Raises:
            ConfigurationError: If the key is empty
        """
        if not api_key or not api_key.strip():
            raise ConfigurationError("API key cannot be empty")
        self.gemini_api_key = api_key.strip()
        self._validated = False

    def set_image_model(self, model: str) -> None:
        """
        Set the image model id.

        Raises:
            ConfigurationError: If model is empty
        """
        if not model:
            raise ConfigurationError("Model ID cannot be empty")
        self.image_model = model


# Global configuration instance
_global_config: Config | None = None


def get_config() -> Config:
    """Return the process-wide Config, loading it from the environment on first use."""
    global _global_config
    if _global_config is None:
        _global_config = Config.from_env()
    return _global_config


def set_config(config: Config) -> None:
    """Replace the process-wide Config."""
    global _global_config
    _global_config = config
