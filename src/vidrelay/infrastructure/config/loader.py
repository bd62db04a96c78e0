"""Configuration loading and validation."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Dict, Any

import yaml
from dotenv import load_dotenv, find_dotenv

from vidrelay.domain.models import CompressionLimits
from vidrelay.domain.exceptions import ConfigurationError, ValidationError
from vidrelay.shared.logging import get_logger

logger = get_logger(__name__)

COMPRESSOR_CHOICES = ('auto', 'ffmpeg', 'passthrough')


@dataclass
class AppConfig:
    """Configuration for uploads, delivery and reporting."""

    # Function layer
    api_base_url: str = "http://localhost:8888/.netlify/functions"
    request_timeout: float = 30.0
    cache_ttl: float = 3600.0

    # Transcoder
    compressor: str = "auto"  # 'auto', 'ffmpeg', 'passthrough'
    ready_timeout: float = 30.0
    init_retry_delay: float = 1.0
    max_init_attempts: Optional[int] = None
    poll_interval: float = 0.1
    ffmpeg_binary: str = "ffmpeg"
    ffprobe_binary: str = "ffprobe"
    temp_dir: Optional[Path] = None

    # Compression limits
    max_width: int = 1280
    max_height: int = 720
    target_fps: int = 30
    max_output_size: int = 100 * 1024 * 1024
    min_bitrate: int = 500_000
    preset: str = "fast"

    # Upload policy
    max_upload_size: int = 5 * 1024 * 1024 * 1024
    compression_share: float = 50.0
    cleanup_orphans: bool = False

    # Reporting
    report_limit: int = 10
    report_window: float = 3600.0
    discord_webhook_url: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self):
        if not self.api_base_url:
            raise ConfigurationError("api_base_url is required")

        if self.compressor not in COMPRESSOR_CHOICES:
            raise ConfigurationError(f"Invalid compressor: {self.compressor}")

        for name in ('request_timeout', 'cache_ttl', 'ready_timeout', 'report_window'):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got: {getattr(self, name)}")

        if self.init_retry_delay < 0:
            raise ConfigurationError(f"init_retry_delay cannot be negative, got: {self.init_retry_delay}")

        if self.max_init_attempts is not None and self.max_init_attempts < 1:
            raise ConfigurationError(f"max_init_attempts must be at least 1, got: {self.max_init_attempts}")

        if not 0.1 <= self.poll_interval <= 0.5:
            raise ConfigurationError(f"poll_interval must be within 0.1-0.5s, got: {self.poll_interval}")

        if not 0 < self.compression_share < 100:
            raise ConfigurationError(f"compression_share must be between 0 and 100, got: {self.compression_share}")

        if self.max_upload_size <= 0 or self.max_output_size <= 0:
            raise ConfigurationError("Size limits must be positive")

        if self.report_limit < 1:
            raise ConfigurationError(f"report_limit must be at least 1, got: {self.report_limit}")

        try:
            self.compression_limits()
        except ValidationError as e:
            raise ConfigurationError(f"Invalid compression limits: {e}") from e

    def compression_limits(self) -> CompressionLimits:
        return CompressionLimits(
            max_width=self.max_width,
            max_height=self.max_height,
            target_fps=self.target_fps,
            max_output_size=self.max_output_size,
            min_bitrate=self.min_bitrate,
            preset=self.preset,
        )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes", "on")


def _parse_optional_int(value: str) -> Optional[int]:
    if value.strip().lower() in ("", "none", "unbounded"):
        return None
    return int(value)


# env var -> (field, parser)
ENV_FIELDS: Dict[str, tuple] = {
    "VIDRELAY_API_BASE": ("api_base_url", str),
    "VIDRELAY_REQUEST_TIMEOUT": ("request_timeout", float),
    "VIDRELAY_CACHE_TTL": ("cache_ttl", float),
    "VIDRELAY_COMPRESSOR": ("compressor", lambda v: v.lower()),
    "VIDRELAY_READY_TIMEOUT": ("ready_timeout", float),
    "VIDRELAY_INIT_RETRY_DELAY": ("init_retry_delay", float),
    "VIDRELAY_MAX_INIT_ATTEMPTS": ("max_init_attempts", _parse_optional_int),
    "VIDRELAY_POLL_INTERVAL": ("poll_interval", float),
    "VIDRELAY_FFMPEG": ("ffmpeg_binary", str),
    "VIDRELAY_FFPROBE": ("ffprobe_binary", str),
    "VIDRELAY_TEMP_DIR": ("temp_dir", Path),
    "VIDRELAY_MAX_WIDTH": ("max_width", int),
    "VIDRELAY_MAX_HEIGHT": ("max_height", int),
    "VIDRELAY_TARGET_FPS": ("target_fps", int),
    "VIDRELAY_MAX_OUTPUT_SIZE": ("max_output_size", int),
    "VIDRELAY_MIN_BITRATE": ("min_bitrate", int),
    "VIDRELAY_PRESET": ("preset", str),
    "VIDRELAY_MAX_UPLOAD_SIZE": ("max_upload_size", int),
    "VIDRELAY_COMPRESSION_SHARE": ("compression_share", float),
    "VIDRELAY_CLEANUP_ORPHANS": ("cleanup_orphans", _parse_bool),
    "VIDRELAY_REPORT_LIMIT": ("report_limit", int),
    "VIDRELAY_REPORT_WINDOW": ("report_window", float),
    "DISCORD_WEBHOOK_URL": ("discord_webhook_url", str),
}


class ConfigLoader:
    """Loads and validates configuration from YAML files and environment variables."""

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env_file: Optional[Path] = None,
        environ: Optional[Dict[str, str]] = None
    ):
        """
        Initialize config loader.

        Args:
            config_path: Optional path to YAML config file
            env_file: Optional .env file loaded into the environment first
            environ: Environment mapping (defaults to os.environ)
        """
        self.config_path = Path(config_path) if config_path else Path("vidrelay.yaml")
        self.env_file = env_file
        self._environ = environ
        self._logger = get_logger(__name__)

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> AppConfig:
        """
        Load configuration from file and environment.

        Precedence: overrides > environment > YAML file > defaults.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict: Dict[str, Any] = {}

        if self.config_path.exists():
            self._logger.info(f"Loading config from {self.config_path}")
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.config_path}: {e}") from e
            if not isinstance(yaml_config, dict):
                raise ConfigurationError(f"{self.config_path} must contain a mapping")
            config_dict.update(yaml_config)
        else:
            self._logger.debug(f"Config file not found: {self.config_path}")

        config_dict.update(self._load_from_env())

        if overrides:
            for k, v in overrides.items():
                if v is not None:
                    config_dict[k] = v

        valid_fields = {f.name for f in fields(AppConfig)}
        unknown = sorted(set(config_dict) - valid_fields)
        if unknown:
            self._logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        filtered_config = {k: v for k, v in config_dict.items() if k in valid_fields}
        if filtered_config.get('temp_dir') is not None:
            filtered_config['temp_dir'] = Path(filtered_config['temp_dir'])

        try:
            return AppConfig(**filtered_config)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        if self._environ is None:
            load_dotenv(dotenv_path=self.env_file or find_dotenv(usecwd=True), override=False)
            environ = os.environ
        else:
            environ = self._environ

        env_config: Dict[str, Any] = {}
        for var, (field_name, parser) in ENV_FIELDS.items():
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            try:
                env_config[field_name] = parser(raw)
            except ValueError:
                self._logger.warning(f"Invalid {var} value: {raw}")

        return env_config
