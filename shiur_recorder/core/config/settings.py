"""
Recorder Configuration Manager
Loads and validates the recorder YAML configuration
"""

import os
import yaml
import structlog
from pathlib import Path
from typing import Dict, Any

from shiur_recorder.core.exceptions import ConfigurationError

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = "config/recorder_config.yaml"

SUPPORTED_SAMPLE_RATES = [8000, 11025, 16000, 22050, 32000, 44100, 48000, 96000]
SUPPORTED_DTYPES = ['float32', 'int16', 'uint8']

DEFAULT_CONFIG: Dict[str, Any] = {
    'audio': {
        'sample_rate': None,  # None = device native rate
        'channels': 1,
        'block_size': 2048,
        'dtype': 'float32',
        'input_device': None,
        'preferred_device_name': 'Microphone AUX TC (USB Audio and HID) (0573:1573)'
    },
    'calibration': {
        'duration_ms': 5000,
        'multiplier': 2.5,
        'manual_threshold': None
    },
    'vad': {
        'quiet_rms': 4.0,
        'start_hold_seconds': 0.25,
        'quiet_timeout_seconds': 20,
        'immediate_start_threshold': 12.0,
        'min_session_seconds': 11.0,
        'recalibrate_after_session': False
    },
    'export': {
        'record_dir': 'recordings',
        'file_prefix': 'shiur'
    },
    'logging': {
        'event_log_size': 100,
        'rms_log_every': 20
    }
}


class RecorderSettings:
    """Recorder configuration with dot-notation access and validation"""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, create_missing: bool = True):
        """
        Args:
            config_path: Path to the YAML configuration file
            create_missing: Write the default file when none exists
        """
        self.config_path = Path(config_path)
        self.create_missing = create_missing
        self.config: Dict[str, Any] = {}
        self.validation_errors: list = []
        self._load_config()
        self._apply_env_overrides()
        self._validate_config()

    def _load_config(self) -> None:
        """Load configuration from file"""
        if not self.config_path.exists():
            logger.warning("config_not_found", path=str(self.config_path))
            self._create_default_config()
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                self.config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error("config_load_error", error=str(e))
            raise ConfigurationError(f"Failed to load config: {e}") from e

        if not isinstance(self.config, dict):
            raise ConfigurationError(
                f"Config root must be a mapping, got {type(self.config).__name__}"
            )

        logger.info("recorder_config_loaded", path=str(self.config_path))

    def _apply_env_overrides(self) -> None:
        """Environment variables win over the file (see .env)"""
        record_dir = os.getenv("SHIUR_RECORD_DIR")
        if record_dir:
            self.config.setdefault('export', {})['record_dir'] = record_dir
            logger.debug("env_override_applied", key="export.record_dir")

        device = os.getenv("SHIUR_INPUT_DEVICE")
        if device:
            self.config.setdefault('audio', {})['input_device'] = (
                int(device) if device.isdigit() else device
            )
            logger.debug("env_override_applied", key="audio.input_device")

    def _validate_config(self) -> None:
        """Validate configuration"""
        self.validation_errors = []

        self._validate_audio_config()
        self._validate_calibration_config()
        self._validate_vad_config()
        self._validate_logging_config()

        if self.validation_errors:
            logger.warning("config_validation_warnings",
                           errors=self.validation_errors,
                           count=len(self.validation_errors))

            print("\n" + "="*60)
            print("⚠️  CONFIGURATION WARNINGS")
            print("="*60)
            for error in self.validation_errors:
                print(f"  • {error}")
            print("="*60 + "\n")

    def _validate_audio_config(self) -> None:
        """Audio configuration"""
        sample_rate = self.get('audio.sample_rate')
        if sample_rate is not None:
            if not isinstance(sample_rate, int):
                self.validation_errors.append(
                    f"audio.sample_rate must be integer, got {type(sample_rate).__name__}"
                )
            elif sample_rate not in SUPPORTED_SAMPLE_RATES:
                self.validation_errors.append(
                    f"audio.sample_rate should be one of {SUPPORTED_SAMPLE_RATES}, got {sample_rate}"
                )

        channels = self.get('audio.channels', 1)
        if channels != 1:
            self.validation_errors.append(
                f"audio.channels must be 1 (mono), got {channels}"
            )

        block_size = self.get('audio.block_size', 2048)
        if block_size < 128 or block_size > 8192:
            self.validation_errors.append(
                f"audio.block_size should be between 128-8192, got {block_size}"
            )

        dtype = self.get('audio.dtype', 'float32')
        if dtype not in SUPPORTED_DTYPES:
            self.validation_errors.append(
                f"audio.dtype must be one of {SUPPORTED_DTYPES}, got '{dtype}'"
            )

    def _validate_calibration_config(self) -> None:
        """Calibration configuration"""
        duration_ms = self.get('calibration.duration_ms', 5000)
        if duration_ms <= 0:
            self.validation_errors.append(
                f"calibration.duration_ms must be > 0, got {duration_ms}"
            )

        multiplier = self.get('calibration.multiplier', 2.5)
        if multiplier <= 0:
            self.validation_errors.append(
                f"calibration.multiplier must be > 0, got {multiplier}"
            )

        manual = self.get('calibration.manual_threshold')
        if manual is not None and (not isinstance(manual, (int, float)) or manual < 0):
            self.validation_errors.append(
                f"calibration.manual_threshold must be a number >= 0, got {manual}"
            )

    def _validate_vad_config(self) -> None:
        """VAD configuration"""
        for key in ['quiet_rms', 'start_hold_seconds', 'immediate_start_threshold',
                    'min_session_seconds']:
            value = self.get(f'vad.{key}', DEFAULT_CONFIG['vad'][key])
            if value < 0:
                self.validation_errors.append(
                    f"vad.{key} must be >= 0, got {value}"
                )

        quiet_timeout = self.get('vad.quiet_timeout_seconds', 20)
        if quiet_timeout < 1:
            self.validation_errors.append(
                f"vad.quiet_timeout_seconds must be >= 1, got {quiet_timeout}"
            )

    def _validate_logging_config(self) -> None:
        """Logging configuration"""
        size = self.get('logging.event_log_size', 100)
        if size < 1:
            self.validation_errors.append(
                f"logging.event_log_size must be >= 1, got {size}"
            )

        every = self.get('logging.rms_log_every', 20)
        if every < 0:
            self.validation_errors.append(
                f"logging.rms_log_every must be >= 0, got {every}"
            )

    def _create_default_config(self) -> None:
        """Create the default configuration file"""
        self.config = yaml.safe_load(yaml.safe_dump(DEFAULT_CONFIG))

        if not self.create_missing:
            return

        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(DEFAULT_CONFIG, f, allow_unicode=True, default_flow_style=False,
                               sort_keys=False)

            logger.info("default_config_created", path=str(self.config_path))

        except OSError as e:
            logger.error("config_create_error", error=str(e))
            raise ConfigurationError(f"Failed to create default config: {e}") from e

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a value using dot notation.

        Args:
            key_path: Key path (e.g. "vad.quiet_rms")
            default: Returned when the key is missing or has the wrong type

        Returns:
            Configured value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        if value is not None and default is not None:
            # ints are accepted where a float is expected (YAML "4" vs "4.0")
            numeric_ok = isinstance(default, float) and isinstance(value, int) \
                and not isinstance(value, bool)
            if type(value) != type(default) and not numeric_ok:
                logger.warning(
                    "config_type_mismatch",
                    key=key_path,
                    expected=type(default).__name__,
                    got=type(value).__name__,
                    value=str(value)[:100]
                )
                return default
            if numeric_ok:
                return float(value)

        return value

    def is_valid(self) -> bool:
        """Check if configuration is valid"""
        return len(self.validation_errors) == 0

    def get_validation_errors(self) -> list:
        """Get list of validation errors"""
        return self.validation_errors.copy()
