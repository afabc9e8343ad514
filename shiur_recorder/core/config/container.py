# shiur_recorder/core/config/container.py

"""
Dependency Injection Container
"""

import structlog
import os
from typing import Optional
from dotenv import load_dotenv

# Core imports
from shiur_recorder.core.config.settings import RecorderSettings, DEFAULT_CONFIG_PATH
from shiur_recorder.core.exceptions import ContainerInitializationError, ShiurRecorderError
from shiur_recorder.core.logging.event_log import EventLog
from shiur_recorder.core.ports.i_audio_input import IAudioInput

# Application services
from shiur_recorder.application.services.session_policy import SessionPolicy
from shiur_recorder.application.services.recorder_orchestrator import RecorderOrchestrator

# Adapters
from shiur_recorder.infrastructure.adapters.audio.vad import (
    Calibrator,
    FrameSampler,
    VADConfig
)
from shiur_recorder.infrastructure.adapters.encoders import WavEncoder
from shiur_recorder.infrastructure.adapters.export import FileExporter

# Interface
from shiur_recorder.interfaces.cli.console_ui import ConsoleUI

logger = structlog.get_logger()


class Container:
    """
    Dependency Injection Container
    Manages lifecycle and dependencies of all application components.
    """

    def __init__(self, config_path: Optional[str] = None, audio_input: Optional[IAudioInput] = None):
        """
        Args:
            config_path: YAML config (default: $SHIUR_CONFIG or config/recorder_config.yaml)
            audio_input: Pre-built input adapter (default: sounddevice capture)
        """
        logger.info("container_initialization_started")

        try:
            # Step 1: Environment and configuration
            self._load_environment()
            self.settings = self._load_settings(config_path)

            # Step 2: Observability
            self.event_log = self._create_event_log()

            # Step 3: Output side
            self.encoder = WavEncoder()
            self.exporter = self._create_exporter()
            self.policy = self._create_session_policy()

            # Step 4: Core
            self.orchestrator = self._create_orchestrator()

            # Step 5: Input
            self.audio_input = audio_input if audio_input is not None else self._create_audio_input()

            logger.info("container_initialization_completed")

        except ShiurRecorderError as e:
            logger.error("container_initialization_failed", error=str(e), exc_info=True)
            raise ContainerInitializationError(f"Failed to initialize container: {e}") from e
        except (ValueError, TypeError, OSError) as e:
            logger.error("container_initialization_failed", error=str(e), exc_info=True)
            raise ContainerInitializationError(f"Failed to initialize container: {e}") from e

    # ========================================
    # ENVIRONMENT & CONFIG
    # ========================================

    def _load_environment(self) -> None:
        """Load environment variables from .env file"""
        load_dotenv()
        logger.info(
            "environment_loaded",
            config_override=bool(os.getenv("SHIUR_CONFIG")),
            record_dir_override=bool(os.getenv("SHIUR_RECORD_DIR")),
            device_override=bool(os.getenv("SHIUR_INPUT_DEVICE"))
        )

    def _load_settings(self, config_path: Optional[str]) -> RecorderSettings:
        """Load and validate recorder configuration"""
        path = config_path or os.getenv("SHIUR_CONFIG", DEFAULT_CONFIG_PATH)
        settings = RecorderSettings(path)
        logger.info("recorder_settings_loaded", path=path, valid=settings.is_valid())
        return settings

    # ========================================
    # OUTPUT SIDE
    # ========================================

    def _create_event_log(self) -> EventLog:
        size = self.settings.get('logging.event_log_size', 100)
        logger.debug("event_log_created", size=size)
        return EventLog(max_entries=size)

    def _create_exporter(self) -> FileExporter:
        record_dir = self.settings.get('export.record_dir', 'recordings')
        logger.debug("exporter_created", record_dir=record_dir)
        return FileExporter(record_dir=record_dir)

    def _create_session_policy(self) -> SessionPolicy:
        return SessionPolicy(
            encoder=self.encoder,
            exporter=self.exporter,
            file_prefix=self.settings.get('export.file_prefix', 'shiur')
        )

    # ========================================
    # CORE
    # ========================================

    def _create_orchestrator(self) -> RecorderOrchestrator:
        """Create the recorder core from configuration"""
        settings = self.settings

        calibrator = Calibrator(
            multiplier=settings.get('calibration.multiplier', 2.5),
            manual_override=settings.get('calibration.manual_threshold')
        )

        manual = settings.get('calibration.manual_threshold')
        vad_config = VADConfig.from_settings(settings, start_threshold=manual)

        orchestrator = RecorderOrchestrator(
            policy=self.policy,
            config=vad_config,
            sampler=FrameSampler(log_every_n_frames=settings.get('logging.rms_log_every', 20)),
            calibrator=calibrator,
            event_log=self.event_log,
            calibration_ms=settings.get('calibration.duration_ms', 5000),
            recalibrate_after_session=settings.get('vad.recalibrate_after_session', False),
            sample_dtype=settings.get('audio.dtype', 'float32')
        )

        logger.debug("orchestrator_created", vad_config=vad_config.to_dict())
        return orchestrator

    # ========================================
    # INPUT
    # ========================================

    def _create_audio_input(self) -> IAudioInput:
        """Create microphone input"""
        # PortAudio is loaded on import; keep it out of module import time
        from shiur_recorder.infrastructure.adapters.audio.sounddevice_capture import SoundDeviceCapture

        capture = SoundDeviceCapture(
            sample_rate=self.settings.get('audio.sample_rate'),
            block_size=self.settings.get('audio.block_size', 2048),
            dtype=self.settings.get('audio.dtype', 'float32'),
            device=self.settings.get('audio.input_device'),
            preferred_device_name=self.settings.get('audio.preferred_device_name')
        )
        logger.debug("audio_input_created", device=capture.device)
        return capture

    # ========================================
    # PUBLIC INTERFACE
    # ========================================

    def console_ui(self) -> ConsoleUI:
        """
        Create console UI interface

        Returns:
            ConsoleUI instance wired to the orchestrator and input
        """
        ui = ConsoleUI(
            orchestrator=self.orchestrator,
            audio_input=self.audio_input,
            event_log=self.event_log
        )
        logger.debug("console_ui_created")
        return ui


def setup_container(config_path: Optional[str] = None) -> Container:
    """
    Setup and initialize dependency injection container

    Raises:
        ContainerInitializationError: If initialization fails
    """
    return Container(config_path=config_path)
