"""CLI operator console for the shiur recorder"""

import asyncio
import structlog

from shiur_recorder.core.exceptions import InputUnavailableError
from shiur_recorder.infrastructure.adapters.audio.vad import VADEvent, VADEventKind

logger = structlog.get_logger()

HELP_TEXT = """  Commands:
    r          recalibrate
    s          stop now (abort current session)
    t <rms>    manual start threshold   (t off = back to calibrated)
    q <rms>    quiet RMS (stop threshold)
    h <sec>    start hold seconds
    i          status
    d          list input devices
    l [n]      recent event log
    x          exit
"""

# Events worth a line on the console; the rest stay in the event log
_ANNOUNCED = {
    VADEventKind.CALIBRATION_STARTED: "🎚️  Calibrating...",
    VADEventKind.LISTENING: "👂 Listening for audio...",
    VADEventKind.SESSION_BEGIN: "🔴 Recording",
    VADEventKind.SESSION_END: "⏹️  Session ended",
    VADEventKind.SESSION_ABORTED: "🛑 Session aborted",
    VADEventKind.SESSION_DISCARDED: "🗑️  Session discarded",
    VADEventKind.SESSION_REJECTED: "❌ Session not saved",
    VADEventKind.EXPORT_COMPLETED: "💾 Saved",
    VADEventKind.EXPORT_FAILED: "❌ Export failed",
}


class ConsoleUI:
    """Operator console: live events out, commands in"""

    def __init__(self, orchestrator, audio_input, event_log):
        self.orchestrator = orchestrator
        self.audio_input = audio_input
        self.event_log = event_log
        logger.info("console_ui_initialized")

    async def run(self):
        """Main UI loop"""
        self._print_header()

        unsubscribe = self.orchestrator.subscribe(self._on_event)

        try:
            self.audio_input.start_stream(self.orchestrator.on_block)
        except InputUnavailableError as e:
            print(f"❌ Microphone unavailable: {e}\n")
            logger.error("input_unavailable", error=str(e))
            unsubscribe()
            raise

        self.orchestrator.start(self.audio_input.sample_rate)

        try:
            while await self._command_loop():
                pass
        finally:
            unsubscribe()
            self.audio_input.stop_stream()
            self.orchestrator.policy.shutdown(wait=True)
            logger.info("console_ui_stopped")

    def _print_header(self):
        """Print header"""
        print("\n" + "═"*60)
        print("  🎙️  Shiur Recorder".center(60))
        print("═"*60)
        print("\n  Records automatically when the speaker starts")
        print("  and saves once the room goes quiet.\n")
        print(HELP_TEXT)
        print("═"*60 + "\n")

    def _on_event(self, event: VADEvent):
        """Listener for orchestrator events (audio or export thread)"""
        text = _ANNOUNCED.get(event.kind)
        if text is None:
            return

        if event.kind == VADEventKind.EXPORT_COMPLETED:
            text = f"{text} {event.details.get('path', '')}"
        elif event.kind == VADEventKind.EXPORT_FAILED:
            text = f"{text}: {event.details.get('error', '')}"
        elif event.kind == VADEventKind.SESSION_DISCARDED:
            text = f"{text} ({event.details.get('duration_s', 0)}s, too short)"
        elif event.kind == VADEventKind.SESSION_REJECTED:
            text = f"{text} ({event.details.get('duration_s', 0)}s, export unavailable)"
        elif event.kind == VADEventKind.SESSION_BEGIN and event.loudness is not None:
            text = f"{text} (rms {event.loudness:.1f})"

        print(text, flush=True)

    async def _command_loop(self) -> bool:
        """Read one command; False when the operator exits"""
        loop = asyncio.get_running_loop()
        line = await loop.run_in_executor(None, input, "> ")
        return self.handle_command(line)

    def handle_command(self, line: str) -> bool:
        """
        Execute one operator command.

        Returns:
            False when the operator asked to exit
        """
        parts = line.strip().split()
        if not parts:
            self._print_status()
            return True

        command, args = parts[0].lower(), parts[1:]

        try:
            if command == "x":
                return False
            elif command == "r":
                self.orchestrator.recalibrate()
            elif command == "s":
                if not self.orchestrator.stop_now():
                    print("  Nothing to stop")
            elif command == "t":
                if args and args[0].lower() == "off":
                    self.orchestrator.clear_manual_calibration()
                    print("  Manual calibration cleared")
                else:
                    self.orchestrator.set_manual_calibration(self._number(args))
                    self._print_status()
            elif command == "q":
                self.orchestrator.set_quiet_rms(self._number(args))
                self._print_status()
            elif command == "h":
                self.orchestrator.set_start_hold_seconds(self._number(args))
                self._print_status()
            elif command == "i":
                self._print_status()
            elif command == "d":
                self._print_devices()
            elif command == "l":
                count = int(args[0]) if args else 20
                for record in self.event_log.recent(count):
                    print(f"  {record}")
            else:
                print(HELP_TEXT)
        except ValueError as e:
            print(f"  ❌ {e}")
        except InputUnavailableError as e:
            print(f"  ❌ {e}")

        return True

    @staticmethod
    def _number(args) -> float:
        if not args:
            raise ValueError("missing value")
        return float(args[0])

    def _print_status(self):
        status = self.orchestrator.status()
        manual = " (manual)" if status.manual_override else ""
        print(f"  {status.label}")
        print(f"  rms {status.current_rms:.2f} | calibration {status.calibration_level:.2f}")
        print(f"  start {status.start_threshold:.2f}{manual} | double {status.double_threshold:.2f}"
              f" | quiet {status.stop_threshold:.2f} | hold {status.start_hold_seconds:.2f}s")
        if status.quiet_seconds:
            print(f"  quiet for {status.quiet_seconds}s")
        if status.last_outcome is not None:
            print(f"  last: {status.last_outcome}")

    def _print_devices(self):
        devices = self.audio_input.list_input_devices()
        if not devices:
            print("  No input devices")
        for device in devices:
            print(f"  {device}")

