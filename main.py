"""Shiur Recorder - Entry Point"""

import asyncio
import os
from shiur_recorder.core.logging.logger import setup_production_logging, setup_dev_logging
from shiur_recorder.core.config.container import setup_container
from shiur_recorder.core.exceptions import InputUnavailableError

# Mode from env (default: production)
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

# Logging before anything else
if DEV_MODE:
    setup_dev_logging()
else:
    setup_production_logging()

async def main():
    """Application entry point"""
    container = setup_container()
    ui = container.console_ui()
    await ui.run()

def run():
    try:
        asyncio.run(main())
    except InputUnavailableError:
        raise SystemExit(1)
    except (KeyboardInterrupt, EOFError):
        print("\n\n👋 Goodbye!\n")

if __name__ == "__main__":
    run()
