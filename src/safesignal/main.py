"""
SafeSignal Main Application Entry Point

Loads configuration, sets up logging and runs the Emergency Signal Engine
until a shutdown signal arrives. Host capabilities (location, native share)
are injected by the embedding UI.
"""

import asyncio
import signal
import sys
import traceback
from typing import Optional

from safesignal.core.config import ConfigurationManager
from safesignal.core.logging import get_logger, initialize_logging
from safesignal.services.signal.dispatcher import ShareCapability, SignalDispatcher
from safesignal.services.signal.engine import EmergencySignalEngine
from safesignal.services.signal.location_tracker import LocationProvider


class SafeSignalApplication:
    """Main SafeSignal application class"""

    def __init__(
        self,
        config_dir: str = "config",
        location_provider: Optional[LocationProvider] = None,
        share: Optional[ShareCapability] = None
    ):
        self.config_dir = config_dir
        self.location_provider = location_provider
        self.share = share

        self.config_manager: Optional[ConfigurationManager] = None
        self.engine: Optional[EmergencySignalEngine] = None
        self.logger = None

        self.running = False
        self.shutdown_event = asyncio.Event()
        self._previous_handlers = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def initialize(self):
        """Initialize configuration, logging and the engine"""
        try:
            self.config_manager = ConfigurationManager(self.config_dir)
            self.config_manager.load_config()

            initialize_logging(self.config_manager.config)
            self.logger = get_logger('main')

            self.logger.info("SafeSignal starting up...")
            self.logger.info(f"Version: {self.config_manager.get('app.version', '1.0.0')}")
            self.logger.info(f"Debug mode: {self.config_manager.get('app.debug', False)}")

            config = self.config_manager.config
            self.engine = EmergencySignalEngine(
                config=config,
                location_provider=self.location_provider,
                dispatcher=SignalDispatcher(share=self.share, config=config.get('dispatch'))
            )

        except Exception as e:
            if self.logger:
                self.logger.error(f"Failed to initialize application: {e}", exc_info=True)
            else:
                print(f"Failed to initialize application: {e}")
                traceback.print_exc()
            raise

    async def start(self):
        """Start the application and run until shutdown is requested"""
        await self.initialize()

        self.running = True
        self._loop = asyncio.get_running_loop()
        self._install_signal_handlers()

        try:
            await self.engine.start()
            self.logger.info("SafeSignal is now running")
            await self.shutdown_event.wait()
            self.logger.info("Shutdown signal received")
        except Exception as e:
            self.logger.error(f"Application error: {e}", exc_info=True)
            raise
        finally:
            await self.shutdown()

    def request_shutdown(self):
        self.shutdown_event.set()

    async def shutdown(self):
        """Stop the engine and release audio, timers and tracking"""
        if not self.running:
            return
        self.running = False

        if self.engine:
            try:
                await self.engine.stop()
            except Exception as e:
                self.logger.error(f"Error stopping engine: {e}")

        self._restore_signal_handlers()
        self.logger.info("SafeSignal shutdown complete")

    def _install_signal_handlers(self):
        for signum in (signal.SIGTERM, signal.SIGINT):
            self._previous_handlers[signum] = signal.signal(signum, self._signal_handler)

    def _restore_signal_handlers(self):
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _signal_handler(self, signum, frame):
        self.logger.info(f"Received signal {signum}, initiating shutdown...")
        self._loop.call_soon_threadsafe(self.request_shutdown)


async def main():
    """Main entry point"""
    app = SafeSignalApplication()

    try:
        await app.start()
    except KeyboardInterrupt:
        print("\nShutdown requested by user")
    except Exception as e:
        print(f"Application failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nApplication interrupted")
        sys.exit(0)
