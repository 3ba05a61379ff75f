"""
Logging Configuration for SafeSignal

Root handlers (rotating file, console), structlog for the engine's event
stream, and per-component levels. Components log through
``logging.getLogger(__name__)``, so a component key such as ``siren`` is
resolved to its module logger before a level is applied.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional
import structlog


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Component key -> module logger name
COMPONENT_LOGGERS: Dict[str, str] = {
    'main': 'safesignal.main',
    'config': 'safesignal.core.config',
    'scheduler': 'safesignal.core.scheduler',
    'storage': 'safesignal.core.storage',
    'audio': 'safesignal.services.signal.audio',
    'composer': 'safesignal.services.signal.composer',
    'contacts': 'safesignal.services.signal.contacts',
    'dispatcher': 'safesignal.services.signal.dispatcher',
    'engine': 'safesignal.services.signal.engine',
    'fake_call': 'safesignal.services.signal.fake_call',
    'location': 'safesignal.services.signal.location_tracker',
    'location_tracker': 'safesignal.services.signal.location_tracker',
    'siren': 'safesignal.services.signal.siren',
}

NOISY_LOGGERS = ['asyncio', 'sounddevice']


def component_logger_name(name: str) -> str:
    """Resolve a component key or dotted name to the stdlib logger name"""
    if name.startswith('safesignal'):
        return name
    return COMPONENT_LOGGERS.get(name, f'safesignal.{name}')


def _level(name: str) -> int:
    return getattr(logging, str(name).upper())


class SafeSignalLogger:
    """
    Centralized logging configuration for SafeSignal
    """

    def __init__(self, config: Dict):
        self.config = config
        self.loggers: Dict[str, logging.Logger] = {}
        self.component_levels: Dict[str, str] = {}
        self._setup_logging()

    def _setup_logging(self):
        """Set up logging configuration"""
        log_config = self.config.get('logging', {})
        log_level = log_config.get('level', 'INFO').upper()
        log_file = log_config.get('file', 'logs/safesignal.log')
        console_enabled = log_config.get('console', True)
        console_level = log_config.get('console_level', 'INFO').upper()

        self._configure_structlog()

        root_logger = logging.getLogger()
        root_logger.setLevel(_level(log_level))
        root_logger.handlers.clear()

        if log_file:
            root_logger.addHandler(self._file_handler(
                log_file,
                log_level,
                self._parse_size(log_config.get('max_size', '10MB')),
                log_config.get('backup_count', 5)
            ))

        if console_enabled:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
            console_handler.setLevel(_level(console_level))
            root_logger.addHandler(console_handler)

        for component, level in log_config.get('components', {}).items():
            self.set_component_level(component, level)

        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    def _configure_structlog(self):
        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.UnicodeDecoder(),
                structlog.processors.JSONRenderer()
            ],
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def _file_handler(self, log_file: str, level: str, max_bytes: int,
                      backup_count: int) -> logging.Handler:
        """Rotating file handler, creating the log directory if needed"""
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        handler.setLevel(_level(level))
        return handler

    def _parse_size(self, size_str: str) -> int:
        """Parse size string like '10MB' to bytes"""
        size_str = str(size_str).upper()
        for suffix, factor in (('KB', 1024), ('MB', 1024 ** 2), ('GB', 1024 ** 3)):
            if size_str.endswith(suffix):
                return int(size_str[:-2]) * factor
        return int(size_str)

    def set_component_level(self, component: str, level: str):
        """
        Set the log level of one component

        Args:
            component: Component key (e.g. 'siren') or full logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        """
        level = str(level).upper()
        self.component_levels[component] = level
        logging.getLogger(component_logger_name(component)).setLevel(_level(level))

    def get_component_level(self, component: str) -> str:
        return self.component_levels.get(component, logging.getLevelName(logging.getLogger().level))

    def get_logger(self, name: str) -> logging.Logger:
        """Get the logger a component writes to"""
        if name not in self.loggers:
            self.loggers[name] = logging.getLogger(component_logger_name(name))
        return self.loggers[name]

    def get_structured_logger(self, name: str) -> structlog.BoundLogger:
        """Get a structured logger sharing the component's level"""
        return structlog.get_logger(component_logger_name(name))


# Global logger instance
_logger_instance: Optional[SafeSignalLogger] = None


def initialize_logging(config: Dict) -> SafeSignalLogger:
    """Initialize the global logging system"""
    global _logger_instance
    _logger_instance = SafeSignalLogger(config)
    return _logger_instance


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance"""
    if _logger_instance is None:
        # Fallback to basic logging if not initialized
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        return logging.getLogger(component_logger_name(name))

    return _logger_instance.get_logger(name)


def get_structured_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance"""
    if _logger_instance is None:
        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="ISO"),
                structlog.processors.JSONRenderer()
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    return structlog.get_logger(component_logger_name(name))
