import os
import threading
from datetime import datetime
from enum import Enum

from .local_file_strategy import LocalFileStrategy
from .log_storage_strategy import LogRecord


class Logger:
    """
    Process-wide logger for the layout engine.

    Static class: every module calls Logger.log(...) directly, naming the
    engine subsystem it speaks for. Records go to the configured storage
    strategy; with no strategy set, logging is a no-op so library users pay
    nothing unless they opt in.
    """

    class LogPriority(Enum):
        DEBUG = 1
        INFO = 2
        WARNING = 3
        ERROR = 4
        CRITICAL = 5
        DEFAULT = 6

    class Component(Enum):
        ENGINE = "engine"
        STABILIZATION = "stabilization"
        TIMESTEP = "timestep"
        SOLVER = "solver"
        BODY = "body"
        CONFIG = "config"
        GRAPH = "graph"
        LAYOUT = "layout"
        SCHEDULER = "scheduler"
        EVENTS = "events"
        LOGGER = "logger"

    is_logging_enabled = True
    log_storage_strategy = None
    _log_lock = threading.Lock()
    _strategy_lock = threading.Lock()
    _initialize_lock = threading.Lock()
    _toggle_lock = threading.Lock()

    @classmethod
    def initialize(cls):
        """
        Sets a LocalFileStrategy if no strategy has been configured yet.

        The file location comes from FORCELAYOUT_LOG_PATH, falling back to
        /tmp/forcelayout_logs.txt.
        """
        with cls._initialize_lock:
            if cls.log_storage_strategy is None:
                file_location = os.getenv("FORCELAYOUT_LOG_PATH", "/tmp/forcelayout_logs.txt")
                cls.set_log_storage_strategy(LocalFileStrategy(file_location))
                cls.log(f"Layout log opened at {file_location}",
                        cls.LogPriority.INFO, cls.Component.LOGGER)

    @classmethod
    def log(cls, message, priority=LogPriority.DEBUG, component=Component.ENGINE):
        """
        Parameters:
        message (str): The log message.
        priority (LogPriority): Priority level (default DEBUG).
        component (Component): Engine subsystem the record belongs to (default ENGINE).
        """
        with cls._log_lock:
            if cls.is_logging_enabled and cls.log_storage_strategy:
                cls.log_storage_strategy.store_log(LogRecord(
                    timestamp=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
                    priority=priority.name,
                    component=component.value,
                    message=message,
                ))

    @classmethod
    def set_log_storage_strategy(cls, log_storage_strategy):
        with cls._strategy_lock:
            cls.log_storage_strategy = log_storage_strategy

    @classmethod
    def flush_logs(cls):
        with cls._log_lock:
            if cls.is_logging_enabled and cls.log_storage_strategy:
                cls.log_storage_strategy.flush_logs()

    @classmethod
    def disable_logging(cls):
        with cls._toggle_lock:
            cls.log("Logging disabled", component=cls.Component.LOGGER)
            cls.is_logging_enabled = False

    @classmethod
    def enable_logging(cls):
        with cls._toggle_lock:
            cls.is_logging_enabled = True
            cls.log("Logging enabled", component=cls.Component.LOGGER)
