from .logger import Logger
from .log_storage_strategy import LogRecord, LogStorageStrategy
from .local_file_strategy import LocalFileStrategy
from .memory_strategy import MemoryStrategy

__all__ = ["Logger", "LogRecord", "LogStorageStrategy", "LocalFileStrategy", "MemoryStrategy"]
