import os
from datetime import datetime

from .log_storage_strategy import LogStorageStrategy


class LocalFileStrategy(LogStorageStrategy):
    """
    Appends layout-engine records to a text file, one per line:

        [2024-01-01 00:00:00] [INFO] [stabilization] Stabilization started: ...

    Opening the strategy starts the file over with a header naming the
    process and the resolved path.
    """

    def __init__(self, file_location):
        """
        Args:
            file_location (str): Absolute or working-directory-relative path.
        """
        self.file_location = self.resolve_file_path(file_location)
        self.initialize_log_file()

    def resolve_file_path(self, file_location):
        """
        Returns the absolute path, creating the parent directory when missing.
        """
        file_location = os.path.abspath(os.path.expanduser(file_location))
        os.makedirs(os.path.dirname(file_location), exist_ok=True)
        return file_location

    # NEW SESSION: RESET THE FILE AND WRITE THE HEADER
    def initialize_log_file(self):
        self._write_header("FORCELAYOUT LOG START")

    def store_log(self, record):
        with open(self.file_location, 'a') as log_file:
            log_file.write(record.format_line() + "\n")

    def flush_logs(self):
        self._write_header("FORCELAYOUT LOG FLUSHED")

    def _write_header(self, title):
        with open(self.file_location, 'w') as log_file:
            log_file.write(f"{title}: {datetime.now()} (pid {os.getpid()}, {self.file_location})\n")
