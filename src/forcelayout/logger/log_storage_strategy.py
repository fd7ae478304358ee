from dataclasses import dataclass


@dataclass(frozen=True)
class LogRecord:
    """
    One layout-engine log entry.

    Attributes:
        timestamp: Formatted wall-clock time of the record.
        priority: Name of the priority level (e.g. "INFO").
        component: Engine subsystem that produced it (e.g. "stabilization").
        message: Human-readable text.
    """
    timestamp: str
    priority: str
    component: str
    message: str

    def format_line(self) -> str:
        return f"[{self.timestamp}] [{self.priority}] [{self.component}] {self.message}"


class LogStorageStrategy:
    """
    Interface for the places a Logger can write layout-engine records to.
    """

    # STORE ONE RECORD
    def store_log(self, record):
        """
        Stores one record.

        Parameters:
        record (LogRecord): Timestamped, prioritized and component-tagged entry.

        Raises:
        NotImplementedError: If this method is not overridden in a subclass.
        """
        raise NotImplementedError()

    # DROP ALL STORED RECORDS
    def flush_logs(self):
        """
        Discards every stored record.

        Raises:
        NotImplementedError: If this method is not overridden in a subclass.
        """
        raise NotImplementedError()
