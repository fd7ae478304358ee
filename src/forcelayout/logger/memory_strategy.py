from .log_storage_strategy import LogStorageStrategy


class MemoryStrategy(LogStorageStrategy):
    """
    Keeps log records in a bounded in-process list.

    Used by hosts that embed the engine without a writable filesystem, and by
    the test-suite to assert on what the engine reported.
    """

    def __init__(self, max_records=10000):
        self.max_records = max_records
        self.records = []

    def store_log(self, record):
        self.records.append(record)
        if len(self.records) > self.max_records:
            del self.records[0]

    def flush_logs(self):
        self.records.clear()

    def messages(self, priority=None, component=None):
        """Return stored messages, optionally filtered by priority name and component."""
        return [
            r.message for r in self.records
            if (priority is None or r.priority == priority)
            and (component is None or r.component == component)
        ]

    def components(self):
        """Subsystems that logged at least once, in first-seen order."""
        return list(dict.fromkeys(r.component for r in self.records))
