from datetime import datetime, timezone

from pythonjsonlogger.json import JsonFormatter


class RFC3339JsonFormatter(JsonFormatter):
    """JSON formatter with RFC 3339 timestamps"""

    def process_log_record(self, log_record):
        if "created" in log_record:
            dt = datetime.fromtimestamp(log_record["created"], tz=timezone.utc)
            log_record["timestamp"] = dt.isoformat()
            log_record.pop("created", None)
            log_record.pop("asctime", None)

        return super().process_log_record(log_record)
