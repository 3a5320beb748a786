# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

"""
Splunk compatible, one JSON object per line, log output
"""

import datetime
import enum
import logging

from pydantic import BaseModel
from pythonjsonlogger.json import JsonFormatter


class SplunkExtendedLogEntry(BaseModel):
    """
    Log message carrying additional, indexable fields.
    Passed as msg to a logger call; the plain text representation appends key=value pairs.
    """

    message: str

    def extended_fields(self) -> dict[str, object]:
        """All fields except the message, enums as values, without unset fields"""
        fields = {}
        for name in type(self).model_fields:
            if name == "message":
                continue
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, enum.Enum):
                value = value.value
            fields[name] = value if isinstance(value, (str, int, float, bool)) else str(value)
        return fields

    def __str__(self) -> str:
        extended = " ".join(f"{key}={value}" for key, value in self.extended_fields().items())
        return f"{self.message} {extended}" if extended else self.message


class SplunkFormatter(JsonFormatter):
    """
    Formats records as JSON with the fields expected by the splunk index:
    message, level, @timestamp, hash (correlation id), app and all extended fields
    """

    def __init__(self, defaults: dict = None, **kwargs) -> None:
        self._splunk_defaults = defaults if defaults else {}
        super().__init__("%(message)s", **kwargs)

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["@timestamp"] = datetime.datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds")
        log_record["hash"] = getattr(record, "correlation_id", None) or self._splunk_defaults.get("correlation_id")
        log_record["app"] = self._splunk_defaults.get("app_name")
        log_record["logger"] = record.name
        if isinstance(record.msg, SplunkExtendedLogEntry):
            log_record.update(record.msg.extended_fields())
