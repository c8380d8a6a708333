"""
Timestamp Parser Utility
========================

This module turns the date values found in timeline source rows into naive
UTC datetime objects. Rows are edited by hand, so the parser accepts the
formats people actually type into a spreadsheet date column.

Supported Formats:
- Python datetime / date objects
- ISO 8601 strings (with or without time and timezone)
- US numeric dates (01/31/2020) and written dates (January 31, 2020 / 31 January 2020)
- Year-month and bare years (2020-01, 2020)
- Unix timestamps in seconds or milliseconds
"""

import datetime
import logging
from typing import Optional, Union

# Configure logger
logger = logging.getLogger(__name__)


class TimestampParser:
    """
    Tolerant parser for event dates.

    All results are timezone-naive datetimes in UTC so that instants from
    different rows compare and subtract without surprises.
    """

    UNIX_EPOCH = datetime.datetime(1970, 1, 1)

    STRING_FORMATS = [
        "%Y-%m-%dT%H:%M:%S.%fZ",      # 2023-11-13T16:00:00.000Z
        "%Y-%m-%dT%H:%M:%SZ",          # 2023-11-13T16:00:00Z
        "%Y-%m-%d %H:%M:%S",           # 2023-11-13 16:00:00
        "%Y-%m-%d",                    # 2023-11-13
        "%m/%d/%Y",                    # 11/13/2023
        "%m/%d/%Y %H:%M",              # 11/13/2023 16:00
        "%B %d, %Y",                   # November 13, 2023
        "%b %d, %Y",                   # Nov 13, 2023
        "%d %B %Y",                    # 13 November 2023
        "%d %b %Y",                    # 13 Nov 2023
        "%B %Y",                       # November 2023
        "%Y-%m",                       # 2023-11
        "%Y",                          # 2023
    ]

    @staticmethod
    def parse_timestamp(value: Union[str, int, float, datetime.date, None]) -> Optional[datetime.datetime]:
        """
        Parse a date value from a source row.

        Args:
            value: Date in any supported form

        Returns:
            datetime.datetime: Naive UTC datetime, or None if the value cannot be parsed

        Examples:
            >>> TimestampParser.parse_timestamp("2020-01-31")
            datetime.datetime(2020, 1, 31, 0, 0)

            >>> TimestampParser.parse_timestamp("January 31, 2020")
            datetime.datetime(2020, 1, 31, 0, 0)
        """
        if value is None:
            return None

        if isinstance(value, bool):
            logger.debug(f"Rejected boolean timestamp: {value}")
            return None

        if isinstance(value, datetime.datetime):
            return TimestampParser._ensure_utc(value)

        if isinstance(value, datetime.date):
            return datetime.datetime(value.year, value.month, value.day)

        if isinstance(value, (int, float)):
            return TimestampParser._parse_numeric_timestamp(value)

        if isinstance(value, str):
            if not value.strip():
                return None
            return TimestampParser._parse_string_timestamp(value)

        logger.warning(f"Unknown timestamp type: {type(value)}")
        return None

    @staticmethod
    def _parse_numeric_timestamp(timestamp: Union[int, float]) -> Optional[datetime.datetime]:
        """
        Parse a Unix timestamp in seconds or milliseconds.

        Values of 1e11 and above are taken to be milliseconds.
        """
        if timestamp != timestamp:  # NaN
            return None

        seconds = timestamp / 1000.0 if abs(timestamp) >= 1e11 else timestamp
        try:
            return TimestampParser.UNIX_EPOCH + datetime.timedelta(seconds=seconds)
        except (OverflowError, ValueError) as e:
            logger.debug(f"Failed to parse Unix timestamp {timestamp}: {e}")
            return None

    @staticmethod
    def _parse_string_timestamp(timestamp_str: str) -> Optional[datetime.datetime]:
        """Parse a string in ISO 8601 or one of STRING_FORMATS."""
        timestamp_str = " ".join(timestamp_str.split())

        try:
            dt = datetime.datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))
            return TimestampParser._ensure_utc(dt)
        except ValueError:
            pass

        for fmt in TimestampParser.STRING_FORMATS:
            try:
                return datetime.datetime.strptime(timestamp_str, fmt)
            except ValueError:
                continue

        try:
            return TimestampParser._parse_numeric_timestamp(float(timestamp_str))
        except ValueError:
            pass

        logger.debug(f"Failed to parse string timestamp: {timestamp_str}")
        return None

    @staticmethod
    def _ensure_utc(dt: datetime.datetime) -> datetime.datetime:
        """Convert aware datetimes to UTC and drop the timezone; naive ones are assumed UTC."""
        if dt.tzinfo is None:
            return dt
        return dt.astimezone(datetime.timezone.utc).replace(tzinfo=None)

    @staticmethod
    def format_timestamp(dt: Optional[datetime.datetime], format_str: str = "%d %B %Y") -> str:
        """
        Format a datetime for display (default: "31 January 2020").

        Returns:
            str: Formatted date, or empty string if dt is None
        """
        if dt is None:
            return ""
        return dt.strftime(format_str)
