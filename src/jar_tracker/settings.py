"""Persisted user preferences for Jar Tracker."""

from datetime import date, datetime

from .errors import ValidationError
from .models import DateFormat
from .sqlite_store import SQLiteStore

DATE_FORMAT_KEY = "dateFormat"
DEFAULT_DATE_FORMAT = DateFormat.US

_MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_date(value: str | date | datetime, fmt: DateFormat | str = DEFAULT_DATE_FORMAT) -> str:
    """Render a date in one of the supported display formats.

    Args:
        value: A date, datetime or ISO-8601 string
        fmt: Display format

    Raises:
        ValidationError: If the format is unknown or the string is not a date
    """
    fmt = _coerce_format(fmt)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError as e:
            raise ValidationError(f"Invalid date: {value!r}") from e

    if fmt is DateFormat.US:
        return f"{value.month:02d}/{value.day:02d}/{value.year}"
    if fmt is DateFormat.INTERNATIONAL:
        return f"{value.day:02d}/{value.month:02d}/{value.year}"
    return f"{_MONTH_NAMES[value.month - 1]} {value.day}, {value.year}"


def _coerce_format(fmt: DateFormat | str) -> DateFormat:
    try:
        return DateFormat(fmt)
    except ValueError as e:
        supported = ", ".join(f.value for f in DateFormat)
        raise ValidationError(f"Unknown date format {fmt!r} (supported: {supported})") from e


class SettingsManager:
    """Reads and writes the ``app_settings`` key/value table."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    def get(self, key: str, default: str | None = None) -> str | None:
        row = self.store.query_one("SELECT value FROM app_settings WHERE key = ?", (key,))
        return row["value"] if row else default

    def set(self, key: str, value: str) -> None:
        self.store.run(
            lambda conn: conn.execute(
                "INSERT OR REPLACE INTO app_settings (key, value) VALUES (?, ?)", (key, value)
            )
        )

    def get_date_format(self) -> DateFormat:
        """The saved date format, or MM/DD/YYYY if none (or an unknown one) is saved."""
        try:
            return DateFormat(self.get(DATE_FORMAT_KEY, DEFAULT_DATE_FORMAT.value))
        except ValueError:
            return DEFAULT_DATE_FORMAT

    def set_date_format(self, fmt: DateFormat | str) -> DateFormat:
        """Save the date format.

        Raises:
            ValidationError: If the format is not supported
        """
        fmt = _coerce_format(fmt)
        self.set(DATE_FORMAT_KEY, fmt.value)
        return fmt

    def format_date(self, value: str | date | datetime, fmt: DateFormat | str | None = None) -> str:
        """Render a date with ``fmt``, or the saved preference when omitted."""
        return format_date(value, fmt or self.get_date_format())
