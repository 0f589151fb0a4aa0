from datetime import datetime, timezone


def dt_to_psx(dt: datetime) -> float:
    """
    Convert a datetime object to a POSIX timestamp (seconds since epoch).

    Naive datetimes are treated as UTC, which is how MongoDB hands them back.

    Args:
        dt (datetime): The datetime object to convert.

    Returns:
        float: The POSIX timestamp.
    """

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return float(dt.timestamp())


def psx_to_dt(posix: float) -> datetime:
    """
    Convert a POSIX timestamp (seconds since epoch) to a datetime object.

    Args:
        posix (float): The POSIX timestamp to convert.

    Returns:
        datetime: The corresponding datetime object.
    """

    return datetime.fromtimestamp(posix, tz=timezone.utc)


def parse_id_list(raw: str) -> list[str]:
    """
    Split a comma or whitespace separated list of IDs, dropping blanks and duplicates.

    Args:
        raw (str): The raw user input, e.g. "a1, b2 c3".

    Returns:
        list[str]: The IDs in the order they were given.
    """

    ids: list[str] = []
    for part in raw.replace(",", " ").split():
        if part not in ids:
            ids.append(part)
    return ids


def format_ws(amount: float) -> str:
    """Format a WS amount for display, e.g. `1,234.50 WS`."""

    return f"{amount:,.2f} WS"
