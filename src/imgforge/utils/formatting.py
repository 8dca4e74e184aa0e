"""
Display helpers for image sizes and modification times
"""

from datetime import datetime
from typing import Optional, Union


def format_size(size_mb: Union[int, float]) -> str:
    """Size in MB, switching to GB with two decimals from 1024 MB upward"""
    if size_mb >= 1024:
        return f"{size_mb / 1024:.2f} GB"
    return f"{int(size_mb)} MB"


def format_date(timestamp: Optional[Union[int, float]]) -> str:
    """Local date and time for an epoch timestamp, e.g. 'Mar 4, 2025, 09:15 PM'"""
    if not timestamp:
        return ""
    moment = datetime.fromtimestamp(timestamp)
    return f"{moment.strftime('%b')} {moment.day}, {moment.year}, {moment.strftime('%I:%M %p')}"
