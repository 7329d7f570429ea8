import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level_name: str = "INFO") -> None:
    """
    Configure root logging once for the process.

    Args:
        level_name: The logging level (e.g., "DEBUG", "INFO").
    """
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # httpx logs every request at INFO, including provider URLs
    logging.getLogger("httpx").setLevel(logging.WARNING)


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """
    Redact a secret for display: 'sk-abcdef123456' -> 'sk-a…3456'.

    Short values are fully masked; missing values render as 'unset'.
    """
    if not value:
        return "unset"
    if len(value) <= visible * 2:
        return "*" * len(value)
    return f"{value[:visible]}…{value[-visible:]}"
