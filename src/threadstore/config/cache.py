import os

from .loader import section


def _optional_int(raw) -> int | None:
    """``0`` or an empty value disables the bound."""
    value = int(raw or 0)
    return value if value > 0 else None


class Cache:
    def __init__(self, config: dict | None = None) -> None:
        cache_cfg = section(config, "cache")
        # The probe page only answers "is this stream empty?"
        self.PROBE_PAGE_SIZE: int = int(cache_cfg.get("probe_page_size", os.getenv("CACHE_PROBE_PAGE_SIZE", "1")))
        # Discord caps history pages at 100 messages.
        self.PAGE_SIZE: int = int(cache_cfg.get("page_size", os.getenv("CACHE_PAGE_SIZE", "100")))
        self.MAX_STREAMS: int | None = _optional_int(cache_cfg.get("max_streams", os.getenv("CACHE_MAX_STREAMS", "256")))
        self.MAX_RECORDS: int | None = _optional_int(cache_cfg.get("max_records", os.getenv("CACHE_MAX_RECORDS", "100000")))
