import os
from pathlib import Path
from typing import List

from .loader import section

_DEFAULT_DOCUMENT_DIR = Path("data") / "documents"


def _split_names(raw: str) -> List[str]:
    return [name.strip() for name in raw.split(",") if name.strip()]


class Documents:
    def __init__(self, config: dict | None = None) -> None:
        docs_cfg = section(config, "documents")

        channel_id = docs_cfg.get("channel_id") or os.getenv("DOCUMENT_CHANNEL_ID", "0")
        self.CHANNEL_ID: int = int(channel_id)
        self.DOCUMENT_DIR: str = str(docs_cfg.get("directory", os.getenv("DOCUMENT_DIR", str(_DEFAULT_DOCUMENT_DIR))))

        names_cfg = docs_cfg.get("names")
        if names_cfg:
            self.NAMES: List[str] = [str(name) for name in names_cfg]
        else:
            self.NAMES = _split_names(os.getenv("DOCUMENT_NAMES", ""))

        # 2000 character message limit minus the ```json fence and some slack.
        self.FRAGMENT_LENGTH: int = int(docs_cfg.get("fragment_length", os.getenv("DOCUMENT_FRAGMENT_LENGTH", "1986")))
        # Discord text inputs hold at most 4000 characters.
        self.MAX_EDIT_LENGTH: int = int(docs_cfg.get("max_edit_length", os.getenv("DOCUMENT_MAX_EDIT_LENGTH", "4000")))

        if not self.CHANNEL_ID:
            raise ValueError("Missing environment variables: DOCUMENT_CHANNEL_ID")
