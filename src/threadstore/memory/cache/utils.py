import textwrap

from threadstore.store import Record


def _record_preview(record: Record, *, width: int = 40) -> str:
    """Return a compact one-line summary for logs: e.g., 123:'Hello…'."""
    text = record.content or ", ".join(f"{k}={v}" for k, v in record.fields.items())
    if not text:
        return str(record.id)
    return f"{record.id}:'{textwrap.shorten(text, width=width, placeholder='…')}'"
