"""Small shared helpers."""

from folio.utils.timestamps import as_utc, utc_now


__all__ = ["as_utc", "utc_now"]
