import datetime as dt
from typing import Optional

# every error aborts the run: rates.json is left untouched and the CLI exits 1
class RateUpdateError(Exception):
    pass

class ConfigError(RateUpdateError):
    pass

class FetchError(RateUpdateError):
    def __init__(self, product_id: str, url: str, status: Optional[int] = None, reason: Optional[str] = None):
        detail = f"HTTP {status}" if status is not None else (reason or "transport error")
        super().__init__(f"[{product_id}] fetch failed: {detail} on {url}")
        self.product_id = product_id
        self.url = url
        self.status = status

class ExtractionError(RateUpdateError):
    # stage is "anchor" (no anchor phrase) or "percentage" (nothing after it)
    def __init__(self, product_id: str, stage: str, message: str):
        super().__init__(f"[{product_id}] extraction failed ({stage}): {message}")
        self.product_id = product_id
        self.stage = stage

class OutOfRangeError(RateUpdateError):
    def __init__(self, product_id: str, rate: float):
        super().__init__(f"[{product_id}] rate out of bounds: {rate}")
        self.product_id = product_id
        self.rate = rate

class StaleDateError(RateUpdateError):
    def __init__(self, product_id: Optional[str], effective_date: dt.date, last_date: dt.date):
        prefix = f"[{product_id}] " if product_id else ""
        super().__init__(
            f"{prefix}effective date {effective_date.isoformat()} is before "
            f"last history entry {last_date.isoformat()}"
        )
        self.product_id = product_id
        self.effective_date = effective_date
        self.last_date = last_date

class PersistenceError(RateUpdateError):
    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
