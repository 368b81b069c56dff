import datetime as dt
from typing import Dict, List, Optional

from providers.base import HistoryEntry, ProductRate, RateDocument
from providers.errors import PersistenceError, StaleDateError

RATE_TOLERANCE = 1e-12

def check_date_order(product: ProductRate, effective_date: dt.date, product_id: Optional[str] = None) -> None:
    if product.history and effective_date < product.history[-1].date:
        raise StaleDateError(product_id, effective_date, product.history[-1].date)

def upsert_rate(product: ProductRate, effective_date: dt.date, rate: float) -> bool:
    """Record ``rate`` as in force from ``effective_date``.

    Returns False (and leaves the record untouched) when the rate did not
    change. A re-run on the same day overwrites that day's entry instead of
    adding a second one, and a rate equal to the last logged one is never
    logged again under a new date. Dates before the last entry are refused.
    """
    check_date_order(product, effective_date)
    if product.current_rate == rate:
        return False

    last = product.history[-1] if product.history else None
    if last is None or last.date != effective_date:
        if last is None or abs(last.rate - rate) >= RATE_TOLERANCE:
            product.history.append(HistoryEntry(date=effective_date, rate=rate))
    else:
        last.rate = rate

    product.current_rate = rate
    product.current_since = effective_date
    return True

def apply_rates(document: RateDocument, rates: Dict[str, float], effective_date: dt.date) -> List[str]:
    missing = [pid for pid in rates if pid not in document.products]
    if missing:
        raise PersistenceError(f"products missing from rate document: {', '.join(missing)}")
    # every product is checked before any is changed
    for pid in rates:
        check_date_order(document.products[pid], effective_date, pid)

    changed = [pid for pid, rate in rates.items() if upsert_rate(document.products[pid], effective_date, rate)]
    document.updated_at = effective_date
    return changed
