import re
import sys
import yaml
import requests
from decimal import Decimal
from bs4 import BeautifulSoup
from pydantic import ValidationError
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict

from providers.base import DEFAULT_USER_AGENT, ProductSource, SourcesConfig
from providers.errors import (
    ConfigError,
    ExtractionError,
    FetchError,
    OutOfRangeError,
    RateUpdateError,
)

MAX_RATE = 0.20
PCT_RE = re.compile(r"(\d+(?:[.,]\d+)?)\s*%")
WS_RE = re.compile(r"\s+")

def fetch_page(src: ProductSource, timeout: float = 30, user_agent: str = DEFAULT_USER_AGENT) -> str:
    headers = {
        "User-Agent": user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "fr-FR,fr;q=0.9,en;q=0.8",
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
    }
    try:
        r = requests.get(src.url, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(src.id, src.url, reason=str(e)) from e
    if not 200 <= r.status_code < 300:
        raise FetchError(src.id, src.url, status=r.status_code)
    r.encoding = "utf-8"
    return r.text

def strip_markup(html: str) -> str:
    """Flatten a page to lowercase single-spaced text for phrase matching."""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style"]):
        tag.decompose()
    text = soup.get_text(" ").replace("’", "'")
    return WS_RE.sub(" ", text).strip().lower()

def _rate_from_number(num: str) -> float:
    # "1,7" -> 0.017, same double as the literal stored in rates.json
    return float(Decimal(num.replace(",", ".")) / 100)

def extract_anchor_window(src: ProductSource, text: str) -> float:
    # first anchor found wins; only src.window chars after it are searched
    for anchor in src.anchors:
        anchor = anchor.lower()
        idx = text.find(anchor)
        if idx != -1:
            break
    else:
        raise ExtractionError(src.id, "anchor", f"none of {src.anchors} found on page")
    start = idx + len(anchor)
    m = PCT_RE.search(text[start:start + src.window])
    if not m:
        raise ExtractionError(
            src.id, "percentage", f"no percentage within {src.window} chars after '{anchor}'"
        )
    return _rate_from_number(m.group(1))

def extract_patterns(src: ProductSource, text: str) -> float:
    for rx in src.patterns:
        m = re.search(rx, text, re.IGNORECASE)
        if m:
            return _rate_from_number(m.group("rate"))
    return extract_anchor_window(src, text)

EXTRACTORS: Dict[str, Callable[[ProductSource, str], float]] = {
    "anchor_window": extract_anchor_window,
    "patterns": extract_patterns,
}

def extract_rate(src: ProductSource, html: str) -> float:
    return EXTRACTORS[src.extractor](src, strip_markup(html))

def validate_rate(product_id: str, rate: float) -> float:
    if rate < 0 or rate > MAX_RATE:
        raise OutOfRangeError(product_id, rate)
    return rate

def fetch_rate(src: ProductSource, timeout: float = 30, user_agent: str = DEFAULT_USER_AGENT) -> float:
    html = fetch_page(src, timeout=timeout, user_agent=user_agent)
    return validate_rate(src.id, extract_rate(src, html))

def load_sources(config_path="sources.yaml") -> SourcesConfig:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read source config {config_path}: {e}") from e
    try:
        config = SourcesConfig.model_validate(cfg or {})
    except ValidationError as e:
        raise ConfigError(f"invalid source config {config_path}: {e}") from e

    seen = set()
    for src in config.sources:
        if src.id in seen:
            raise ConfigError(f"duplicate source id: {src.id}")
        seen.add(src.id)
        if src.extractor not in EXTRACTORS:
            raise ConfigError(f"unsupported extractor for {src.id}: {src.extractor}")
        for rx in src.patterns:
            try:
                compiled = re.compile(rx)
            except re.error as e:
                raise ConfigError(f"bad pattern for {src.id}: {rx!r} ({e})") from e
            if "rate" not in compiled.groupindex:
                raise ConfigError(f"pattern for {src.id} has no (?P<rate>...) group: {rx!r}")
    return config

def run_aggregate(config: SourcesConfig) -> Dict[str, float]:
    """Fetch every configured product concurrently.

    All-or-nothing: the first failing product aborts the whole gather and
    its error propagates. Rates come back in config order.
    """
    rates: Dict[str, float] = {}
    with ThreadPoolExecutor(max_workers=len(config.sources)) as executor:
        futures = {
            executor.submit(fetch_rate, src, config.timeout, config.user_agent): src
            for src in config.sources
        }
        for future in as_completed(futures):
            src = futures[future]
            try:
                rate = future.result()
            except RateUpdateError as e:
                print(f"✗ {src.id} failed: {e}", file=sys.stderr)
                for f in futures:
                    f.cancel()
                raise
            rates[src.id] = rate
            print(f"✓ {src.id} -> {rate}")
    return {src.id: rates[src.id] for src in config.sources}

if __name__ == "__main__":
    out = run_aggregate(load_sources())
    print(f"Total collected: {len(out)}")
