import datetime as dt
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional

DEFAULT_ANCHORS = ["taux d'intérêt annuel", "taux d'interet annuel"]
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120 Safari/537.36"
)

class HistoryEntry(BaseModel):
    date: dt.date
    rate: float

class ProductRate(BaseModel):
    # labels and other seeded keys survive a load/save cycle
    model_config = ConfigDict(extra="allow")

    current_rate: float
    current_since: dt.date
    history: List[HistoryEntry] = Field(default_factory=list)

class RateDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    updated_at: Optional[dt.date] = None
    products: Dict[str, ProductRate]

class ProductSource(BaseModel):
    id: str
    label: Optional[str] = None
    url: str
    extractor: str = "anchor_window"
    anchors: List[str] = Field(default_factory=lambda: list(DEFAULT_ANCHORS), min_length=1)
    window: int = Field(300, gt=0)
    patterns: List[str] = Field(default_factory=list)

class SourcesConfig(BaseModel):
    timeout: float = Field(30, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    sources: List[ProductSource] = Field(..., min_length=1)
