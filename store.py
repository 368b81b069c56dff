import os
import json
import tempfile
from pydantic import ValidationError
from typing import Iterable

from providers.base import RateDocument
from providers.errors import PersistenceError

def load_document(path="rates.json", product_ids: Iterable[str] = ()) -> RateDocument:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise PersistenceError(f"cannot read rate document: {e}", path=str(path)) from e
    except json.JSONDecodeError as e:
        raise PersistenceError(f"malformed JSON: {e}", path=str(path)) from e
    try:
        doc = RateDocument.model_validate(data)
    except ValidationError as e:
        raise PersistenceError(f"unexpected document shape: {e}", path=str(path)) from e

    missing = [pid for pid in product_ids if pid not in doc.products]
    if missing:
        raise PersistenceError(f"missing products: {', '.join(missing)}", path=str(path))
    return doc

def save_document(doc: RateDocument, path="rates.json") -> None:
    payload = json.dumps(doc.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
    # temp file in the same directory, then atomic swap
    directory = os.path.dirname(os.path.abspath(path))
    fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise PersistenceError(f"cannot write rate document: {e}", path=str(path)) from e
