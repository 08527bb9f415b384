import re
import uuid
from datetime import datetime, timezone

import shortuuid

_TOKEN_ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
_SKU_BASE_RE = re.compile(r"[^a-zA-Z0-9]")


def generate_id() -> str:
    return str(uuid.uuid4())


def generate_short_token(length: int = 6) -> str:
    return shortuuid.ShortUUID(alphabet=_TOKEN_ALPHABET).random(length=length)


def generate_order_number(prefix: str, now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return f"{prefix}-{moment:%Y%m%d%H%M%S}-{generate_short_token()}"


def generate_batch_id(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return f"B-{moment:%Y%m%d}-{generate_short_token()}"


def sku_base(name: str | None) -> str:
    cleaned = _SKU_BASE_RE.sub("", name or "").upper()[:8]
    return cleaned or "FISH"


def generate_sku_candidate(name: str | None) -> str:
    return f"{sku_base(name)}-{generate_short_token()}"
