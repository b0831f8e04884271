from typing import Tuple

from .config import COMPOSITE_ID_SEP

MAX_IMAGES = 10


def is_valid_image_url(candidate) -> bool:
    """http(s)-адрес без разделителя составного id (id товара: не картинка)"""
    if not isinstance(candidate, str):
        return False
    trimmed = candidate.strip()
    if not trimmed or COMPOSITE_ID_SEP in trimmed:
        return False
    return trimmed.startswith("http://") or trimmed.startswith("https://")


def resolve_image_urls(raw: dict) -> Tuple[str, ...]:
    """
    Список картинок документа инвентаря (не более MAX_IMAGES).
    Сначала imageUrls, если он пуст: одиночное imageUrl / imageURL.
    Невалидные адреса отбрасываются, лишние обрезаются.
    """
    urls = raw.get("imageUrls")
    if isinstance(urls, (list, tuple)) and urls:
        valid = (u.strip() for u in urls if is_valid_image_url(u))
        return tuple(valid)[:MAX_IMAGES]

    single = raw.get("imageUrl") or raw.get("imageURL") or ""
    return (single.strip(),) if is_valid_image_url(single) else ()
