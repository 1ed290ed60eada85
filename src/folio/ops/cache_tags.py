"""Cache tags and the revalidation hook for the write path.

Rendered pages and listings are cached at the edge under named tags. The
read layer never touches them; whatever writes content must call
``trigger_revalidation`` after a successful mutation, otherwise visitors see
stale listings until the cache TTL expires.
"""

from typing import Any, Dict, List, Optional, Sequence

import requests

from folio.database.entities import EntityKind
from folio.utils.logging import get_logger

logger = get_logger(__name__)

# One tag per listing view, one for item detail, one for classification lists
LISTING_TAGS: Dict[EntityKind, tuple[str, ...]] = {
    EntityKind.POST: ("blog:posts", "blog:landing:list", "blog:recent", "blog:related"),
    EntityKind.PORTFOLIO: ("portfolio:items", "portfolio:landing:list", "portfolio:related"),
}
DETAIL_TAGS: Dict[EntityKind, str] = {
    EntityKind.POST: "blog:detail",
    EntityKind.PORTFOLIO: "portfolio:detail",
}
CLASSIFICATION_TAGS: Dict[EntityKind, str] = {
    EntityKind.POST: "blog:categories",
    EntityKind.PORTFOLIO: "portfolio:categories",
}

MUTATION_TARGETS = ("item", "classification", "association")


def tags_for_mutation(kind: EntityKind | str, target: str = "item") -> List[str]:
    """
    Tags to invalidate after a write.

    Args:
        kind: Content kind that was written
        target: "item" (content row), "classification" (category/project
            type) or "association" (tag/technology or junction rows)

    Returns:
        Ordered, de-duplicated tag list
    """
    kind = EntityKind(kind)
    if target not in MUTATION_TARGETS:
        raise ValueError(f"Unknown mutation target: {target} (expected one of {', '.join(MUTATION_TARGETS)})")

    tags = list(LISTING_TAGS[kind])
    if target in ("item", "association"):
        tags.append(DETAIL_TAGS[kind])
    if target == "classification":
        tags.extend([CLASSIFICATION_TAGS[kind], DETAIL_TAGS[kind]])
    elif target == "item":
        # usage counts shown next to classifications change too
        tags.append(CLASSIFICATION_TAGS[kind])
    return list(dict.fromkeys(tags))


def trigger_revalidation(
    kind: EntityKind | str,
    tags: Sequence[str],
    settings: Dict[str, Any],
    slug: Optional[str] = None,
) -> bool:
    """
    POST the tags to the site's revalidation endpoint.

    Args:
        kind: Content kind (sent as the payload type)
        tags: Tags to invalidate
        settings: Output of config.loader.get_revalidation_settings
        slug: Optional item slug so the detail page is revalidated directly

    Returns:
        True if the endpoint accepted the request, False otherwise (never raises)
    """
    kind = EntityKind(kind)
    url = settings.get("url")
    secret = settings.get("secret")
    if not url:
        logger.info("Revalidation URL not configured, skipping cache invalidation")
        return False
    if not secret:
        logger.warning("Revalidation secret not set, skipping cache invalidation")
        return False

    payload: Dict[str, Any] = {"type": kind.value, "tags": list(tags)}
    if slug:
        payload["slug"] = slug

    try:
        response = requests.post(
            url,
            json=payload,
            headers={"Authorization": f"Bearer {secret}"},
            timeout=settings.get("timeout_seconds", 10),
        )
    except requests.RequestException as e:
        logger.error(f"Revalidation request failed: {e}")
        return False

    if not response.ok:
        logger.error(f"Revalidation rejected: HTTP {response.status_code} {response.text[:200]}")
        return False
    logger.info(f"Revalidated {kind.value} tags: {', '.join(tags)}")
    return True
