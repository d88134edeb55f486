"""Approximate affected-product extraction.

This is text pattern matching over free-form CVE descriptions. It finds
well-known vendor names and the few words that follow them. Results are
incomplete and noisy by nature and must not be treated as an authoritative
list of affected configurations.
"""

import re

from cvelens.models.kev import KEVEntry

KNOWN_VENDORS = (
    "Microsoft",
    "Windows",
    "Oracle",
    "Linux",
    "Apache",
    "Cisco",
    "VMware",
    "Adobe",
    "Google",
    "Apple",
    "IBM",
    "SAP",
    "Dell",
    "HP",
    "Nvidia",
    "Intel",
    "AMD",
)

MAX_DESCRIPTION_MATCHES = 5

# Vendor token plus up to four following words
_PRODUCT_PATTERN = re.compile(
    r"\b(?:" + "|".join(KNOWN_VENDORS) + r")\b(?:[ \t]+[\w][\w.\-]*){0,4}",
    re.IGNORECASE,
)


def extract_affected_products(
    description: str,
    kev_entry: KEVEntry | None = None,
    limit: int = MAX_DESCRIPTION_MATCHES,
) -> list[str]:
    """Guess affected product names from a description (approximate).

    Args:
        description: Free-text CVE description.
        kev_entry: KEV entry whose vendor/product is appended when present.
        limit: Maximum number of description matches kept.

    Returns:
        De-duplicated product strings in first-seen order.
    """
    products: list[str] = []
    seen: set[str] = set()

    for match in _PRODUCT_PATTERN.finditer(description):
        candidate = match.group(0).strip().rstrip(".")
        key = candidate.lower()
        if key in seen:
            continue
        seen.add(key)
        products.append(candidate)
        if len(products) >= limit:
            break

    if kev_entry:
        kev_product = f"{kev_entry.vendor_project} {kev_entry.product}".strip()
        if kev_product and kev_product.lower() not in seen:
            products.append(kev_product)

    return products
