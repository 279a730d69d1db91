"""Domain name helpers.

Zone lookup uses a two-label root guess (www.example.com -> example.com),
which is what the DNS provider's zone names look like for ordinary
registrations. Multi-part public suffixes (example.co.uk) are not special
cased.
"""

from __future__ import annotations

import re

_LABEL_RE = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")


def normalize_domain(domain: str) -> str:
    """Lower-case a domain and strip whitespace and a trailing dot.

    Examples:
        >>> normalize_domain(" WWW.Example.com. ")
        'www.example.com'
    """
    return domain.strip().lower().rstrip(".")


def validate_domain(domain: str) -> tuple[bool, str | None]:
    """Validate a fully-qualified domain name.

    Returns:
        Tuple of (is_valid, error_message).
        If valid, error_message is None.

    Examples:
        >>> validate_domain("www.example.com")
        (True, None)
        >>> validate_domain("localhost")
        (False, 'Domain must have at least one dot')
    """
    if not domain:
        return False, "Domain is empty"
    if len(domain) > 253:
        return False, "Domain is too long"
    if "*" in domain:
        return False, "Wildcard domains are not supported"
    if "." not in domain:
        return False, "Domain must have at least one dot"
    if ".." in domain or domain.startswith(".") or domain.endswith("."):
        return False, "Invalid domain format"
    for label in domain.split("."):
        if not _LABEL_RE.match(label):
            return False, f"Invalid label: {label}"
    return True, None


def root_domain(domain: str) -> str | None:
    """Return the two-label root of a subdomain, or None if already a root.

    Examples:
        >>> root_domain("www.example.com")
        'example.com'
        >>> root_domain("example.com") is None
        True
    """
    parts = domain.split(".")
    if len(parts) > 2:
        return ".".join(parts[-2:])
    return None


def host_from_header(host: str) -> str:
    """Normalize a Host header: drop the port and a leading ``www.``.

    Examples:
        >>> host_from_header("www.example.com:443")
        'example.com'
    """
    name = normalize_domain(host.split(":")[0])
    if name.startswith("www."):
        name = name[4:]
    return name


def platform_subdomain(host: str, base_domain: str) -> str | None:
    """Return the first label of a host under the platform base domain.

    Examples:
        >>> platform_subdomain("acme.kynguyenrealai.com", "kynguyenrealai.com")
        'acme'
        >>> platform_subdomain("example.com", "kynguyenrealai.com") is None
        True
    """
    base = normalize_domain(base_domain)
    if not host.endswith(f".{base}"):
        return None
    label = host[: -(len(base) + 1)].split(".")[0]
    return label or None
