"""
Fragment identification for TV Anytime metadata.

A fragment is any element that can be addressed across snapshots. Most TVA
fragments carry an explicit ``fragmentId``; the rest are identified by a
type-specific key (``programId``, ``serviceId``, ...). Elements with no
computable key are not fragments.
"""

from datetime import datetime, timezone
from typing import Callable

from lxml import etree

TVA_NAMESPACE = "urn:tva:metadata:2010"

FRAGMENT_ID_ATTRIBUTE = "fragmentId"
EXPIRATION_ATTRIBUTE = "fragmentExpirationDate"

INSTANCE_METADATA_ID = f"{{{TVA_NAMESPACE}}}InstanceMetadataId"


class InvalidExpirationError(ValueError):
    """Raised when a fragment's expiration date is not a valid xsd:dateTime."""


def local_name(element) -> str:
    """Local part of an element's qualified name."""
    return etree.QName(element).localname


def _attribute(name: str) -> Callable[[etree._Element], str | None]:
    def lookup(element: etree._Element) -> str | None:
        return element.get(name)
    return lookup


def _single_instance_metadata_id(element: etree._Element) -> str | None:
    """Text of the one tva:InstanceMetadataId child, if there is exactly one."""
    matches = element.findall(INSTANCE_METADATA_ID)
    if len(matches) != 1:
        return None
    return "".join(matches[0].itertext())


# Local name -> identity lookup
IDENTITY_RULES: dict[str, Callable[[etree._Element], str | None]] = {
    "ProgramInformation": _attribute("programId"),
    "GroupInformation": _attribute("groupId"),
    "BroadcastEvent": _single_instance_metadata_id,
    "OnDemandProgram": _single_instance_metadata_id,
    "ServiceInformation": _attribute("serviceId"),
    "Schedule": _attribute("serviceId"),
}


def identity(element) -> str | None:
    """Type-specific identity of an element, ignoring ``fragmentId``."""
    # Comments and processing instructions have a non-string tag
    if not isinstance(element.tag, str):
        return None
    rule = IDENTITY_RULES.get(local_name(element))
    if rule is None:
        return None
    return rule(element)


def fragment_id(element) -> str | None:
    """Identity used to key a fragment within a snapshot.

    An explicit ``fragmentId`` attribute wins over the type-specific identity.
    """
    if not isinstance(element.tag, str):
        return None
    explicit = element.get(FRAGMENT_ID_ATTRIBUTE)
    if explicit is not None:
        return explicit
    return identity(element)


def is_fragment(element) -> bool:
    """Check if an element is an addressable fragment."""
    return fragment_id(element) is not None


def parse_datetime(value: str) -> datetime:
    """Parse an xsd:dateTime. Values without an offset are taken as UTC.

    Any number of fractional second digits is accepted; digits past
    microseconds are dropped.
    """
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidExpirationError(f"Invalid {EXPIRATION_ATTRIBUTE} '{value}'") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def expiration(element) -> datetime | None:
    """Expiration timestamp of a fragment, or None if it never expires."""
    value = element.get(EXPIRATION_ATTRIBUTE)
    if value is None:
        return None
    return parse_datetime(value)


def is_expired(expires: datetime | None, at: datetime) -> bool:
    """A fragment is expired at ``at`` once its expiration time is reached."""
    return expires is not None and expires <= at
