"""
Loose equality of XML trees, for message and metadata documents.

Two trees are considered equal when they differ only in:
  - the order of sibling elements,
  - the prefix spelling of namespaces,
  - comments,
  - whitespace around plain text (CDATA sections are compared verbatim).

Sibling text segments are merged before comparison, as text only appears at
the bottom of such trees.

The comparison is not symmetric. ``a`` is the newer tree and ``b`` the older
one: attributes are reported from ``a``'s side only, and text divergences
point into ``a``.
"""

import html
import re
from dataclasses import dataclass
from typing import Iterator, Union

from lxml import etree

ROOT_MISMATCH = "Root elements do not match."
ATTRIBUTE_COUNT = "Element has different number of attributes"
NO_MATCHING_ATTRIBUTE = "No matching attribute found."
MISSING_IN_OLDER = "Doesn't exist in older"
MISSING_IN_NEWER = "Doesn't exist in newer"


# =============================================================================
# Node references
# =============================================================================


@dataclass(frozen=True)
class Attribute:
    """An attribute of an element, addressable for reporting."""

    element: etree._Element
    name: str  # Qualified name, {namespace}local
    value: str

    @property
    def local_name(self) -> str:
        return etree.QName(self.name).localname

    def __str__(self) -> str:
        return f'{self.local_name}="{self.value}"'


@dataclass(frozen=True)
class Text:
    """A text segment directly inside ``element``."""

    element: etree._Element
    value: str

    def __str__(self) -> str:
        return self.value


Node = Union[etree._Element, Attribute, Text]


@dataclass(frozen=True)
class Divergence:
    """One difference between two trees.

    ``node`` lives in one of the compared trees; those trees must be kept
    alive for as long as the divergence is used.
    """

    node: Node
    message: str


# =============================================================================
# Parsing helpers
# =============================================================================


def xml_parser() -> etree.XMLParser:
    """Parser that keeps CDATA sections apart from plain text."""
    return etree.XMLParser(strip_cdata=False, remove_blank_text=True, resolve_entities=False)


def parse_xml(xml: str | bytes) -> etree._Element:
    """Parse a serialized document and return its root element."""
    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    try:
        return etree.fromstring(xml, xml_parser())
    except etree.XMLSyntaxError as e:
        raise ValueError("The string provided is not a valid XML Document.") from e


def compare_strings(xml_a: str | bytes, xml_b: str | bytes) -> Iterator[Divergence]:
    """Compare the roots of two serialized documents."""
    return compare(parse_xml(xml_a), parse_xml(xml_b))


# =============================================================================
# Comparison
# =============================================================================


def compare(a: etree._Element, b: etree._Element) -> Iterator[Divergence]:
    """Compare newer tree ``a`` against older tree ``b``.

    Returns a lazy, single-pass iterator. Iterating the result of a second
    ``compare()`` call recomputes everything; callers that need the records
    more than once should materialize them with ``list()``.
    """
    if a is None:
        raise ValueError("The input Xml cannot be None (a)")
    if b is None:
        raise ValueError("The input Xml cannot be None (b)")
    return _compare(a, b)


def are_equal(a: etree._Element, b: etree._Element) -> bool:
    """Check loose equality, stopping at the first divergence."""
    return next(compare(a, b), None) is None


def _compare(a: etree._Element, b: etree._Element) -> Iterator[Divergence]:
    if a.tag != b.tag:
        # Keep going so that the rest of the element is still diagnosed
        yield Divergence(a, ROOT_MISMATCH)
    yield from _compare_attributes(a, b)
    yield from _compare_text(a, b)
    yield from _compare_children(a, b)


def _compare_attributes(a: etree._Element, b: etree._Element) -> Iterator[Divergence]:
    # lxml keeps namespace declarations out of attrib, and keys are {ns}local
    attributes_a = dict(a.attrib)
    attributes_b = dict(b.attrib)

    if len(attributes_a) != len(attributes_b):
        yield Divergence(a, ATTRIBUTE_COUNT)

    for name, value_a in attributes_a.items():
        value_b = attributes_b.get(name)
        if value_b is None:
            yield Divergence(Attribute(a, name, value_a), NO_MATCHING_ATTRIBUTE)
        elif value_a != value_b:
            yield Divergence(
                Attribute(a, name, value_a),
                f"Value changed from '{value_b}' to '{value_a}'",
            )
        # Attributes only present on b are deliberately not reported


# Top-level content of a serialized element. lxml escapes "<" and ">" in text
# and attribute values, so markup boundaries are unambiguous.
_CONTENT_TOKEN = re.compile(
    r"<!\[CDATA\[(?P<cdata>.*?)\]\]>"
    r"|<!--.*?-->"
    r"|<\?.*?\?>"
    r"|(?P<close></[^>]*>)"
    r"|(?P<empty><[^>]*/>)"
    r"|(?P<open><[^>]*>)"
    r"|(?P<text>[^<]+)",
    re.DOTALL,
)


def text_segments(element: etree._Element) -> list[str]:
    """Direct text and CDATA nodes of an element, in document order.

    CDATA sections are kept verbatim. Plain text nodes are stripped and
    dropped when blank. Child elements and comments split text nodes, so
    ``a<!-- c -->b`` yields two segments.

    lxml merges adjacent text and CDATA into ``text``/``tail``, so the nodes
    are recovered from the element's own serialization. CDATA only survives
    when the tree was parsed with ``strip_cdata=False``.
    """
    markup = etree.tostring(element, encoding="unicode", with_tail=False)
    segments = []
    depth = 0
    for match in _CONTENT_TOKEN.finditer(markup):
        kind = match.lastgroup
        if kind == "open":
            depth += 1
        elif kind == "close":
            depth -= 1
        elif depth != 1:
            continue
        elif kind == "cdata":
            segments.append(match.group("cdata"))
        elif kind == "text":
            text = html.unescape(match.group("text")).strip()
            if text:
                segments.append(text)
    return segments


def element_value(element: etree._Element) -> str:
    """Merged text of an element, used for leaf comparison."""
    return "".join(text_segments(element))


def _compare_text(a: etree._Element, b: etree._Element) -> Iterator[Divergence]:
    value_a = element_value(a)
    value_b = element_value(b)
    if value_a == value_b:
        return
    segments = text_segments(a)
    node = Text(a, segments[0]) if segments else a
    yield Divergence(node, f"Text changed from '{value_b}' to '{value_a}'")


def child_elements(element: etree._Element) -> list[etree._Element]:
    """Element children, skipping comments and processing instructions."""
    return [child for child in element if isinstance(child.tag, str)]


def _message_length(divergences: list[Divergence]) -> int:
    return sum(len(d.message) for d in divergences)


def best_match(
    child: etree._Element, candidates: list[etree._Element]
) -> tuple[etree._Element, list[Divergence]]:
    """Pick the candidate that differs least from ``child``.

    Fewest divergences wins, then the shortest total message length, then
    the earliest candidate. This is a local choice; earlier picks are never
    revisited.
    """
    if not candidates:
        raise ValueError(f"No candidates to match {child.tag} against")
    best = candidates[0]
    best_divergences = list(compare(child, best))
    best_key = (len(best_divergences), _message_length(best_divergences))
    for candidate in candidates[1:]:
        if best_key == (0, 0):
            break
        divergences = list(compare(child, candidate))
        key = (len(divergences), _message_length(divergences))
        if key < best_key:
            best, best_divergences, best_key = candidate, divergences, key
    return best, best_divergences


def _compare_children(a: etree._Element, b: etree._Element) -> Iterator[Divergence]:
    pool = child_elements(b)
    for child in child_elements(a):
        candidates = [c for c in pool if c.tag == child.tag]
        if not candidates:
            yield Divergence(child, MISSING_IN_OLDER)
            continue
        match, divergences = best_match(child, candidates)
        pool.remove(match)
        yield from divergences

    for leftover in pool:
        yield Divergence(leftover, MISSING_IN_NEWER)
