"""Human-readable locations for divergence nodes."""

from lxml import etree

from .equality import Attribute, Node, Text


def _segment(node: Node) -> str:
    """Path segment for a single node."""
    if isinstance(node, Attribute):
        return "@" + node.local_name
    if isinstance(node, Text):
        return "/text()"
    return "/" + etree.QName(node).localname


def _container(node: Node) -> etree._Element | None:
    """The element a node hangs off (parent for elements, owner otherwise)."""
    if isinstance(node, (Attribute, Text)):
        return node.element
    return node.getparent()


def default_form(node: Node) -> str:
    """Fallback textual form of a node."""
    if isinstance(node, (Attribute, Text)):
        return str(node)
    return etree.tostring(node, encoding="unicode", with_tail=False)


def relative_path(node: Node, root: etree._Element) -> str | None:
    """Path of ``node`` below ``root``, or None if ``root`` is not an ancestor.

    The root itself maps to the empty string.
    """
    segments: list[str] = []
    current = node
    while current is not root:
        segments.append(_segment(current))
        current = _container(current)
        if current is None:
            return None
    return "".join(reversed(segments))


def render_path(node: Node, primary_root: etree._Element, fallback_root: etree._Element) -> str:
    """Locate ``node`` relative to whichever compared root contains it."""
    path = relative_path(node, primary_root)
    if path is None:
        path = relative_path(node, fallback_root)
    if path is None:
        path = default_form(node)
    return path
