"""Namespace-aware access to a parsed catalogue document.

Catalogue files declare a default namespace. It is resolved once when the
document is loaded, so callers only ever ask for local names
(``doc.children(entry, "selectionEntry")``).
"""

from __future__ import annotations

import logging

from lxml import etree
from lxml.etree import XMLSyntaxError, _Element as Element

logger = logging.getLogger(__name__)


def node_text(element: Element | None) -> str:
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


class CatalogueDocument:
    def __init__(self, root: Element | None) -> None:
        self.root = root
        self.namespace = etree.QName(root).namespace if root is not None else None
        self._id_index: dict[str, Element] | None = None

    @classmethod
    def parse(cls, xml: str | bytes | None) -> "CatalogueDocument":
        if not xml:
            return cls(None)
        data = xml.encode("utf-8") if isinstance(xml, str) else xml
        parser = etree.XMLParser(
            recover=True, remove_comments=True, resolve_entities=False, huge_tree=True
        )
        try:
            root = etree.fromstring(data, parser)
        except XMLSyntaxError as exc:
            logger.warning("Catalogue XML could not be recovered: %s", exc)
            root = None
        return cls(root)

    @property
    def is_empty(self) -> bool:
        return self.root is None

    def tag(self, local_name: str) -> str:
        if self.namespace:
            return f"{{{self.namespace}}}{local_name}"
        return local_name

    def local_name(self, element: Element) -> str:
        return etree.QName(element).localname

    @property
    def catalogue(self) -> Element | None:
        if self.root is None:
            return None
        if self.local_name(self.root) == "catalogue":
            return self.root
        return self.first(self.root, "catalogue")

    def children(self, element: Element | None, local_name: str) -> list[Element]:
        if element is None:
            return []
        return list(element.iterchildren(self.tag(local_name)))

    def child(self, element: Element | None, local_name: str) -> Element | None:
        if element is None:
            return None
        return next(element.iterchildren(self.tag(local_name)), None)

    def grandchildren(
        self, element: Element | None, container: str, local_name: str
    ) -> list[Element]:
        """Children named ``local_name`` inside the direct ``container`` child."""
        return self.children(self.child(element, container), local_name)

    def descendants(self, element: Element | None, local_name: str) -> list[Element]:
        if element is None:
            return []
        return list(element.iterdescendants(self.tag(local_name)))

    def first(self, element: Element | None, local_name: str) -> Element | None:
        if element is None:
            return None
        return next(element.iterdescendants(self.tag(local_name)), None)

    def by_id(self, identifier: str | None) -> Element | None:
        if not identifier or self.root is None:
            return None
        if self._id_index is None:
            index: dict[str, Element] = {}
            for node in self.root.iter(etree.Element):
                node_id = node.get("id")
                if node_id:
                    index.setdefault(node_id, node)
            self._id_index = index
        return self._id_index.get(identifier)

    def characteristic(self, profile: Element, *names: str) -> str:
        """First non-empty characteristic among ``names``, tried in the given order."""
        nodes = self.descendants(profile, "characteristic")
        return self._first_named_text(nodes, names)

    def direct_characteristic(self, profile: Element, *names: str) -> str:
        """Like :meth:`characteristic` but limited to the profile's own container."""
        nodes = self.grandchildren(profile, "characteristics", "characteristic")
        return self._first_named_text(nodes, names)

    def attribute(self, profile: Element, *names: str) -> str:
        nodes = self.descendants(profile, "attribute")
        for name in names:
            for node in nodes:
                if node.get("name") != name:
                    continue
                value = (node.get("value") or "").strip() or node_text(node)
                if value:
                    return value
        return ""

    @staticmethod
    def _first_named_text(nodes: list[Element], names: tuple[str, ...]) -> str:
        for name in names:
            for node in nodes:
                if node.get("name") == name:
                    value = node_text(node)
                    if value:
                        return value
        return ""
