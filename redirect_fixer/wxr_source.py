import logging
import os
from typing import Dict, List, Optional

from lxml import etree  # Using lxml for robust parsing and namespace handling

from redirect_fixer.content_lookup import DocumentCollection
from redirect_fixer.errors import InputFileNotFoundError
from redirect_fixer.models import Document

logger = logging.getLogger(__name__)

# Namespaces of a WordPress eXtended RSS export. The wp namespace carries the
# export version (1.0, 1.1, 1.2) and is detected per document.
WXR_NS = {
    'content': 'http://purl.org/rss/1.0/modules/content/',
    'wp': 'http://wordpress.org/export/1.2/',
}
WP_NS_PREFIX = 'http://wordpress.org/export/'


class WxrParser:
    """Parses a WXR export into Documents."""

    def parse(self, xml_content: bytes, source: str = "") -> List[Document]:
        """
        Parses the given WXR XML content.

        Args:
            xml_content: The export as bytes (lxml wants bytes for encoding detection).
            source: Where the export came from (for logging/context).

        Returns:
            One Document per <item>, in export order. Items without a post id are skipped.
        """
        if not xml_content:
            logger.error(f"Cannot parse empty WXR content (from {source}).")
            return []

        # recover mode attempts to parse even mildly malformed XML (exports often are)
        parser = etree.XMLParser(recover=True, remove_blank_text=True, huge_tree=True)
        try:
            root = etree.fromstring(xml_content, parser=parser)
        except etree.XMLSyntaxError as e:
            logger.error(f"XML syntax error while parsing WXR export from {source}: {e}")
            return []
        if root is None:
            logger.error(f"No XML document could be recovered from {source}.")
            return []

        namespaces = self._namespaces(root)
        documents = []
        for item in root.iterfind('.//item'):
            document = self._document_from_item(item, namespaces)
            if document is not None:
                documents.append(document)

        logger.info(f"Parsed {len(documents)} documents from {source or 'WXR content'}")
        return documents

    def _namespaces(self, root: etree._Element) -> Dict[str, str]:
        namespaces = dict(WXR_NS)
        for uri in root.nsmap.values():
            if uri and uri.startswith(WP_NS_PREFIX):
                namespaces['wp'] = uri
        return namespaces

    def _document_from_item(self, item: etree._Element, ns: Dict[str, str]) -> Optional[Document]:
        post_id = self._text(item, 'wp:post_id', ns)
        try:
            doc_id = int(post_id)
        except (TypeError, ValueError):
            logger.warning(f"Skipping item without a numeric wp:post_id (title: {self._text(item, 'title', ns)!r})")
            return None

        return Document(
            id=doc_id,
            title=self._text(item, 'title', ns) or '',
            permalink=self._text(item, 'link', ns) or '',
            body=self._text(item, 'content:encoded', ns) or '',
            slug=self._text(item, 'wp:post_name', ns) or '',
            kind=self._text(item, 'wp:post_type', ns) or 'post',
            status=self._text(item, 'wp:status', ns) or '',
        )

    @staticmethod
    def _text(item: etree._Element, path: str, ns: Dict[str, str]) -> Optional[str]:
        el = item.find(path, ns)
        if el is None or el.text is None:
            return None
        return el.text.strip()


def load_wxr(path: str) -> DocumentCollection:
    """Read a WXR export file into a DocumentCollection."""
    if not os.path.exists(path):
        raise InputFileNotFoundError(f"File {path} does not exist. Please check the path and try again.")

    with open(path, 'rb') as f:
        content = f.read()

    return DocumentCollection(WxrParser().parse(content, source=path))
