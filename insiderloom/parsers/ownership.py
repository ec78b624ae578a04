"""
Field extraction for insider ownership filings (Forms 4 and 4/A).

The composite ``.txt`` submission embeds the ownership XML between literal
``<XML>`` and ``</XML>`` markers. Locating the payload by marker rather than
by attachment name covers both known variants (``form4.xml`` and
``primarydocument.xml``).

Extraction is all-or-nothing: every path in FIELD_PATHS must resolve, and
the first missing node skips the filing. Values are the node's text content,
untouched.
"""

from typing import Optional

from lxml import etree

from ..core.exceptions import MalformedDocumentError, MissingFieldError
from ..core.models import ExtractedFiling, FilingDescriptor
from ..ingestion.cache import ContentCache
from ..utils.logger import get_logger

logger = get_logger("insiderloom.parsers.ownership")

XML_OPEN = b"<XML>"
XML_CLOSE = b"</XML>"

ROOT = "/ownershipDocument"
ISSUER = f"{ROOT}/issuer"
OWNER = f"{ROOT}/reportingOwner"
RELATIONSHIP = f"{OWNER}/reportingOwnerRelationship"
DERIVATIVE = f"{ROOT}/derivativeTable/derivativeTransaction"

# (ExtractedFiling attribute, node path). accession_number comes from the index.
FIELD_PATHS: tuple[tuple[str, str], ...] = (
    ("issuer_cik", f"{ISSUER}/issuerCik"),
    ("reporter_cik", f"{OWNER}/reportingOwnerId/rptOwnerCik"),
    ("reporting_person_name", f"{OWNER}/reportingOwnerId/rptOwnerName"),
    ("acquired_disposed_code",
     f"{DERIVATIVE}/transactionAmounts/transactionAcquiredDisposedCode/value"),
    ("amount", f"{DERIVATIVE}/transactionAmounts/transactionShares/value"),
    ("price", f"{DERIVATIVE}/transactionAmounts/transactionPricePerShare/value"),
    ("transaction_date", f"{DERIVATIVE}/transactionDate/value"),
    ("security_title", f"{DERIVATIVE}/securityTitle/value"),
    ("issuer_name", f"{ISSUER}/issuerName"),
    ("issuer_ticker", f"{ISSUER}/issuerTradingSymbol"),
    ("is_director", f"{RELATIONSHIP}/isDirector"),
    ("is_officer", f"{RELATIONSHIP}/isOfficer"),
    ("is_ten_percent_owner", f"{RELATIONSHIP}/isTenPercentOwner"),
    ("is_other_relationship", f"{RELATIONSHIP}/isOther"),
    ("new_amount_owned",
     f"{DERIVATIVE}/postTransactionAmounts/sharesOwnedFollowingTransaction/value"),
    ("direct_or_indirect_ownership",
     f"{DERIVATIVE}/ownershipNature/directOrIndirectOwnership/value"),
)


def isolate_xml_payload(document: bytes) -> bytes:
    """
    Return the bytes between the single <XML>/</XML> marker pair.

    Raises:
        MalformedDocumentError: Zero or several markers of either kind.
    """
    parts = document.split(XML_OPEN)
    if len(parts) != 2:
        raise MalformedDocumentError(
            "Expected exactly one <XML> marker", {"markers": len(parts) - 1}
        )
    parts = parts[1].split(XML_CLOSE)
    if len(parts) != 2:
        raise MalformedDocumentError(
            "Expected exactly one </XML> marker", {"markers": len(parts) - 1}
        )
    # The XML declaration must be the first thing the parser sees
    return parts[0].strip()


def parse_ownership_xml(payload: bytes) -> etree._Element:
    """Parse the isolated payload into an element tree."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    try:
        root = etree.fromstring(payload, parser)
    except etree.XMLSyntaxError as e:
        raise MalformedDocumentError(f"Failed to parse ownership XML: {e}") from e
    if root is None:
        raise MalformedDocumentError("Ownership XML is empty")
    return root


def query_text(root: etree._Element, xpath: str) -> Optional[str]:
    """
    Text content of the first node matching xpath, or None.

    A query that fails to evaluate is reported as absent.
    """
    try:
        nodes = root.xpath(xpath)
    except etree.XPathError as e:
        logger.debug(f"XPath {xpath} failed: {e}")
        return None

    if not nodes:
        return None
    node = nodes[0]
    if isinstance(node, etree._Element):
        return str(node.xpath("string()"))
    return str(node)


def extract_fields(document: bytes, accession_number: str) -> ExtractedFiling:
    """
    Extract one output row from a composite filing document.

    Raises:
        MalformedDocumentError: No single well-formed XML payload.
        MissingFieldError: A required node is absent.
    """
    root = parse_ownership_xml(isolate_xml_payload(document))

    values: dict[str, str] = {"accession_number": accession_number}
    for field_name, xpath in FIELD_PATHS:
        value = query_text(root, xpath)
        if value is None:
            raise MissingFieldError(field_name, xpath)
        values[field_name] = value

    return ExtractedFiling(**values)


class OwnershipExtractor:
    """Downloads (through the document cache) and extracts one filing."""

    def __init__(self, document_cache: ContentCache, base_url: str):
        """
        Args:
            document_cache: Cache for composite filing documents.
            base_url: Archive root that index file names are relative to.
        """
        self.document_cache = document_cache
        self.base_url = base_url.rstrip("/") + "/"

    def document_url(self, filing: FilingDescriptor) -> str:
        return self.base_url + filing.file_name.lstrip("/")

    def extract(self, filing: FilingDescriptor) -> ExtractedFiling:
        """
        Extract the transaction row for a filing.

        Raises:
            FilingSkipped: Malformed document or missing field.
            FetchError: The document could not be downloaded.
            StorageError: The document could not be cached.
        """
        content = self.document_cache.get_or_fetch(
            self.document_url(filing), filing.document_key
        )
        try:
            return extract_fields(content, filing.accession_number)
        except (MalformedDocumentError, MissingFieldError) as e:
            e.context.setdefault("document", filing.document_key)
            raise
