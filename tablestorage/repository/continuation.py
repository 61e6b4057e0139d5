"""
Continuation token codec.

A continuation token records where a scan stopped: the table it ran against
and the next (PartitionKey, RowKey) to read. It travels to callers as an
opaque string so it can be persisted or sent over the wire and handed back
later to resume the scan.

The string form is a small XML document:

    <ResultContinuation>
      <Table>customers</Table>
      <NextPartitionKey>PartitionKey1</NextPartitionKey>
      <NextRowKey>RowKey5</NextRowKey>
    </ResultContinuation>
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional

from tablestorage.exceptions import CorruptContinuationTokenError
from tablestorage.storage.query import StoreCursor

ROOT_ELEMENT = "ResultContinuation"
TABLE_ELEMENT = "Table"
PARTITION_KEY_ELEMENT = "NextPartitionKey"
ROW_KEY_ELEMENT = "NextRowKey"


@dataclass(frozen=True)
class ContinuationToken:
    """Resume position of a scan bound to one table."""

    table: str
    next_partition_key: Optional[str] = None
    next_row_key: Optional[str] = None

    @classmethod
    def from_cursor(cls, table: str, cursor: StoreCursor) -> "ContinuationToken":
        """Wrap a store cursor returned by a segment."""
        return cls(
            table=table,
            next_partition_key=cursor.next_partition_key,
            next_row_key=cursor.next_row_key,
        )

    def to_cursor(self) -> Optional[StoreCursor]:
        """Convert to a store cursor; None when the token points at the start."""
        if self.next_partition_key is None and self.next_row_key is None:
            return None
        return StoreCursor(self.next_partition_key, self.next_row_key)

    def encode(self) -> str:
        return encode_continuation_token(self)


def encode_continuation_token(token: ContinuationToken) -> str:
    """
    Serialize a continuation token to its opaque string form.

    Args:
        token: Token to serialize

    Returns:
        Token string
    """
    root = ET.Element(ROOT_ELEMENT)
    ET.SubElement(root, TABLE_ELEMENT).text = token.table
    ET.SubElement(root, PARTITION_KEY_ELEMENT).text = token.next_partition_key
    ET.SubElement(root, ROW_KEY_ELEMENT).text = token.next_row_key
    return ET.tostring(root, encoding="unicode")


def decode_continuation_token(token_string: Optional[str]) -> Optional[ContinuationToken]:
    """
    Parse a continuation token string.

    Args:
        token_string: Token string produced by encode_continuation_token

    Returns:
        ContinuationToken, or None for a missing or empty string

    Raises:
        CorruptContinuationTokenError: If the string is not a valid token
    """
    if token_string is None or not token_string.strip():
        return None

    try:
        root = ET.fromstring(token_string)
    except ET.ParseError as e:
        raise CorruptContinuationTokenError(f"not well-formed ({e})", token_string) from e

    if root.tag != ROOT_ELEMENT:
        raise CorruptContinuationTokenError(
            f"expected <{ROOT_ELEMENT}> root element, got <{root.tag}>", token_string
        )

    table = root.findtext(TABLE_ELEMENT)
    if not table:
        raise CorruptContinuationTokenError(f"missing <{TABLE_ELEMENT}> element", token_string)

    next_partition_key = root.findtext(PARTITION_KEY_ELEMENT) or None
    next_row_key = root.findtext(ROW_KEY_ELEMENT) or None
    if next_row_key is not None and next_partition_key is None:
        raise CorruptContinuationTokenError(
            f"<{ROW_KEY_ELEMENT}> given without <{PARTITION_KEY_ELEMENT}>", token_string
        )

    return ContinuationToken(
        table=table,
        next_partition_key=next_partition_key,
        next_row_key=next_row_key,
    )
