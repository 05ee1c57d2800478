"""
CSV import for the portfolio grid.

The spreadsheet export has one header row and one project per line. Rows
that cannot be shown (no id, no image) are skipped with a warning rather
than failing the whole import.
"""

import csv
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from shared.logging import get_logger

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("id", "title", "type", "coverImage")
OPTIONAL_COLUMNS = ("sourceUrl", "date", "location", "gpsCoords", "feat", "description", "easterEgg")

PLACEHOLDER_COVER_IMAGE = "data:image/gif;base64,R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7"


class CSVFormatError(ValueError):
    """The CSV text cannot be turned into portfolio items at all."""


@dataclass
class PortfolioItemData:
    id: int
    title: str
    type: str
    coverImage: str
    sourceUrl: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    gpsCoords: Optional[str] = None
    feat: Optional[str] = None
    description: Optional[str] = None
    easterEgg: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.type,
            "coverImage": self.coverImage,
            "sourceUrl": self.sourceUrl,
            "date": self.date,
            "location": self.location,
            "gpsCoords": self.gpsCoords,
            "feat": self.feat,
            "description": self.description,
            "easterEgg": self.easterEgg,
        }

    @classmethod
    def placeholder(cls) -> "PortfolioItemData":
        """Blank leading tile so the grid keeps its layout offset."""
        return cls(id=0, title=" ", type="video", coverImage=PLACEHOLDER_COVER_IMAGE)


def _split_row(line: str) -> List[str]:
    return [value.strip() for value in next(csv.reader([line]), [])]


def _cell(values: List[str], index: int) -> Optional[str]:
    if index < 0 or index >= len(values):
        return None
    return values[index] or None


def _parse_id(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    digits = value.strip()
    sign = ""
    if digits and digits[0] in "+-":
        sign, digits = digits[0], digits[1:]
    # Leading-integer parse: "12abc" reads as 12.
    end = 0
    while end < len(digits) and digits[end] in "0123456789":
        end += 1
    if end == 0:
        return None
    return int(sign + digits[:end])


def parse_csv_to_portfolio_items(text: str, include_placeholder: bool = True) -> List[PortfolioItemData]:
    """
    Parse spreadsheet CSV text into portfolio items.

    Raises:
        CSVFormatError: empty text, a lone data-like line without a header,
            or a header missing one of id, title, type, coverImage.
    """
    if not text or not text.strip():
        raise CSVFormatError("CSV data is empty or malformed (no lines).")

    lines = re.split(r"\r\n|\n", text.strip())
    if len(lines) == 1:
        if "," in lines[0] and lines[0].strip():
            raise CSVFormatError("CSV data must contain a header row. Only a single data-like line was found.")
        logger.warning("CSV has a single non-data line, no items imported", line=lines[0])
        return []

    headers = [header.strip().strip('"') for header in lines[0].split(",")]
    index = {name: headers.index(name) if name in headers else -1 for name in REQUIRED_COLUMNS + OPTIONAL_COLUMNS}

    missing = [name for name in REQUIRED_COLUMNS if index[name] == -1]
    if missing:
        raise CSVFormatError(
            "CSV headers are missing one or more required columns: id, title, type, coverImage. "
            f"Found: {', '.join(headers)}"
        )

    items: List[PortfolioItemData] = [PortfolioItemData.placeholder()] if include_placeholder else []

    for row_number, raw_line in enumerate(lines[1:], start=2):
        line = raw_line.strip()
        if not line:
            continue

        values = _split_row(line)
        item_id = _parse_id(_cell(values, index["id"]))
        if item_id is None:
            logger.warning("Skipping CSV row with missing or non-numeric id", row=row_number)
            continue

        source_url = _cell(values, index["sourceUrl"])
        cover_image = _cell(values, index["coverImage"]) or source_url
        if not cover_image:
            logger.warning("Skipping CSV row without coverImage or sourceUrl", row=row_number, id=item_id)
            continue

        type_value = _cell(values, index["type"])
        items.append(PortfolioItemData(
            id=item_id,
            title=_cell(values, index["title"]) or "Untitled",
            type=type_value.lower() if type_value else "image",
            coverImage=cover_image,
            sourceUrl=source_url,
            date=_cell(values, index["date"]),
            location=_cell(values, index["location"]),
            gpsCoords=_cell(values, index["gpsCoords"]),
            feat=_cell(values, index["feat"]),
            description=_cell(values, index["description"]),
            easterEgg=_cell(values, index["easterEgg"]),
        ))

    logger.info("Parsed portfolio CSV", items=len(items), placeholder=include_placeholder)
    return items
