"""
Seed the portfolio table from the spreadsheet CSV export.
"""

from typing import Optional

from portfolio_tools.projects import parse_csv_to_portfolio_items
from shared.logging import get_logger
from shared.metrics import MetricsCollector

from .database import Database
from .repositories import PortfolioRepository

logger = get_logger("portfolio.persistence.seed")


async def seed_portfolio(db: Database, csv_text: str, metrics: Optional[MetricsCollector] = None) -> int:
    """Replace every portfolio row with the items parsed from *csv_text*.

    Raises CSVFormatError when the text has no usable header; nothing is
    deleted in that case. Returns the number of rows inserted.
    """
    rows = {}
    for item in parse_csv_to_portfolio_items(csv_text, include_placeholder=False):
        if item.id in rows:
            logger.warning("Duplicate portfolio id in CSV, keeping the later row", id=item.id)
        rows[item.id] = item.to_dict()

    count = await PortfolioRepository(db, metrics).replace_all(rows.values())
    logger.info("Portfolio seeded", imported=count)
    return count
