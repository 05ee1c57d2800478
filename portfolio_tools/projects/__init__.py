"""
Project data utilities: date parsing and ordering, CSV import, local search.
"""

from .csv_import import CSVFormatError, PortfolioItemData, parse_csv_to_portfolio_items
from .dates import compare_projects_by_date_desc, parse_portfolio_date, parse_year_month, sort_projects_by_date_desc
from .search import SearchOptions, normalize, search_projects

__all__ = [
    "CSVFormatError",
    "PortfolioItemData",
    "SearchOptions",
    "compare_projects_by_date_desc",
    "normalize",
    "parse_csv_to_portfolio_items",
    "parse_portfolio_date",
    "parse_year_month",
    "search_projects",
    "sort_projects_by_date_desc",
]
