"""
Unit tests for project dates, CSV import and search.
"""

from datetime import date

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from portfolio_tools.projects import (
    CSVFormatError,
    SearchOptions,
    compare_projects_by_date_desc,
    normalize,
    parse_csv_to_portfolio_items,
    parse_portfolio_date,
    parse_year_month,
    search_projects,
    sort_projects_by_date_desc,
)
from portfolio_tools.projects.csv_import import PLACEHOLDER_COVER_IMAGE

HEADER = "id,title,type,coverImage,sourceUrl,date,location,gpsCoords,feat,description,easterEgg"


class TestParseYearMonth:
    """Test cases for parse_year_month."""

    @pytest.mark.parametrize("value,expected", [
        ("07/2025", 202507),
        ("2024-11", 202411),
        ("2023", 202301),
        ("around 05/2024", 202405),
        ("202312", 202312),
        ("12-2020", 202012),
        ("Since 2019", 201901),
        ("2024//03", 202403),
    ])
    def test_accepted_forms(self, value, expected):
        """Test every accepted layout."""
        assert parse_year_month(value) == expected

    @pytest.mark.parametrize("value", ["banana", "", None, "13/2024", "2024-00", "1/2/3"])
    def test_rejected_forms(self, value):
        """Test unreadable values."""
        assert parse_year_month(value) is None


class TestProjectOrdering:
    """Test cases for date ordering."""

    def test_sort_newest_first_undated_last(self):
        """Test ordering of mixed dated and undated projects."""
        projects = [{"date": "01/2023"}, {"date": "07/2025"}, {"date": "2019"}, {"date": None}]

        ordered = sort_projects_by_date_desc(projects)

        assert [p["date"] for p in ordered] == ["07/2025", "01/2023", "2019", None]

    def test_undated_pair_is_equal(self):
        """Test two undated projects compare equal."""
        assert compare_projects_by_date_desc({"date": None}, {"date": "junk"}) == 0

    def test_objects_with_date_attribute(self):
        """Test the comparator on attribute-style projects."""
        class Project:
            def __init__(self, date):
                self.date = date

        assert compare_projects_by_date_desc(Project("2020"), Project("2021")) > 0

    def test_sort_is_stable(self):
        """Test equal dates keep their input order."""
        projects = [{"id": 1, "date": "2020"}, {"id": 2, "date": "01/2020"}]

        assert [p["id"] for p in sort_projects_by_date_desc(projects)] == [1, 2]


class TestParsePortfolioDate:
    """Test cases for parse_portfolio_date."""

    def test_month_year(self):
        assert parse_portfolio_date("07/2025") == date(2025, 7, 1)

    def test_iso_fallback(self):
        assert parse_portfolio_date("2024-03-15") == date(2024, 3, 15)

    def test_invalid(self):
        assert parse_portfolio_date("13/2025") is None
        assert parse_portfolio_date("someday") is None
        assert parse_portfolio_date(None) is None


class TestCsvImport:
    """Test cases for parse_csv_to_portfolio_items."""

    def test_rows_plus_placeholder(self):
        """Test N data rows yield N+1 items with the placeholder first."""
        text = "\n".join([
            HEADER,
            '1,Sunset,Video,cover1.jpg,https://vimeo.com/1,07/2025,Maui,,,"Golden hour, windy",',
            "2,Fog,image,cover2.jpg,,2019,San Francisco,,,,",
        ])

        items = parse_csv_to_portfolio_items(text)

        assert len(items) == 3
        assert items[0].id == 0
        assert items[0].title == " "
        assert items[0].type == "video"
        assert items[0].coverImage == PLACEHOLDER_COVER_IMAGE
        assert items[1].type == "video"
        assert items[1].description == "Golden hour, windy"
        assert items[1].sourceUrl == "https://vimeo.com/1"
        assert items[2].sourceUrl is None

    def test_without_placeholder(self):
        """Test import mode used by the database seed."""
        text = HEADER + "\n1,Sunset,video,cover.jpg,,,,,,,"

        items = parse_csv_to_portfolio_items(text, include_placeholder=False)

        assert [item.id for item in items] == [1]

    def test_missing_required_header(self):
        """Test a header without coverImage."""
        with pytest.raises(CSVFormatError):
            parse_csv_to_portfolio_items("id,title,type\n1,a,video")

    def test_empty_text(self):
        """Test empty input."""
        with pytest.raises(CSVFormatError):
            parse_csv_to_portfolio_items("   ")

    def test_single_data_line(self):
        """Test a lone data-looking line."""
        with pytest.raises(CSVFormatError):
            parse_csv_to_portfolio_items("1,Sunset,video,cover.jpg")

    def test_single_non_data_line(self):
        """Test a lone line without commas."""
        assert parse_csv_to_portfolio_items("nothing here") == []

    def test_row_rules(self):
        """Test id, title, type and cover image rules."""
        text = "\n".join([
            HEADER,
            ",No id,video,c.jpg,,,,,,,",
            "abc,Bad id,video,c.jpg,,,,,,,",
            "",
            "3,,,c3.jpg,,,,,,,",
            "4,Fallback,video,,https://example.com/4.jpg,,,,,,",
            "5,No image,video,,,,,,,,",
        ])

        items = parse_csv_to_portfolio_items(text, include_placeholder=False)

        assert [item.id for item in items] == [3, 4]
        assert items[0].title == "Untitled"
        assert items[0].type == "image"
        assert items[1].coverImage == "https://example.com/4.jpg"

    def test_doubled_quote_escape(self):
        """Test quoted fields with escaped quotes."""
        text = HEADER + '\n1,"The ""Big"" One",video,c.jpg,,,,,,,'

        items = parse_csv_to_portfolio_items(text, include_placeholder=False)

        assert items[0].title == 'The "Big" One'

    def test_only_newlines_split_rows(self):
        """Test unicode line separators stay inside a field."""
        text = HEADER + "\r\n1,A,video,c.jpg,,,,,,Left\u2028right\x0bend,\n2,B,video,c2.jpg,,,,,,,"

        items = parse_csv_to_portfolio_items(text, include_placeholder=False)

        assert [item.id for item in items] == [1, 2]
        assert items[0].description == "Left\u2028right\x0bend"

    def test_to_dict_uses_wire_keys(self):
        """Test camelCase serialization."""
        item = parse_csv_to_portfolio_items(HEADER + "\n1,A,video,c.jpg,,,,1.0;2.0,,,", include_placeholder=False)[0]

        data = item.to_dict()

        assert data["coverImage"] == "c.jpg"
        assert data["gpsCoords"] == "1.0;2.0"
        assert data["easterEgg"] is None


class TestSearchProjects:
    """Test cases for search_projects."""

    @pytest.fixture
    def projects(self):
        return [
            {"id": 1, "title": "Maui Sunrise", "type": "video", "date": "07/2023", "location": "Maui"},
            {"id": 2, "title": "Bernal Hill", "type": "cinemagraph", "date": "2024", "location": "San Francisco",
             "tags": ["Michael"]},
            {"id": 3, "title": "Denali Flight", "type": "video", "date": "06/2023", "location": "Alaska"},
            {"id": 4, "title": "Beach Day", "type": "image", "date": "01/2022", "tags": "Michael;Friends"},
        ]

    def test_normalize(self):
        assert normalize("  Café, Crème!  Brûlée ") == "cafe creme brulee"
        assert normalize("  Hawa\u00ed!!  ") == "hawai"
        assert normalize("S\u00c3\u00a3o   Paulo") == "sao paulo"

    def test_empty_query_without_filters(self, projects):
        assert search_projects(projects, "") == []

    def test_geo_synonyms(self, projects):
        """Test that hawaii finds Maui projects."""
        assert [p["id"] for p in search_projects(projects, "hawaii")] == [1]

    def test_type_filter(self, projects):
        """Test type filter with the assistant's capitalised names."""
        results = search_projects(projects, "", SearchOptions(type="Video"))

        assert [p["id"] for p in results] == [1, 3]

    def test_date_range(self, projects):
        """Test dateFrom/dateTo bounds from a raw mapping."""
        results = search_projects(projects, "", {"dateFrom": "06/2023", "dateTo": "2023"})

        assert [p["id"] for p in results] == [1, 3]

    def test_include_and_exclude_tags(self, projects):
        """Test tag filters."""
        included = search_projects(projects, "", SearchOptions(include_tags=["Michael"]))
        excluded = search_projects(projects, "beach", SearchOptions(exclude_tags=["Michael"]))

        assert [p["id"] for p in included] == [2, 4]
        assert excluded == []

    def test_multi_word_place(self, projects):
        """Test phrase synonyms such as san francisco."""
        assert [p["id"] for p in search_projects(projects, "San Francisco")] == [2]
