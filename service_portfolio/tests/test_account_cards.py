"""
Unit tests for account page card rendering.
"""

import json

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_portfolio.app.account_cards import CARD_RENDERERS, format_card_date, render_card, render_cards
from service_portfolio.app.models import ItemKind


class TestAccountCards:
    """Test cases for the card render strategies."""

    @pytest.fixture
    def palette_row(self):
        colors = [{"hex": f"#00000{i}", "rgb": [0, 0, i]} for i in range(7)]
        return {
            "id": 3,
            "file_name": "dusk.png",
            "image_data_url": "data:image/png;base64,AA",
            "palette_json": json.dumps(colors),
            "created_at": "2024-06-03T10:15:00",
        }

    def test_every_kind_has_a_renderer(self):
        assert set(CARD_RENDERERS) == set(ItemKind)

    def test_palette_card(self, palette_row):
        """Test palette cards show at most five swatches."""
        card = render_card(ItemKind.PALETTE, palette_row)

        assert card.id == "palette-3"
        assert card.item_id == 3
        assert card.title == "dusk.png"
        assert card.subtitle == "Jun 3, 2024"
        assert card.swatches == ["#000000", "#000001", "#000002", "#000003", "#000004"]

    def test_palette_card_with_bad_json(self, palette_row):
        palette_row["palette_json"] = "{not json"

        assert render_card(ItemKind.PALETTE, palette_row).swatches == []

    def test_background_removal_card(self):
        row = {"id": 1, "file_name": None, "result_image_data_url": "data:out", "created_at": "2024-01-05T00:00:00"}

        card = render_card(ItemKind.BACKGROUND_REMOVAL, row)

        assert card.title == "Background Removal"
        assert card.image_url == "data:out"
        assert card.swatches == []

    def test_render_cards_newest_first(self, palette_row):
        rows = [
            (ItemKind.PALETTE, palette_row),
            (ItemKind.NYLON_FABRIC_DESIGN, {"id": 9, "project_name": "Kite", "created_at": "2025-02-01T00:00:00"}),
        ]

        cards = render_cards(rows)

        assert [card.kind for card in cards] == [ItemKind.NYLON_FABRIC_DESIGN, ItemKind.PALETTE]

    def test_format_card_date(self):
        assert format_card_date("2023-12-25T08:00:00+00:00") == "Dec 25, 2023"
        assert format_card_date("yesterday") == ""
        assert format_card_date(None) == ""
