"""
Account page cards for saved tool items.

Each item kind has one render strategy; ``CARD_RENDERERS`` maps the kind
to it. Adding a tool means adding a renderer and a table entry.
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from shared.logging import get_logger

from .models import AccountCard, ItemKind

MAX_SWATCHES = 5

logger = get_logger("portfolio.account_cards")


@dataclass
class CardFace:
    title: str
    image_url: Optional[str] = None
    swatches: Tuple[str, ...] = ()


def format_card_date(value: Any) -> str:
    """``Jun 3, 2024`` style date; empty when unparseable."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return ""
    if not isinstance(value, datetime):
        return ""
    return f"{value:%b} {value.day}, {value.year}"


def _palette_swatches(palette_json: Optional[str]) -> Tuple[str, ...]:
    if not palette_json:
        return ()
    try:
        colors = json.loads(palette_json)
    except ValueError:
        logger.warning("Unreadable palette_json on saved palette")
        return ()
    if not isinstance(colors, list):
        return ()
    hexes = [c["hex"] for c in colors if isinstance(c, dict) and isinstance(c.get("hex"), str)]
    return tuple(hexes[:MAX_SWATCHES])


def render_palette(row: Mapping[str, Any]) -> CardFace:
    return CardFace(
        title=row.get("file_name") or "Color Palette",
        image_url=row.get("image_data_url"),
        swatches=_palette_swatches(row.get("palette_json")),
    )


def render_background_removal(row: Mapping[str, Any]) -> CardFace:
    return CardFace(
        title=row.get("file_name") or "Background Removal",
        image_url=row.get("result_image_data_url"),
    )


def render_nylon_fabric_design(row: Mapping[str, Any]) -> CardFace:
    return CardFace(title=row.get("project_name") or "Nylon Fabric Design")


CARD_RENDERERS: Dict[ItemKind, Callable[[Mapping[str, Any]], CardFace]] = {
    ItemKind.PALETTE: render_palette,
    ItemKind.BACKGROUND_REMOVAL: render_background_removal,
    ItemKind.NYLON_FABRIC_DESIGN: render_nylon_fabric_design,
}


def render_card(kind: ItemKind, row: Mapping[str, Any]) -> AccountCard:
    """Render one stored row of *kind* as an account card."""
    renderer = CARD_RENDERERS.get(kind)
    if renderer is None:
        raise ValueError(f"No card renderer for item kind {kind!r}")

    face = renderer(row)
    created_at = row.get("created_at")
    return AccountCard(
        id=f"{kind.value}-{row['id']}",
        item_id=row["id"],
        kind=kind,
        title=face.title,
        subtitle=format_card_date(created_at),
        image_url=face.image_url,
        swatches=list(face.swatches),
        created_at=created_at if isinstance(created_at, str) else None,
    )


def render_cards(items: Iterable[Tuple[ItemKind, Mapping[str, Any]]]) -> List[AccountCard]:
    """Render ``(kind, row)`` pairs, newest first across all kinds."""
    cards = [render_card(kind, row) for kind, row in items]
    cards.sort(key=lambda card: card.created_at or "", reverse=True)
    return cards
