"""
Local project search used by the chat assistant.

The assistant only emits a query plus filters; expansion of place names and
matching against the project list happen here.
"""

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .dates import normalize_date_input, parse_year_month, sort_projects_by_date_desc

GEO_SYNONYMS: Dict[str, List[str]] = {
    "hawaii": ["maui", "oahu", "kauai", "honolulu", "big island", "kona", "hilo"],
    "maui": ["hawaii"],
    "sf": ["san francisco", "bernal", "mission", "presidio"],
    "san francisco": ["sf", "bernal", "mission", "presidio"],
    "bay area": ["san francisco", "oakland", "berkeley", "marin"],
    "alaska": ["anchorage", "juneau", "denali", "kenai", "seward"],
    "california": ["san francisco", "los angeles", "big sur", "yosemite", "tahoe"],
    "nyc": ["new york", "brooklyn", "manhattan"],
    "new york": ["nyc", "brooklyn", "manhattan"],
    "mexico": ["cdmx", "oaxaca", "tulum", "cancun"],
}

TYPE_ALIASES: Dict[str, str] = {
    "video": "video",
    "videos": "video",
    "photo": "photo",
    "photos": "photo",
    "image": "photo",
    "images": "photo",
    "cinemagraph": "cinemagraph",
    "cinemagraphs": "cinemagraph",
    "tool": "tool",
    "tools": "tool",
}

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    """Accent-free, lower-case, punctuation-free, single-spaced."""
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    cleaned = _PUNCTUATION.sub("", stripped.lower())
    return _WHITESPACE.sub(" ", cleaned).strip()


def _canonical_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    key = normalize(value)
    return TYPE_ALIASES.get(key, key)


@dataclass
class SearchOptions:
    type: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    include_tags: List[str] = field(default_factory=list)
    exclude_tags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "SearchOptions":
        """Accepts both the assistant's camelCase keys and snake_case."""
        data = data or {}
        return cls(
            type=data.get("type"),
            date_from=data.get("dateFrom", data.get("date_from")),
            date_to=data.get("dateTo", data.get("date_to")),
            include_tags=list(data.get("includeTags", data.get("include_tags")) or []),
            exclude_tags=list(data.get("excludeTags", data.get("exclude_tags")) or []),
        )

    def is_empty(self) -> bool:
        return not (self.type or self.date_from or self.date_to or self.include_tags or self.exclude_tags)


def _field(project: Any, name: str) -> Any:
    if isinstance(project, Mapping):
        return project.get(name)
    return getattr(project, name, None)


def _tags(project: Any) -> List[str]:
    raw = _field(project, "tags")
    if not raw:
        return []
    if isinstance(raw, str):
        raw = re.split(r"[;|,]", raw)
    return [normalize(tag) for tag in raw if normalize(tag)]


def _haystack(project: Any) -> str:
    parts = [_field(project, name) for name in ("title", "description", "location", "feat")]
    parts.extend(_tags(project))
    return " ".join(normalize(part) for part in parts if part)


def _query_groups(query: str) -> List[List[str]]:
    """Split a query into term groups; a project must match one term of every group."""
    text = normalize(query)
    groups: List[List[str]] = []
    # Multi-word place names first so "san francisco" is one group.
    for phrase in sorted((k for k in GEO_SYNONYMS if " " in k), key=len, reverse=True):
        if re.search(rf"\b{re.escape(phrase)}\b", text):
            groups.append([phrase] + GEO_SYNONYMS[phrase])
            text = re.sub(rf"\b{re.escape(phrase)}\b", " ", text)
    for token in text.split():
        groups.append([token] + GEO_SYNONYMS.get(token, []))
    return groups


def _upper_bound(value: str) -> Optional[int]:
    parsed = parse_year_month(value)
    if parsed is None:
        return None
    # A bare year as the upper bound covers the whole year.
    if re.fullmatch(r"\d{4}", normalize_date_input(value)):
        return parsed - 1 + 12
    return parsed


def _matches_filters(project: Any, opts: SearchOptions) -> bool:
    wanted_type = _canonical_type(opts.type)
    if wanted_type and _canonical_type(_field(project, "type")) != wanted_type:
        return False

    if opts.date_from or opts.date_to:
        value = parse_year_month(_field(project, "date"))
        if value is None:
            return False
        lower = parse_year_month(opts.date_from) if opts.date_from else None
        upper = _upper_bound(opts.date_to) if opts.date_to else None
        if lower is not None and value < lower:
            return False
        if upper is not None and value > upper:
            return False

    if opts.include_tags or opts.exclude_tags:
        haystack = _haystack(project)
        tags = _tags(project)
        for tag in opts.include_tags:
            needle = normalize(tag)
            if needle not in tags and needle not in haystack:
                return False
        for tag in opts.exclude_tags:
            needle = normalize(tag)
            if needle in tags or (needle and needle in haystack):
                return False

    return True


def search_projects(projects: Iterable[Any], query: str, opts: Optional[SearchOptions] = None) -> List[Any]:
    """
    Filter *projects* by free-text *query* and *opts*, newest first.

    An empty query with no filters returns an empty list.
    """
    if isinstance(opts, Mapping):
        opts = SearchOptions.from_dict(opts)
    opts = opts or SearchOptions()

    groups = _query_groups(query or "")
    if not groups and opts.is_empty():
        return []

    results = []
    for project in projects:
        if not _matches_filters(project, opts):
            continue
        if groups:
            haystack = _haystack(project)
            if not all(any(term in haystack for term in group) for group in groups):
                continue
        results.append(project)

    return sort_projects_by_date_desc(results)
