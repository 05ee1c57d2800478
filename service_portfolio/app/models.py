"""
Request and response models for the portfolio service.
"""

from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field


class ItemKind(str, Enum):
    """Saved tool item kinds shown on the account page."""
    PALETTE = "palette"
    BACKGROUND_REMOVAL = "background_removal"
    NYLON_FABRIC_DESIGN = "nylon_fabric_design"


class CredentialsRequest(BaseModel):
    """Register/login body."""
    username: Optional[str] = None
    password: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    """New username, plus a new password when one is given."""
    username: Optional[str] = None
    password: Optional[str] = None


class LinkRequest(BaseModel):
    """Create/update body for a saved link."""
    title: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    image_url: Optional[str] = None


class ColorPaletteCreateRequest(BaseModel):
    fileName: Optional[str] = None
    imageDataUrl: Optional[str] = None
    palette: Any = None


class BackgroundRemovalJobCreateRequest(BaseModel):
    fileName: Optional[str] = None
    sourceImageDataUrl: Optional[str] = None
    resultImageDataUrl: Optional[str] = None


class NylonFabricDesignCreateRequest(BaseModel):
    projectName: Optional[str] = None
    description: Optional[str] = None
    guideText: Optional[str] = None
    visuals: Any = None


class AccountCard(BaseModel):
    """One saved item rendered for the account page."""
    id: str
    item_id: int
    kind: ItemKind
    title: str
    subtitle: str
    image_url: Optional[str] = None
    swatches: List[str] = Field(default_factory=list)
    created_at: Optional[str] = None


class AccountItemsResponse(BaseModel):
    items: List[AccountCard]


class ImportResponse(BaseModel):
    imported: int


class VersionResponse(BaseModel):
    sha: str
