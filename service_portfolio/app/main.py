"""
Portfolio service for laundromatzat.com.
"""

import json
from typing import Dict, Optional

from fastapi import Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from portfolio_tools.projects import CSVFormatError
from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import AuthenticationError, AuthorizationError, NotFoundError, ValidationError

from .account_cards import render_cards
from .auth import CurrentUser, PasswordHasher, TokenAuthority, build_auth_dependencies
from .models import (
    AccountItemsResponse,
    BackgroundRemovalJobCreateRequest,
    ColorPaletteCreateRequest,
    CredentialsRequest,
    ImportResponse,
    ItemKind,
    LinkRequest,
    NylonFabricDesignCreateRequest,
    ProfileUpdateRequest,
    VersionResponse,
)
from .persistence.database import Database
from .persistence.repositories import (
    LinkRepository,
    PortfolioRepository,
    UserRepository,
    background_removal_repository,
    nylon_fabric_repository,
    palette_repository,
)
from .persistence.seed import seed_portfolio


class PortfolioService(BaseService):
    """Portfolio service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None):
        super().__init__("portfolio", 4000, config)

        # Initialize components
        self.db = Database(self.config.resolved_database_url())
        self.auth = TokenAuthority(self.config.jwt_secret, self.config.jwt_algorithm)
        self.passwords = PasswordHasher(self.config.password_hash_rounds)
        self.users = UserRepository(self.db, self.metrics)
        self.portfolio = PortfolioRepository(self.db, self.metrics)
        self.links = LinkRepository(self.db, self.metrics)
        self.tool_items = {
            ItemKind.PALETTE: palette_repository(self.db, self.metrics),
            ItemKind.BACKGROUND_REMOVAL: background_removal_repository(self.db, self.metrics),
            ItemKind.NYLON_FABRIC_DESIGN: nylon_fabric_repository(self.db, self.metrics),
        }

        self._setup_portfolio_routes()

    def _setup_portfolio_routes(self):
        """Set up portfolio-specific routes."""
        require_auth, require_admin = build_auth_dependencies(self.auth)

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "portfolio",
                "status": "ok",
                "message": "laundromatzat.com - Portfolio Service",
                "version": "1.0.0",
            }

        @self.app.get("/healthz", response_class=PlainTextResponse)
        async def healthz():
            return "ok"

        @self.app.get("/healthz/db", response_class=PlainTextResponse)
        async def healthz_db():
            if await self.db.ping():
                return "ok"
            return PlainTextResponse("db error", status_code=500)

        @self.app.get("/version", response_model=VersionResponse)
        async def version():
            return VersionResponse(sha=self.config.git_sha)

        # Accounts

        @self.app.post("/api/auth/register", status_code=201)
        async def register(body: CredentialsRequest):
            """Create an unapproved account; no token until an admin approves it."""
            if not body.username or not body.password:
                raise ValidationError("Username and password required")

            password_hash = await run_in_threadpool(self.passwords.hash, body.password)
            user_id = await self.users.create(body.username, password_hash)
            self.logger.info("User registered", user_id=user_id, username=body.username)
            return {
                "message": "Registration successful. Please wait for admin approval.",
                "user": {"id": user_id, "username": body.username, "role": "user", "is_approved": False},
            }

        @self.app.post("/api/auth/login")
        async def login(body: CredentialsRequest):
            account = await self.users.get_credentials(body.username) if body.username else None
            if account is None or not await run_in_threadpool(
                self.passwords.verify, body.password or "", account["password_hash"]
            ):
                self.logger.info("Login rejected", username=body.username)
                raise AuthenticationError("Invalid credentials")

            if not account["is_approved"]:
                raise AuthorizationError("Account pending approval. Please contact an admin.")

            token = self.auth.issue_token(account["id"], account["username"], account["role"])
            return {
                "token": token,
                "user": {"id": account["id"], "username": account["username"], "role": account["role"]},
            }

        @self.app.get("/api/auth/me")
        async def get_me(user: CurrentUser = Depends(require_auth)):
            profile = await self.users.get_profile(user.id)
            if profile is None:
                raise NotFoundError("User not found")
            return {"user": profile}

        @self.app.put("/api/auth/me")
        async def update_me(body: ProfileUpdateRequest, user: CurrentUser = Depends(require_auth)):
            if not body.username:
                raise ValidationError("Username is required")

            password_hash = None
            if body.password:
                password_hash = await run_in_threadpool(self.passwords.hash, body.password)
            if not await self.users.update_profile(user.id, body.username, password_hash):
                raise NotFoundError("User not found")

            profile = await self.users.get_profile(user.id)
            return {
                "user": {key: profile[key] for key in ("id", "username", "profile_picture")},
                "message": "Profile updated successfully",
            }

        # Account administration

        @self.app.get("/api/admin/users")
        async def list_users(user: CurrentUser = Depends(require_admin)):
            return await self.users.list_all()

        @self.app.patch("/api/admin/users/{user_id}/approve")
        async def approve_user(user_id: int, user: CurrentUser = Depends(require_admin)):
            if not await self.users.approve(user_id):
                raise NotFoundError("User not found")
            self.logger.info("User approved", user_id=user_id, approved_by=user.id)
            return {"message": "User approved"}

        @self.app.delete("/api/admin/users/{user_id}")
        async def delete_user(user_id: int, user: CurrentUser = Depends(require_admin)):
            if user_id == user.id:
                raise ValidationError("Cannot delete yourself")
            if not await self.users.delete(user_id):
                raise NotFoundError("User not found")
            self.logger.info("User deleted", user_id=user_id, deleted_by=user.id)
            return {"message": "User deleted"}

        # Portfolio grid

        @self.app.get("/api/portfolio")
        async def list_portfolio():
            """All portfolio items ordered by id."""
            return await self.portfolio.list_items()

        @self.app.post("/api/portfolio/import", response_model=ImportResponse)
        async def import_portfolio(request: Request, user: CurrentUser = Depends(require_admin)):
            """Replace the portfolio with the CSV request body."""
            raw = await request.body()
            try:
                csv_text = raw.decode("utf-8-sig")
                imported = await seed_portfolio(self.db, csv_text, self.metrics)
            except UnicodeDecodeError as e:
                raise ValidationError("CSV body must be UTF-8 text") from e
            except CSVFormatError as e:
                raise ValidationError(str(e)) from e

            self.logger.info("Portfolio imported", imported=imported, user_id=user.id)
            return ImportResponse(imported=imported)

        # Links

        @self.app.get("/api/links")
        async def list_links(user: CurrentUser = Depends(require_auth)):
            return await self.links.list_for_user(user.id)

        @self.app.post("/api/links", status_code=201)
        async def create_link(body: LinkRequest, user: CurrentUser = Depends(require_auth)):
            if not body.title or not body.url:
                raise ValidationError("Title and URL are required")

            link_id = await self.links.create(
                user.id, body.title, body.url, body.description, body.tags, body.image_url
            )
            return {
                "id": link_id,
                "user_id": user.id,
                "title": body.title,
                "url": body.url,
                "description": body.description,
                "tags": body.tags or [],
                "image_url": body.image_url,
            }

        @self.app.put("/api/links/{link_id}")
        async def update_link(link_id: int, body: LinkRequest, user: CurrentUser = Depends(require_auth)):
            if not body.title or not body.url:
                raise ValidationError("Title and URL are required")

            updated = await self.links.update(
                link_id, user.id, body.title, body.url, body.description, body.tags, body.image_url
            )
            if not updated:
                raise NotFoundError("Link not found or unauthorized")
            return {"message": "Link updated successfully"}

        @self.app.delete("/api/links/{link_id}")
        async def delete_link(link_id: int, user: CurrentUser = Depends(require_auth)):
            if not await self.links.delete(link_id, user.id):
                raise NotFoundError("Link not found or unauthorized")
            return {"message": "Link deleted successfully"}

        # Color palettes

        palettes = self.tool_items[ItemKind.PALETTE]

        @self.app.get("/api/color-palettes")
        async def list_color_palettes(user: CurrentUser = Depends(require_auth)):
            return {"palettes": await palettes.list_for_user(user.id)}

        @self.app.post("/api/color-palettes")
        async def create_color_palette(body: ColorPaletteCreateRequest, user: CurrentUser = Depends(require_auth)):
            return await palettes.create(user.id, {
                "file_name": body.fileName,
                "image_data_url": body.imageDataUrl,
                "palette_json": json.dumps(body.palette),
            })

        @self.app.delete("/api/color-palettes/{item_id}")
        async def delete_color_palette(item_id: int, user: CurrentUser = Depends(require_auth)):
            if not await palettes.delete(item_id, user.id):
                raise NotFoundError("Palette not found")
            return {"success": True}

        # Background removal

        jobs = self.tool_items[ItemKind.BACKGROUND_REMOVAL]

        @self.app.get("/api/background-removal/jobs")
        async def list_background_removal_jobs(user: CurrentUser = Depends(require_auth)):
            return {"jobs": await jobs.list_for_user(user.id)}

        @self.app.post("/api/background-removal/jobs")
        async def create_background_removal_job(
            body: BackgroundRemovalJobCreateRequest, user: CurrentUser = Depends(require_auth)
        ):
            return await jobs.create(user.id, {
                "file_name": body.fileName,
                "source_image_data_url": body.sourceImageDataUrl,
                "result_image_data_url": body.resultImageDataUrl,
            })

        @self.app.delete("/api/background-removal/jobs/{item_id}")
        async def delete_background_removal_job(item_id: int, user: CurrentUser = Depends(require_auth)):
            if not await jobs.delete(item_id, user.id):
                raise NotFoundError("Job not found")
            return {"success": True}

        # Nylon fabric designs

        designs = self.tool_items[ItemKind.NYLON_FABRIC_DESIGN]

        @self.app.get("/api/nylon-fabric-designs")
        async def list_nylon_fabric_designs(user: CurrentUser = Depends(require_auth)):
            return {"designs": await designs.list_for_user(user.id)}

        @self.app.post("/api/nylon-fabric-designs")
        async def create_nylon_fabric_design(
            body: NylonFabricDesignCreateRequest, user: CurrentUser = Depends(require_auth)
        ):
            return await designs.create(user.id, {
                "project_name": body.projectName,
                "description": body.description,
                "guide_text": body.guideText,
                "visuals_json": json.dumps(body.visuals),
            })

        @self.app.delete("/api/nylon-fabric-designs/{item_id}")
        async def delete_nylon_fabric_design(item_id: int, user: CurrentUser = Depends(require_auth)):
            if not await designs.delete(item_id, user.id):
                raise NotFoundError("Design not found")
            return {"success": True}

        # Account page

        @self.app.get("/api/account/items", response_model=AccountItemsResponse)
        async def list_account_items(user: CurrentUser = Depends(require_auth)):
            """Every saved tool item of the caller, rendered as cards."""
            rows = []
            for kind, repository in self.tool_items.items():
                rows.extend((kind, row) for row in await repository.list_for_user(user.id))
            return AccountItemsResponse(items=render_cards(rows))

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check service dependencies."""
        return {"database": "ok" if await self.db.ping() else "error"}

    async def start(self):
        """Start the service."""
        await self.db.start()
        self.logger.info("Portfolio service started")

    async def stop(self):
        """Stop the service."""
        await self.db.stop()
        self.logger.info("Portfolio service stopped")


def create_app():
    """Create FastAPI application."""
    service = PortfolioService()
    return service.app


if __name__ == "__main__":
    service = PortfolioService()
    service.run()
