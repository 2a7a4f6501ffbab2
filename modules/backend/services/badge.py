"""
Badge Service.

Badges are earned one per completed mission and may be minted as
soulbound tokens to the user's wallet.
"""

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from modules.backend.core.config import get_app_config
from modules.backend.core.exceptions import (
    ConflictError,
    ExternalServiceError,
    ValidationError,
)
from modules.backend.events.publishers import MissionEventPublisher
from modules.backend.integrations.sbt import SbtClient, get_sbt_client, token_id_for
from modules.backend.models.badge import Badge
from modules.backend.models.mission import Mission
from modules.backend.models.user import User
from modules.backend.repositories.badge import BadgeRepository
from modules.backend.repositories.mission import MissionRepository
from modules.backend.services.base import BaseService


def badge_level(impact: int) -> str:
    """Frontend level: the highest tier whose min_impact the score reaches."""
    levels = sorted(get_app_config().missions.badge_levels, key=lambda lvl: lvl.min_impact)
    level = levels[0].level
    for tier in levels:
        if impact >= tier.min_impact:
            level = tier.level
    return level


def badge_rarity(impact: int) -> str:
    """On-chain rarity: the first tier whose threshold covers the score, else the top tier."""
    tiers = get_app_config().missions.rarity_levels
    for tier in tiers:
        if impact <= tier.threshold:
            return tier.level
    return tiers[-1].level


def generate_sbt_metadata(
    mission_type: str,
    impact: int,
    title: str,
    completed_at: datetime,
) -> dict[str, Any]:
    """ERC-721 metadata document for a mission badge."""
    missions = get_app_config().missions
    base_url = get_app_config().blockchain.sbt.metadata_base_url.rstrip("/")
    mission_name = missions.mission_names.get(mission_type, mission_type)
    rarity = badge_rarity(impact)

    return {
        "name": f"{mission_name} Badge - {rarity}",
        "description": (
            f"Completed the {title} mission and created {impact} points of impact."
        ),
        "image": f"{base_url}/{mission_type}_{rarity.lower()}.png",
        "attributes": [
            {"trait_type": "Mission Type", "value": mission_name},
            {"trait_type": "Impact Score", "value": impact, "display_type": "number"},
            {"trait_type": "Rarity", "value": rarity},
            {"trait_type": "Color", "value": missions.mission_colors.get(mission_type)},
            {"trait_type": "Completed At", "value": completed_at.isoformat()},
        ],
        "external_url": base_url,
    }


class BadgeService(BaseService):
    """Creates badge records and mints them on-chain."""

    def __init__(
        self,
        session: AsyncSession,
        sbt: SbtClient | None = None,
        publisher: MissionEventPublisher | None = None,
    ) -> None:
        super().__init__(session)
        self.repo = BadgeRepository(session)
        self.missions = MissionRepository(session)
        self._sbt = sbt
        self.publisher = publisher or MissionEventPublisher(source="badge-service")

    @property
    def sbt(self) -> SbtClient:
        if self._sbt is None:
            self._sbt = get_sbt_client()
        return self._sbt

    async def list_badges(self, user: User) -> list[Badge]:
        return await self.repo.list_for_user(user.id)

    async def create_badge_for_mission(self, mission: Mission, user: User) -> Badge:
        """
        Create the badge for a completed mission.

        Idempotent: a second call returns the existing badge.
        """
        existing = await self.repo.get_by_mission_id(mission.id)
        if existing is not None:
            return existing

        completed_at = mission.completed_at or mission.updated_at
        badge = await self._execute_db_operation(
            "create_badge",
            self.repo.create(
                user_id=user.id,
                mission_id=mission.id,
                mission_type=mission.type,
                level=badge_level(mission.impact),
                rarity=badge_rarity(mission.impact),
                impact=mission.impact,
                badge_metadata=generate_sbt_metadata(
                    mission.type, mission.impact, mission.title, completed_at,
                ),
            ),
        )
        user.record_badge()
        await self.session.flush()

        self._log_operation(
            "Badge earned",
            badge_id=badge.id,
            mission_id=mission.id,
            rarity=badge.rarity,
        )
        return badge

    async def mint_badge(
        self,
        user: User,
        mission_id: str | None = None,
        badge_id: str | None = None,
        correlation_id: str = "",
    ) -> Badge:
        """
        Mint the badge for one of the user's completed missions as an SBT.

        Raises:
            ValidationError: No wallet, no target, or the mission is not completed
            NotFoundError: Mission or badge not owned by the user
            ConflictError: Already minted
            ExternalServiceError: The mint transaction failed
        """
        if not user.has_wallet:
            raise ValidationError("Wallet address required")

        if badge_id is not None:
            badge = await self.repo.get_by_id(badge_id)
            mission = await self.missions.get_for_user(badge.mission_id, user.id)
        elif mission_id is not None:
            mission = await self.missions.get_for_user(mission_id, user.id)
            badge = None
        else:
            raise ValidationError("mission_id or badge_id is required")

        if not mission.is_completed:
            raise ValidationError("Mission must be completed before minting its badge")

        if badge is None:
            badge = await self.create_badge_for_mission(mission, user)
        if badge.minted:
            raise ConflictError("Badge already minted")

        token_id = token_id_for(mission.id)
        result = await self.sbt.mint(user.wallet_address, token_id, badge.badge_metadata)
        if not result["success"]:
            raise ExternalServiceError(
                result.get("error") or "SBT mint failed", service="blockchain",
            )

        badge.mark_minted(result["token_id"], result["transaction_hash"], result.get("token_uri"))
        mission.set_blockchain_data(result["transaction_hash"], result["token_id"])
        await self.session.flush()

        self._log_operation(
            "Badge minted",
            badge_id=badge.id,
            token_id=badge.token_id,
            tx_hash=badge.transaction_hash,
        )
        await self.publisher.badge_minted(badge, user, correlation_id=correlation_id)
        return badge
