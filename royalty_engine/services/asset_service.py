"""Asset catalogue and platform deposit addresses.

Prices are set by an administrator from an external valuation; a new price
is copied onto every holding of the asset so portfolio values follow it.
"""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from royalty_engine.core.exceptions import ConflictError, NotFoundError, ValidationError
from royalty_engine.core.money import to_price
from royalty_engine.models.asset import Asset, AssetStatus, AssetType
from royalty_engine.models.network_wallet import NetworkWallet
from royalty_engine.stores.inventory import InventoryStore

logger = logging.getLogger(__name__)


class AssetService:
    """Administration of tradable assets and network wallets."""

    async def create_asset(
        self,
        session: AsyncSession,
        title: str,
        price: Decimal,
        total_shares: int,
        asset_type: AssetType | str = AssetType.SINGLE,
        available_shares: Optional[int] = None,
        artist: Optional[str] = None,
        status: AssetStatus | str = AssetStatus.ACTIVE,
    ) -> Asset:
        """Create an asset; ``available_shares`` defaults to the full supply.

        Raises:
            ValidationError: If price, share counts, type or status are invalid
        """
        if not title:
            raise ValidationError("Asset title must not be empty")
        price = to_price(price)
        if price <= Decimal("0"):
            raise ValidationError("Asset price must be greater than zero")
        if total_shares <= 0:
            raise ValidationError("Asset total_shares must be greater than zero")
        if available_shares is None:
            available_shares = total_shares
        if not 0 <= available_shares <= total_shares:
            raise ValidationError("Asset available_shares must be between 0 and total_shares")
        try:
            asset_type = AssetType(asset_type)
            status = AssetStatus(status)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        asset = Asset(
            title=title,
            asset_type=asset_type,
            artist=artist,
            price=price,
            total_shares=total_shares,
            available_shares=available_shares,
            status=status,
            version=1,
        )
        session.add(asset)
        await session.flush()

        logger.info(
            "Asset %s created: title=%r price=%s shares=%d/%d",
            asset.id, title, asset.price, available_shares, total_shares,
        )
        return asset

    async def update_price(
        self,
        session: AsyncSession,
        asset_id: uuid.UUID,
        price: Decimal,
    ) -> Asset:
        price = to_price(price)
        if price <= Decimal("0"):
            raise ValidationError("Asset price must be greater than zero")

        inventory = InventoryStore(session)
        asset = await inventory.get_asset(asset_id, lock=True)

        await session.execute(
            update(Asset)
            .where(Asset.id == asset.id)
            .values(price=price, version=Asset.version + 1)
            .execution_options(synchronize_session=False)
        )
        repriced = await inventory.reprice_holdings(asset.id, price)
        await session.refresh(asset)

        logger.info("Asset %s repriced to %s (%d holdings updated)", asset.id, price, repriced)
        return asset

    async def set_status(
        self,
        session: AsyncSession,
        asset_id: uuid.UUID,
        status: AssetStatus | str,
    ) -> Asset:
        try:
            status = AssetStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown asset status: {status}") from exc

        asset = await InventoryStore(session).get_asset(asset_id, lock=True)
        await session.execute(
            update(Asset)
            .where(Asset.id == asset.id)
            .values(status=status, version=Asset.version + 1)
            .execution_options(synchronize_session=False)
        )
        await session.refresh(asset)

        logger.info("Asset %s marked %s", asset.id, status.value)
        return asset

    async def get_asset(self, session: AsyncSession, asset_id: uuid.UUID) -> Asset:
        return await InventoryStore(session).get_asset(asset_id)

    async def list_assets(
        self,
        session: AsyncSession,
        status: Optional[AssetStatus] = None,
    ) -> list[Asset]:
        stmt = select(Asset).order_by(Asset.created_at, Asset.id)
        if status is not None:
            stmt = stmt.where(Asset.status == status)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Network wallets
    # ------------------------------------------------------------------

    async def list_network_wallets(
        self,
        session: AsyncSession,
        active_only: bool = False,
    ) -> list[NetworkWallet]:
        stmt = select(NetworkWallet).order_by(NetworkWallet.network)
        if active_only:
            stmt = stmt.where(NetworkWallet.is_active.is_(True))
        result = await session.execute(stmt)
        return list(result.scalars().all())

    async def get_network_wallet(
        self,
        session: AsyncSession,
        network_wallet_id: uuid.UUID,
    ) -> NetworkWallet:
        wallet = await session.get(NetworkWallet, network_wallet_id)
        if wallet is None:
            raise NotFoundError("NetworkWallet", str(network_wallet_id))
        return wallet

    async def create_network_wallet(
        self,
        session: AsyncSession,
        network: str,
        wallet_address: str,
        notes: Optional[str] = None,
        is_active: bool = True,
    ) -> NetworkWallet:
        """Register the deposit address for a network.

        Raises:
            ValidationError: If network or address is empty
            ConflictError: If the network already has an address
        """
        if not network or not wallet_address:
            raise ValidationError("Network and wallet address are required")

        wallet = NetworkWallet(
            network=network,
            wallet_address=wallet_address,
            notes=notes,
            is_active=is_active,
        )
        session.add(wallet)
        try:
            await session.flush()
        except IntegrityError as exc:
            raise ConflictError(f"Network {network} already has a wallet address") from exc

        logger.info("Network wallet created for %s", network)
        return wallet

    async def update_network_wallet(
        self,
        session: AsyncSession,
        network_wallet_id: uuid.UUID,
        wallet_address: Optional[str] = None,
        notes: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> NetworkWallet:
        wallet = await self.get_network_wallet(session, network_wallet_id)
        if wallet_address is not None:
            if not wallet_address:
                raise ValidationError("Wallet address must not be empty")
            wallet.wallet_address = wallet_address
        if notes is not None:
            wallet.notes = notes
        if is_active is not None:
            wallet.is_active = is_active
        await session.flush()

        logger.info("Network wallet %s updated (active=%s)", wallet.network, wallet.is_active)
        return wallet

    async def deactivate(self, session: AsyncSession, network_wallet_id: uuid.UUID) -> NetworkWallet:
        return await self.update_network_wallet(session, network_wallet_id, is_active=False)
