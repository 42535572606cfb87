"""
Wizard Storage Layer
Persists wizard sessions and records submitted bundles.
"""
from sqlalchemy import select, delete, desc
from sqlalchemy.ext.asyncio import async_sessionmaker
from typing import List, Optional, Tuple
import logging
import uuid

from database import AsyncSessionLocal, WizardSession, ProductBundle
from schemas.bundle_schemas import BundleDefinition, BundleDraft, BundleOperation
from services.bundle_wizard import WizardState
from settings import resolve_shop_id

logger = logging.getLogger(__name__)


class WizardStore:
    """Storage service for wizard sessions and created bundles"""

    def __init__(self, session_factory: async_sessionmaker = AsyncSessionLocal):
        self._session_factory = session_factory

    def get_session(self):
        """Get database session context manager"""
        return self._session_factory()

    # ---------- wizard sessions ----------

    async def create_session(self, shop_id: Optional[str], state: Optional[WizardState] = None) -> Tuple[str, WizardState]:
        """Start a new wizard session with a fresh draft."""
        state = state or WizardState()
        session_id = str(uuid.uuid4())
        async with self.get_session() as session:
            session.add(WizardSession(
                id=session_id,
                shop_id=resolve_shop_id(shop_id),
                state=state.to_dict(),
            ))
            await session.commit()
        logger.info(f"Started wizard session {session_id} for shop {resolve_shop_id(shop_id)}")
        return session_id, state

    async def load_session(self, session_id: str) -> Optional[Tuple[str, WizardState]]:
        """Return (shop_id, state) for a session, or None if it does not exist."""
        async with self.get_session() as session:
            record = await session.get(WizardSession, session_id)
            if record is None:
                return None
            return record.shop_id, WizardState.from_dict(record.state)

    async def save_session(self, session_id: str, state: WizardState) -> bool:
        async with self.get_session() as session:
            record = await session.get(WizardSession, session_id)
            if record is None:
                return False
            record.state = state.to_dict()
            await session.commit()
            return True

    async def delete_session(self, session_id: str) -> bool:
        async with self.get_session() as session:
            result = await session.execute(delete(WizardSession).where(WizardSession.id == session_id))
            await session.commit()
            return (result.rowcount or 0) > 0

    # ---------- created bundles ----------

    async def record_bundle(
        self,
        shop_id: Optional[str],
        definition: BundleDefinition,
        draft: BundleDraft,
        operation: Optional[BundleOperation] = None,
    ) -> ProductBundle:
        """Persist a submitted bundle together with its discount terms."""
        operation = operation or BundleOperation()
        async with self.get_session() as session:
            bundle = ProductBundle(
                id=str(uuid.uuid4()),
                shop_id=resolve_shop_id(shop_id),
                title=definition.title,
                definition=definition.to_dict(),
                create_section_block=draft.create_section_block,
                discount_type=draft.discount_type.value,
                discount_value=draft.discount_value.strip(),
                start_date=draft.start_date,
                end_date=draft.end_date,
                description=draft.description,
                operation_id=operation.id,
                operation_status=operation.status,
            )
            session.add(bundle)
            await session.commit()
            await session.refresh(bundle)
            return bundle

    async def list_bundles(self, shop_id: Optional[str], limit: int = 50) -> List[ProductBundle]:
        async with self.get_session() as session:
            query = (
                select(ProductBundle)
                .where(ProductBundle.shop_id == resolve_shop_id(shop_id))
                .order_by(desc(ProductBundle.created_at))
                .limit(limit)
            )
            result = await session.execute(query)
            return list(result.scalars().all())


wizard_store = WizardStore()
