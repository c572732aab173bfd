"""
Per (tenant, session) conversation state.

Holds the last products shown to a session and its learned preference
profile. Storage goes through the KeyValueStore interface so the in-memory
backend can be swapped for an external cache.
"""

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from saai.models.context import SessionContext, UserProfile, utc_now_iso
from saai.services.profile_updater import update_profile_from_products

logger = logging.getLogger(__name__)

Key = Tuple[str, str]


def make_key(tenant_id: Optional[str], session_id: Optional[str]) -> Key:
    return tenant_id or "default", session_id or "anon"


class KeyValueStore(ABC):
    """Values keyed by (tenant_id, session_id)."""

    @abstractmethod
    def get(self, tenant_id: Optional[str], session_id: Optional[str]) -> Optional[Any]:
        pass

    @abstractmethod
    def put(self, tenant_id: Optional[str], session_id: Optional[str], value: Any) -> None:
        pass

    @abstractmethod
    def delete(self, tenant_id: Optional[str], session_id: Optional[str]) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def keys(self) -> List[Key]:
        pass


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[Key, Any] = {}

    def get(self, tenant_id, session_id):
        return self._data.get(make_key(tenant_id, session_id))

    def put(self, tenant_id, session_id, value):
        self._data[make_key(tenant_id, session_id)] = value

    def delete(self, tenant_id, session_id):
        self._data.pop(make_key(tenant_id, session_id), None)

    def clear(self):
        self._data.clear()

    def keys(self):
        return list(self._data.keys())


class ConversationContextStore:
    """Session product context plus preference profiles, with per-session locks."""

    def __init__(
        self,
        session_store: Optional[KeyValueStore] = None,
        profile_store: Optional[KeyValueStore] = None,
    ):
        self.session_store = session_store or InMemoryKeyValueStore()
        self.profile_store = profile_store or InMemoryKeyValueStore()
        self._locks: Dict[Key, asyncio.Lock] = {}

    def session_lock(self, tenant_id: Optional[str], session_id: Optional[str]) -> asyncio.Lock:
        """Lock serializing turns of one session. Other sessions are not blocked."""
        key = make_key(tenant_id, session_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # Session context

    def get_session_context(self, tenant_id, session_id) -> Optional[SessionContext]:
        return self.session_store.get(tenant_id, session_id)

    def save_session_context(
        self,
        tenant_id,
        session_id,
        last_products: List[Dict[str, Any]],
        last_matched_product_ids: List[str],
        last_user_message: str,
    ) -> SessionContext:
        context = SessionContext(
            last_products=copy.deepcopy(list(last_products)),
            last_matched_product_ids=list(last_matched_product_ids),
            last_user_message=last_user_message or "",
            updated_at=utc_now_iso(),
        )
        self.session_store.put(tenant_id, session_id, context)
        logger.debug(
            f"Saved context: {len(context.last_matched_product_ids)} products",
            extra={"tenant_id": tenant_id, "session_id": session_id},
        )
        return context

    def clear_session_context(self, tenant_id, session_id) -> None:
        self.session_store.delete(tenant_id, session_id)

    def clear_all_session_contexts(self) -> None:
        self.session_store.clear()

    def get_session_stats(self) -> Dict[str, Any]:
        by_tenant: Dict[str, int] = defaultdict(int)
        keys = self.session_store.keys()
        for tenant_id, _ in keys:
            by_tenant[tenant_id] += 1
        return {
            "totalContexts": len(keys),
            "tenants": len(by_tenant),
            "sessionsByTenant": dict(by_tenant),
        }

    # Preference profile

    def get_profile(self, tenant_id, session_id) -> Optional[UserProfile]:
        return self.profile_store.get(tenant_id, session_id)

    def get_or_create_profile(self, tenant_id, session_id) -> UserProfile:
        profile = self.profile_store.get(tenant_id, session_id)
        if profile is None:
            profile = UserProfile()
            self.profile_store.put(tenant_id, session_id, profile)
        return profile

    def save_profile(self, tenant_id, session_id, profile: UserProfile) -> None:
        profile.updated_at = utc_now_iso()
        self.profile_store.put(tenant_id, session_id, profile)

    def clear_profile(self, tenant_id, session_id) -> None:
        self.profile_store.delete(tenant_id, session_id)

    def clear_all(self) -> None:
        self.session_store.clear()
        self.profile_store.clear()
        self._locks.clear()

    # Turn commit

    def record_turn(
        self,
        tenant_id,
        session_id,
        products: List[Dict[str, Any]],
        matched_ids: List[str],
        user_message: str,
    ) -> bool:
        """
        Commit the products a turn showed.

        With no matched ids nothing changes: the previous context and the
        profile are kept as they were. Returns whether anything was written.
        """
        if not matched_ids:
            return False

        # Update a copy so a failure leaves the stored profile untouched
        profile = copy.deepcopy(self.get_or_create_profile(tenant_id, session_id))
        update_profile_from_products(profile, products, matched_ids)

        self.save_session_context(tenant_id, session_id, products, matched_ids, user_message)
        self.save_profile(tenant_id, session_id, profile)
        return True
