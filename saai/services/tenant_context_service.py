"""Load tenant configuration and action registries from the data directory."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from saai.infra.config import config
from saai.infra.validation import validate_tenant_id
from saai.models.tenant import ActionRegistry, TenantConfig

logger = logging.getLogger(__name__)

DEFAULT_TENANT_ID = "default"


class TenantNotFoundError(Exception):
    def __init__(self, tenant_id: str):
        super().__init__(f"Tenant configuration not found: {tenant_id}")
        self.tenant_id = tenant_id


class InvalidTenantConfigError(Exception):
    def __init__(self, tenant_id: Any, reason: str):
        super().__init__(f"Invalid tenant configuration for {tenant_id}: {reason}")
        self.tenant_id = tenant_id
        self.reason = reason


class RegistryNotFoundError(Exception):
    def __init__(self, tenant_id: str):
        super().__init__(f"Action registry not found for tenant: {tenant_id} (and no default found)")
        self.tenant_id = tenant_id


class InvalidRegistryError(Exception):
    def __init__(self, tenant_id: Any, reason: str):
        super().__init__(f"Invalid action registry for {tenant_id}: {reason}")
        self.tenant_id = tenant_id
        self.reason = reason


def _tenants_dir() -> Path:
    return config.DATA_DIR / "tenants"


def _registry_dir() -> Path:
    return config.DATA_DIR / "registry"


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_tenant_config(tenant_id: str) -> TenantConfig:
    """
    Load and validate data/tenants/{tenant_id}.json.

    Raises:
        TenantNotFoundError: If the file does not exist
        InvalidTenantConfigError: If the id or the file contents are invalid
    """
    try:
        validate_tenant_id(tenant_id)
    except ValueError as e:
        raise InvalidTenantConfigError(tenant_id, str(e))

    path = _tenants_dir() / f"{tenant_id}.json"
    if not path.is_file():
        raise TenantNotFoundError(tenant_id)

    try:
        data = _read_json(path)
    except json.JSONDecodeError as e:
        raise InvalidTenantConfigError(tenant_id, f"Failed to parse JSON: {e}")

    if not isinstance(data, dict) or not data.get("tenantId"):
        raise InvalidTenantConfigError(tenant_id, "Missing required field: tenantId")

    if data["tenantId"] != tenant_id:
        raise InvalidTenantConfigError(
            tenant_id,
            f'Tenant ID mismatch: file name is "{tenant_id}" but config contains "{data["tenantId"]}"',
        )

    return TenantConfig.from_dict(data)


def get_effective_tenant(tenant_id: str) -> TenantConfig:
    """
    Resolve a tenant, falling back to the default tenant.

    Never raises. When neither the requested nor the default tenant can be
    loaded, a minimal config is synthesized for the requested id.
    """
    for candidate in (tenant_id, DEFAULT_TENANT_ID):
        if not candidate:
            continue
        try:
            tenant_config = load_tenant_config(candidate)
        except (TenantNotFoundError, InvalidTenantConfigError) as e:
            logger.warning(f"Tenant '{candidate}' unavailable: {e}")
            continue
        tenant_config.effective_id = candidate
        if candidate != tenant_id:
            logger.info(f"Tenant '{tenant_id}' not found, using '{candidate}'")
        return tenant_config

    fallback_id = tenant_id or DEFAULT_TENANT_ID
    logger.warning(f"No tenant configuration available, synthesizing config for '{fallback_id}'")
    data = {"tenantId": fallback_id, "displayName": fallback_id, "settings": {}}
    return TenantConfig(
        tenant_id=fallback_id,
        display_name=fallback_id,
        settings={},
        effective_id=fallback_id,
        raw=data,
    )


def list_tenants() -> List[str]:
    directory = _tenants_dir()
    if not directory.is_dir():
        return []
    return sorted(p.stem for p in directory.glob("*.json"))


def load_action_registry(tenant_id: str) -> ActionRegistry:
    """
    Load data/registry/{tenant_id}.registry.json, or the default registry.

    The returned registry's meta records where it was loaded from.

    Raises:
        RegistryNotFoundError: If neither the tenant nor the default registry exists
        InvalidRegistryError: If the id or the file contents are invalid
    """
    try:
        validate_tenant_id(tenant_id)
    except ValueError as e:
        raise InvalidRegistryError(tenant_id, str(e))

    tenant_path = _registry_dir() / f"{tenant_id}.registry.json"
    default_path = _registry_dir() / f"{DEFAULT_TENANT_ID}.registry.json"

    used_default = False
    if tenant_path.is_file():
        path = tenant_path
    elif default_path.is_file():
        path = default_path
        used_default = True
        logger.info(f'No registry found for tenant "{tenant_id}", using default registry')
    else:
        raise RegistryNotFoundError(tenant_id)

    try:
        data = _read_json(path)
    except json.JSONDecodeError as e:
        raise InvalidRegistryError(tenant_id, f"Failed to parse JSON: {e}")

    if not isinstance(data, dict) or not data.get("tenantId"):
        raise InvalidRegistryError(tenant_id, "Missing required field: tenantId")

    if not isinstance(data.get("actions"), dict):
        raise InvalidRegistryError(tenant_id, 'Missing or invalid "actions" object')

    try:
        registry = ActionRegistry.model_validate(data)
    except ValueError as e:
        raise InvalidRegistryError(tenant_id, str(e))

    registry.meta = {
        "loadedFrom": "default" if used_default else "tenant-specific",
        "requestedTenant": tenant_id,
        "actualTenant": registry.tenant_id,
    }
    return registry


def load_action_registry_or_empty(tenant_id: str) -> ActionRegistry:
    """Registry for the chat turn; an unloadable registry means no actions."""
    try:
        return load_action_registry(tenant_id)
    except (RegistryNotFoundError, InvalidRegistryError) as e:
        logger.warning(f"Failed to load registry, using empty: {e}")
        return ActionRegistry.empty(tenant_id or DEFAULT_TENANT_ID)


def list_registries() -> List[str]:
    directory = _registry_dir()
    if not directory.is_dir():
        return []
    return sorted(p.name[: -len(".registry.json")] for p in directory.glob("*.registry.json"))


def get_tenant_summary(tenant_id: str) -> Optional[Dict[str, Any]]:
    """Tenant info for the debug endpoint, None when the tenant is unknown."""
    try:
        tenant_config = load_tenant_config(tenant_id)
    except TenantNotFoundError:
        return None

    registry = load_action_registry_or_empty(tenant_id)
    return {
        "tenantId": tenant_config.tenant_id,
        "displayName": tenant_config.display_name,
        "persona": tenant_config.persona,
        "settings": tenant_config.settings,
        "actions": sorted(registry.actions.keys()),
        "registrySource": registry.meta.get("loadedFrom"),
    }
