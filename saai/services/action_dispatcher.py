"""
Action dispatcher.

Resolves a tool name to a 'namespace.function' handler through the tenant's
action registry, preferring tenant-specific adapters over the generic ones,
and runs it.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from saai.infra.metrics import tool_call_duration, tool_calls_total
from saai.infra.timeout import TOOL_EXECUTION_TIMEOUT
from saai.models.context import utc_now_iso
from saai.models.tenant import ActionRegistry, TenantConfig

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], TenantConfig], Awaitable[Dict[str, Any]]]

SOURCE_TENANT = "tenant-specific"
SOURCE_GENERIC = "generic"


class ActionDispatchError(Exception):
    """Base class for errors raised before a handler runs."""


class ActionNotFoundError(ActionDispatchError):
    def __init__(self, action: str, tenant_id: str):
        super().__init__(f"Action '{action}' not found in registry for tenant '{tenant_id}'")
        self.action = action
        self.tenant_id = tenant_id


class ActionDisabledError(ActionDispatchError):
    def __init__(self, action: str, tenant_id: str):
        super().__init__(f"Action '{action}' is disabled for tenant '{tenant_id}'")
        self.action = action
        self.tenant_id = tenant_id


class InvalidHandlerError(ActionDispatchError):
    def __init__(self, handler: Any, action: str):
        super().__init__(
            f"Invalid handler format '{handler}' for action '{action}'. "
            f"Expected format: 'namespace.function'"
        )
        self.handler = handler
        self.action = action


class AdapterNotFoundError(ActionDispatchError):
    def __init__(self, namespace: str, action: str):
        super().__init__(f"Adapter not found for namespace '{namespace}' (action: '{action}')")
        self.namespace = namespace
        self.action = action


class FunctionNotFoundError(ActionDispatchError):
    def __init__(self, function_name: str, namespace: str, action: str):
        super().__init__(f"Function '{function_name}' not found in adapter '{namespace}' (action: '{action}')")
        self.function_name = function_name
        self.namespace = namespace
        self.action = action


class AdapterSet:
    """Lookup table of handlers: namespace -> function name -> handler."""

    def __init__(self, name: str = SOURCE_GENERIC):
        self.name = name
        self._handlers: Dict[str, Dict[str, Handler]] = {}

    def register(self, namespace: str, function_name: str, handler: Handler) -> None:
        self._handlers.setdefault(namespace, {})[function_name] = handler

    def has_namespace(self, namespace: str) -> bool:
        return namespace in self._handlers

    def resolve(self, namespace: str, function_name: str) -> Optional[Handler]:
        return self._handlers.get(namespace, {}).get(function_name)

    def namespaces(self):
        return sorted(self._handlers)


def parse_handler(handler: Any, action: str) -> Tuple[str, str]:
    if not handler or not isinstance(handler, str):
        raise InvalidHandlerError(handler, action)
    parts = handler.split(".")
    if len(parts) != 2 or not all(parts):
        raise InvalidHandlerError(handler, action)
    return parts[0], parts[1]


class ActionDispatcher:
    """Runs registry actions against generic and per-tenant adapter sets."""

    def __init__(
        self,
        generic: AdapterSet,
        tenant_adapters: Optional[Dict[str, AdapterSet]] = None,
        timeout: float = TOOL_EXECUTION_TIMEOUT,
    ):
        self.generic = generic
        self.tenant_adapters: Dict[str, AdapterSet] = dict(tenant_adapters or {})
        self.timeout = timeout

    def register_tenant_adapters(self, tenant_id: str, adapters: AdapterSet) -> None:
        self.tenant_adapters[tenant_id] = adapters

    def resolve(
        self,
        action_name: str,
        tenant_config: TenantConfig,
        action_registry: ActionRegistry,
    ) -> Tuple[Handler, str, str]:
        """
        Resolve an action to (handler, adapter_source, handler_string).

        Raises one of the ActionDispatchError subclasses; nothing is executed.
        """
        tenant_id = tenant_config.id
        entry = action_registry.actions.get(action_name)
        if entry is None:
            raise ActionNotFoundError(action_name, tenant_id)
        if not entry.enabled:
            raise ActionDisabledError(action_name, tenant_id)

        namespace, function_name = parse_handler(entry.handler, action_name)

        tenant_set = self.tenant_adapters.get(tenant_id)
        if tenant_set is not None:
            handler = tenant_set.resolve(namespace, function_name)
            if handler is not None:
                return handler, SOURCE_TENANT, entry.handler
            logger.debug(f"Function '{function_name}' not overridden for tenant {tenant_id}, using generic")

        if not self.generic.has_namespace(namespace):
            raise AdapterNotFoundError(namespace, action_name)

        handler = self.generic.resolve(namespace, function_name)
        if handler is None:
            raise FunctionNotFoundError(function_name, namespace, action_name)
        return handler, SOURCE_GENERIC, entry.handler

    async def execute(
        self,
        action_name: str,
        args: Dict[str, Any],
        tenant_config: TenantConfig,
        action_registry: ActionRegistry,
    ) -> Dict[str, Any]:
        """
        Run an action and attach execution metadata under `_meta`.

        Errors raised by the handler itself propagate unchanged.
        """
        handler, source, handler_name = self.resolve(action_name, tenant_config, action_registry)
        args = dict(args or {})

        entry = action_registry.actions[action_name]
        missing = [p for p in entry.required_params if args.get(p) in (None, "")]
        if missing:
            logger.warning(
                f"Action '{action_name}' called without required params: {missing}",
                extra={"tenant_id": tenant_config.id, "action": action_name},
            )

        start = time.time()
        try:
            result = await asyncio.wait_for(handler(args, tenant_config), timeout=self.timeout)
        except Exception:
            tool_calls_total.labels(tool_name=action_name, adapter_source=source, status="error").inc()
            logger.error(
                f"Action '{action_name}' failed after {int((time.time() - start) * 1000)}ms",
                extra={"tenant_id": tenant_config.id, "action": action_name, "handler": handler_name},
                exc_info=True,
            )
            raise

        duration = time.time() - start
        tool_calls_total.labels(tool_name=action_name, adapter_source=source, status="success").inc()
        tool_call_duration.labels(tool_name=action_name).observe(duration)

        enriched = dict(result) if isinstance(result, dict) else {"result": result}
        enriched["_meta"] = {
            "action": action_name,
            "handler": handler_name,
            "adapterSource": source,
            "executionTime": int(duration * 1000),
            "timestamp": utc_now_iso(),
        }

        logger.info(
            f"Executed {handler_name} ({source})",
            extra={
                "tenant_id": tenant_config.id,
                "action": action_name,
                "duration_ms": int(duration * 1000),
            },
        )
        return enriched


def build_default_dispatcher() -> ActionDispatcher:
    """Dispatcher with the generic commerce adapters and the bundled tenant overrides."""
    from saai.adapters.commerce_adapter import build_generic_adapters
    from saai.tenants.example_adapter import build_example_adapters

    dispatcher = ActionDispatcher(build_generic_adapters())
    dispatcher.register_tenant_adapters("example", build_example_adapters())
    return dispatcher
