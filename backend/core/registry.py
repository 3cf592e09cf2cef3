# core/registry.py - Module Registry for dependency injection
#
# Tracks interface providers registered by modules (MaintenanceNotifier,
# AssetDirectory). Supports validation that all declared REQUIRES
# dependencies have been satisfied before app startup.

import logging
from typing import Any, Optional

log = logging.getLogger("upkeep.registry")


class ModuleRegistry:
    """
    Lightweight dependency injection registry.

    Modules call register_provider() to advertise what interfaces they implement.
    Other modules call get_provider() to retrieve an implementation.
    """

    def __init__(self):
        self._providers: dict[str, Any] = {}
        self._declared_requires: list[tuple[str, str]] = []  # (module_id, interface)

    def register_provider(self, interface_name: str, impl: Any) -> None:
        """Register an implementation for the named interface (last writer wins)."""
        existing = self._providers.get(interface_name)
        if existing is not None and existing is not impl:
            log.warning(
                f"Interface '{interface_name}' already registered by "
                f"{type(existing).__name__!r}; overwriting with "
                f"{type(impl).__name__!r}"
            )
        self._providers[interface_name] = impl
        log.debug(f"Registered provider for '{interface_name}': {type(impl).__name__}")

    def get_provider(self, interface_name: str) -> Any:
        """Return the registered provider for a required interface, or None with a warning."""
        provider = self._providers.get(interface_name)
        if provider is None:
            log.warning(
                f"No provider registered for interface '{interface_name}'. "
                "Check that the required module is loaded."
            )
        return provider

    def get_optional(self, interface_name: str) -> Optional[Any]:
        """Return the provider for an optional collaborator without warning when absent."""
        return self._providers.get(interface_name)

    def unregister(self, interface_name: str) -> None:
        self._providers.pop(interface_name, None)

    def record_requires(self, module_id: str, requires: list[str]) -> None:
        """Record the REQUIRES list for a module so validate_dependencies() can check it."""
        for iface in requires:
            self._declared_requires.append((module_id, iface))

    def validate_dependencies(self) -> bool:
        """Check that all REQUIRES declarations have registered providers.

        Logs errors for unsatisfied dependencies but does not raise.
        """
        missing = [
            (module_id, iface)
            for module_id, iface in self._declared_requires
            if iface not in self._providers
        ]
        for module_id, interface_name in missing:
            log.error(
                f"Unsatisfied dependency: module '{module_id}' requires "
                f"'{interface_name}' but no provider is registered."
            )
        if not missing:
            log.info(
                f"All module dependencies satisfied "
                f"({len(self._declared_requires)} declarations checked)."
            )
        return not missing

    @property
    def providers(self) -> dict[str, Any]:
        """Read-only view of all registered providers."""
        return dict(self._providers)


registry = ModuleRegistry()
