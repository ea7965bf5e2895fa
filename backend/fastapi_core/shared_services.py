"""
Shared Services Registry

Independent registry for services supplied from outside the core, such as
the BLANG payload decryptor. The server (or an embedding application)
registers them here and the routers look them up without importing it.
"""

from typing import Optional, Any, Dict

from loguru import logger

DECRYPTOR_SERVICE = 'blang_decryptor'

_shared_registry: Dict[str, Any] = {}

def register_shared_service(name: str, service: Any) -> None:
    """
    Register a shared service.

    Args:
        name: Service name (e.g., 'blang_decryptor')
        service: Service instance
    """
    _shared_registry[name] = service
    logger.debug(f"Registered shared service: {name}")

def get_shared_decryptor() -> Optional[Any]:
    """Get the registered decrypt(data, key) callable, if any"""
    return _shared_registry.get(DECRYPTOR_SERVICE)

def clear_shared_services() -> None:
    """Clear all shared services (useful for testing)."""
    _shared_registry.clear()
    logger.debug("Cleared all shared services")

def list_shared_services() -> Dict[str, str]:
    """
    List all registered shared services.

    Returns:
        Dict mapping service names to their type names
    """
    return {name: type(service).__name__ for name, service in _shared_registry.items()}
