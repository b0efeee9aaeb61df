"""
Registry pattern for extensible output monitors.

Usage:
    from advectsim.registry import register_monitor, get_monitor

    @register_monitor("txt")
    class TxtMonitor(Monitor):
        ...

    monitor_cls = get_monitor("txt")
"""

from typing import Any, Callable, TypeVar

T = TypeVar("T", bound=Callable[..., Any])


class Registry:
    """Generic registry for named callables."""

    def __init__(self, name: str):
        self.name = name
        self._registry: dict[str, Callable[..., Any]] = {}

    def register(self, name: str) -> Callable[[T], T]:
        """Decorator to register a callable under a name."""
        def decorator(fn: T) -> T:
            if name in self._registry:
                raise ValueError(f"{self.name} '{name}' is already registered")
            self._registry[name] = fn
            return fn
        return decorator

    def get(self, name: str) -> Callable[..., Any]:
        """Get a registered callable by name."""
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown {self.name}: '{name}'. Available: {available}")
        return self._registry[name]

    def list_available(self) -> list[str]:
        return sorted(self._registry)


MONITORS = Registry("monitor")


def register_monitor(name: str) -> Callable[[T], T]:
    """Decorator to register a monitor."""
    return MONITORS.register(name)


def get_monitor(name: str) -> Callable[..., Any]:
    """Get a registered monitor by name."""
    return MONITORS.get(name)
