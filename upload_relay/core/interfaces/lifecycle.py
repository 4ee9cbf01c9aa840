"""
Lifecycle interfaces shared by every long-lived relay component.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class IStartable(ABC):
    """Interface for components that acquire resources on start."""

    @abstractmethod
    async def start(self) -> None:
        """
        Start the component.

        Raises:
            Exception: If the component cannot acquire its resources.
        """
        pass


class IStoppable(ABC):
    """Interface for components that release resources on stop."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop the component, releasing anything acquired in ``start``."""
        pass


class IHealthCheckable(ABC):
    """Interface for components that report their health."""

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """
        Report component health.

        Returns:
            Dict with at least ``healthy`` (bool), ``status`` (str) and
            ``details`` (dict).
        """
        pass


class IComponent(IStartable, IStoppable, IHealthCheckable):
    """A named component managed by ``ApplicationStartup``."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the component name."""
        pass
