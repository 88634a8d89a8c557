"""Abstract base class for provisioning API clients."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple


class Provider(ABC):
    """
    Abstract interface for provisioning APIs.

    This is the only seam between stackplan and a cloud vendor. Every call
    blocks until the API confirms completion or failure; failures raise
    ProvisioningError. Implementations must be safe to call from several
    worker threads at once.
    """

    @abstractmethod
    def create(self, resource_type: str, attributes: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
        """
        Create a resource.

        Args:
            resource_type: Resource type tag
            attributes: Fully resolved attributes

        Returns:
            Tuple of (provider-assigned id, result attributes)
        """
        pass

    @abstractmethod
    def update(self, resource_id: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """
        Update a resource in place.

        Returns:
            Result attributes
        """
        pass

    @abstractmethod
    def delete(self, resource_id: str) -> None:
        """Delete a resource."""
        pass

    def cancel(self) -> None:
        """
        Signal that the run is being cancelled.

        Calls already issued are allowed to finish; implementations should
        stop starting new work (retries, new requests).
        """
        pass

    def close(self) -> None:
        """Release client resources."""
        pass
