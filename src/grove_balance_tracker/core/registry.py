"""Resource fetcher registry with auto-registration pattern."""

from grove_balance_tracker.core.errors import UnknownResourceTypeError
from grove_balance_tracker.core.models import ResourceType


class FetcherRegistry:
    """
    Registry for resource fetcher classes with auto-registration.

    Fetchers register themselves using the @FetcherRegistry.register decorator.
    The poller then instantiates one fetcher per registered resource type.

    """

    _fetchers: dict[ResourceType, type] = {}

    @classmethod
    def register(cls, fetcher_class: type) -> type:
        """
        Decorator to register a resource fetcher.

        Parameters
        ----------
        fetcher_class : type
            Fetcher class to register

        Returns
        -------
        type
            The fetcher class (for decorator chaining)

        Examples
        --------
        >>> @FetcherRegistry.register
        ... class USDCBalanceFetcher(BaseResourceFetcher):
        ...     resource_type = ResourceType.USDC

        """
        resource_type = getattr(fetcher_class, "resource_type", None)
        if resource_type is None:
            msg = f"Fetcher {fetcher_class.__name__} must define 'resource_type' attribute"
            raise ValueError(msg)

        cls._fetchers[ResourceType.parse(resource_type)] = fetcher_class
        return fetcher_class

    @classmethod
    def get_fetcher(cls, resource_type: ResourceType | str) -> type:
        """
        Get fetcher class by resource type.

        Parameters
        ----------
        resource_type : ResourceType | str
            Resource type

        Returns
        -------
        type
            Fetcher class

        Raises
        ------
        UnknownResourceTypeError
            If no fetcher is registered for the type

        """
        fetcher_class = cls._fetchers.get(ResourceType.parse(resource_type))
        if fetcher_class is None:
            raise UnknownResourceTypeError(resource_type)
        return fetcher_class

    @classmethod
    def get_all_fetchers(cls) -> dict[ResourceType, type]:
        """Registered fetcher classes keyed by resource type, in registration order."""
        return dict(cls._fetchers)

    @classmethod
    def list_resource_types(cls) -> list[ResourceType]:
        """Resource types with a registered fetcher."""
        return list(cls._fetchers.keys())
