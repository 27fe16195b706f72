"""Collaborator registry keyed by component base class.

Each pluggable component (safety classifier, context provider, record store,
alert notifier) declares its abstract base with ``@provider_component``.
Implementations register under that component with ``@register_provider``
and must subclass its base; the factory then hands back instances typed as
the base::

    @provider_component("safety")
    class BaseSafetyClassifier(ABC): ...

    @register_provider("safety", "llama_guard")
    class LlamaGuardClassifier(BaseSafetyClassifier): ...

    classifier = ProviderFactory.create(BaseSafetyClassifier, "llama_guard", cfg, None, pool)
"""

from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel

from chatcore.core.http_client_pool import HttpClientPool

B = TypeVar("B", bound=type)
T = TypeVar("T")

# component name → abstract base every implementation must extend
_COMPONENTS: dict[str, type] = {}
# (component, provider) → implementation class
_REGISTRY: dict[tuple[str, str], type] = {}


def provider_component(name: str):
    """Class decorator declaring *name* as a pluggable component with this base."""

    def wrapper(base: B) -> B:
        if name in _COMPONENTS and _COMPONENTS[name] is not base:
            raise ValueError(f"Component {name!r} already bound to {_COMPONENTS[name].__name__}")
        _COMPONENTS[name] = base
        return base

    return wrapper


def register_provider(component: str, provider: str):
    """Class decorator registering an implementation of *component*.

    Raises:
        ValueError: If *component* has not been declared.
        TypeError: If the class does not subclass the component's base.
    """

    def wrapper(cls: B) -> B:
        base = _COMPONENTS.get(component)
        if base is None:
            raise ValueError(f"Unknown component {component!r}; declared: {sorted(_COMPONENTS)}")
        if not issubclass(cls, base):
            raise TypeError(f"{cls.__name__} must subclass {base.__name__} to serve as {component!r}")
        _REGISTRY[(component, provider)] = cls
        return cls

    return wrapper


class ProviderFactory:
    """Creates collaborator instances from config using the registry."""

    @staticmethod
    def create(
        base: type[T],
        provider: str,
        config: BaseModel | None,
        cloud_config: BaseModel | None,
        http_pool: HttpClientPool,
    ) -> T:
        """Instantiate the *provider* implementation of *base*'s component.

        Raises:
            ValueError: If nothing is registered under that name.
        """
        component = _component_of(base)
        cls = _REGISTRY.get((component, provider))
        if cls is None:
            raise ValueError(
                f"No provider registered for ({component}, {provider}). "
                f"Available {component} providers: {ProviderFactory.available(component)}"
            )
        return cls(config=config, cloud_config=cloud_config, http_pool=http_pool)

    @staticmethod
    def available(component: str) -> list[str]:
        """Provider names registered for *component*."""
        return [name for comp, name in _REGISTRY if comp == component]


def _component_of(base: type) -> str:
    for name, declared in _COMPONENTS.items():
        if declared is base:
            return name
    raise ValueError(f"{base.__name__} is not a declared provider component")
