from scopewire.cells import CellState, LazyCell
from scopewire.container import Container
from scopewire.exceptions import (
    AsyncDependencyInSyncContextError,
    CircularDependencyError,
    DisposedProviderAccessError,
    RegistrationError,
    ScopedAccessViolationError,
    ScopewireError,
    StrictModeViolationError,
    UnregisteredServiceError,
)
from scopewire.providers import BaseProvider, HostProvider, ScopedProvider
from scopewire.references import LazyReference, TransientReference
from scopewire.registrations import (
    FactoryKind,
    Lifetime,
    Provide,
    Registration,
    RegistrationStore,
    as_class,
    as_factory,
    as_value,
)
from scopewire.service import Service
from scopewire.views import CapabilityView

__all__ = [
    "AsyncDependencyInSyncContextError",
    "BaseProvider",
    "CapabilityView",
    "CellState",
    "CircularDependencyError",
    "Container",
    "DisposedProviderAccessError",
    "FactoryKind",
    "HostProvider",
    "LazyCell",
    "LazyReference",
    "Lifetime",
    "Provide",
    "Registration",
    "RegistrationError",
    "RegistrationStore",
    "ScopedAccessViolationError",
    "ScopedProvider",
    "ScopewireError",
    "Service",
    "StrictModeViolationError",
    "TransientReference",
    "UnregisteredServiceError",
    "as_class",
    "as_factory",
    "as_value",
]
