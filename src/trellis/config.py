"""Navigator configuration.

NavigatorConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class NavigatorConfig:
    """Navigator configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = NavigatorConfig(params_inheritance="always", concurrent_outlets=False)
    """

    # Recognition
    params_inheritance: Literal["empty_only", "always"] = "empty_only"
    root_component: object = None  # Component of the root snapshot

    # Route configuration
    validate_routes: bool = True  # Structural check when the navigator is built

    # Guards
    max_guard_redirects: int = 10  # Renavigations a CanLoad guard may trigger per navigate()

    # Redirect resolution
    concurrent_outlets: bool = True  # False expands sibling outlets one at a time, primary first

    def __post_init__(self) -> None:
        if self.params_inheritance not in ("empty_only", "always"):
            msg = f"params_inheritance must be 'empty_only' or 'always', got {self.params_inheritance!r}"
            raise ValueError(msg)
        if self.max_guard_redirects < 0:
            msg = f"max_guard_redirects must be >= 0, got {self.max_guard_redirects}"
            raise ValueError(msg)
