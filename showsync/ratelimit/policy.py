"""Rate-limit policies by identity class and operation."""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


SYSTEM_IDENTITY_PREFIX = "system:"
ANONYMOUS_IDENTITY = "anonymous"

# Operations with their own (tighter) ceiling; everything else uses "*"
SEARCH_OPERATION = "search"
DEFAULT_OPERATION = "*"


class IdentityClass(str, Enum):
    """Class of caller a policy applies to.

    - ANONYMOUS: no identity supplied
    - SYSTEM: internal callers, identity starts with ``system:``
    - USER: an authenticated end user
    """

    ANONYMOUS = "ANONYMOUS"
    SYSTEM = "SYSTEM"
    USER = "USER"


def classify_identity(identity_key: str | None) -> IdentityClass:
    """Determine the identity class of a caller.

    Examples:
        >>> classify_identity(None)
        <IdentityClass.ANONYMOUS: 'ANONYMOUS'>
        >>> classify_identity("system:sync")
        <IdentityClass.SYSTEM: 'SYSTEM'>
    """
    if identity_key is None:
        return IdentityClass.ANONYMOUS
    if identity_key.startswith(SYSTEM_IDENTITY_PREFIX):
        return IdentityClass.SYSTEM
    return IdentityClass.USER


class RateLimitPolicy(BaseModel):
    """Fixed-window ceiling: at most ``max_requests`` per ``window_seconds``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    window_seconds: Annotated[int, Field(ge=1, le=86400)] = 60
    max_requests: Annotated[int, Field(ge=1)]


def _default_policies() -> dict[IdentityClass, dict[str, RateLimitPolicy]]:
    shared = {
        SEARCH_OPERATION: RateLimitPolicy(window_seconds=60, max_requests=600),
        DEFAULT_OPERATION: RateLimitPolicy(window_seconds=60, max_requests=1200),
    }
    return {
        IdentityClass.ANONYMOUS: shared,
        IdentityClass.SYSTEM: shared,
        IdentityClass.USER: {
            SEARCH_OPERATION: RateLimitPolicy(window_seconds=60, max_requests=30),
            DEFAULT_OPERATION: RateLimitPolicy(window_seconds=60, max_requests=120),
        },
    }


class RateLimitPolicyTable(BaseModel):
    """Policies keyed by identity class, then operation.

    Each class must define the ``"*"`` fallback used for operations without
    a dedicated entry.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    policies: dict[IdentityClass, dict[str, RateLimitPolicy]] = Field(
        default_factory=_default_policies
    )

    def resolve(
        self, identity_class: IdentityClass, operation: str
    ) -> RateLimitPolicy:
        """Return the policy for an identity class and operation.

        Args:
            identity_class: Class of the caller.
            operation: Canonical operation name.

        Returns:
            The matching policy.

        Raises:
            KeyError: If the table has no entry for the class.
        """
        by_operation = self.policies[identity_class]
        return by_operation.get(operation) or by_operation[DEFAULT_OPERATION]
