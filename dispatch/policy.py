"""
Purpose: Central configuration for the job lifecycle.
What it does:

Stores the tunable rules of the lifecycle:

REQUIRE_PAYMENT_TO_PROCEED = True
NOTIFY_ADMIN_ON_ACCEPT = True

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass

from common.errors import ValidationError
from common.settings import load_settings


@dataclass(frozen=True)
class LifecyclePolicy:
    """
    Central configuration for job lifecycle gates.
    """

    # --- Payment gate ---
    # The driver only proceeds (ride progress, completion) once the client paid.
    require_payment_to_proceed: bool = True

    # --- Notifications ---
    notify_admin_on_accept: bool = True

    # --- Settlement ---
    # Ledger account credited with platform revenue
    platform_account_id: str = "system"

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if not self.platform_account_id:
            raise ValidationError("platform_account_id must not be empty")


def default_lifecycle_policy() -> LifecyclePolicy:
    """
    Convenience factory for the default policy.
    """
    p = LifecyclePolicy(platform_account_id=load_settings().platform_account_id)
    p.validate()
    return p
