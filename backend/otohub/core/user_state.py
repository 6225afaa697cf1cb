# backend/otohub/core/user_state.py
from otohub.core.errors import EmailNotVerified, OnboardingRequired
from otohub.core.security import Principal


def check_user_state(
    principal: Principal,
    allow_unverified: bool = False,
    allow_unonboarded: bool = False,
) -> None:
    """
    Reject principals that have not verified their email or finished onboarding.

    A route that allows unverified users implicitly allows unonboarded ones
    too, since onboarding can only happen after verification.
    """
    if principal.is_superadmin:
        return

    if not principal.email_verified:
        if not allow_unverified:
            raise EmailNotVerified()
        return

    if not principal.onboarding_completed and not (allow_unonboarded or allow_unverified):
        raise OnboardingRequired()
