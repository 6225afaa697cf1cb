# backend/otohub/api/v1/auth.py
from fastapi import APIRouter, Depends, Response

from otohub.api.dependencies import get_request_context, get_services, get_tenant_id
from otohub.core.pipeline import RequestContext
from otohub.core.security import Principal, create_access_token
from otohub.schemas.user import MeResponse, PrincipalOut, Token
from otohub.services.container import ServiceContainer

router = APIRouter()


@router.get("/me", response_model=MeResponse)
async def read_me(context: RequestContext = Depends(get_request_context)):
    """Current principal and the access decision for this request"""
    principal = context.principal
    return MeResponse(
        principal=PrincipalOut(
            subject_id=principal.subject_id,
            email=principal.email,
            role=principal.role,
            tenant_id=principal.tenant_id,
            email_verified=principal.email_verified,
            onboarding_completed=principal.onboarding_completed,
        ),
        effective_tenant_id=context.tenant_id,
        access_level=context.access_level.value,
    )


@router.post("/onboarding", response_model=Token)
async def complete_onboarding(
    response: Response,
    context: RequestContext = Depends(get_request_context),
    tenant_id: str = Depends(get_tenant_id),
    services: ServiceContainer = Depends(get_services),
):
    """Mark onboarding done and re-sign the token from the updated user record"""
    user = await services.staff.complete_onboarding(tenant_id, context.principal.subject_id)
    token = create_access_token(Principal.from_user(user), services.settings)
    response.set_cookie(
        services.settings.AUTH_COOKIE_NAME,
        token,
        httponly=True,
        secure=services.settings.ENVIRONMENT == "production",
        samesite="lax",
    )
    return Token(access_token=token)
