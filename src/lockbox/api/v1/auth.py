from fastapi import APIRouter, HTTPException, Depends, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from lockbox.models.auth_model import (
    RegisterRequest,
    LoginRequest,
    AuthResponse,
    MeResponse,
    UserResponse
)
from lockbox.models.records import UserRecord
from lockbox.db.vault_store import VaultStore, get_vault_store
from lockbox.utils.password import hash_password, verify_password
from lockbox.utils.jwt import create_access_token, decode_access_token
from lockbox.utils.security_audit import get_client_ip, log_security_event

router = APIRouter()
security = HTTPBearer(auto_error=False)


def _user_response(user: UserRecord) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, created_at=user.created_at)


async def _email_taken(email: str, request: Request):
    await log_security_event(
        "registration_failed",
        False,
        email_attempted=email,
        ip_address=get_client_ip(request),
        details={"reason": "email_already_registered"}
    )
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Email already registered"
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    store: VaultStore = Depends(get_vault_store)
):
    """
    Create an account and issue an access token
    """
    existing = await store.get_user_by_email(payload.email)
    if existing:
        await _email_taken(payload.email, request)

    # A concurrent registration can still win the insert
    user = await store.create_user(payload.email, hash_password(payload.password))
    if user is None:
        await _email_taken(payload.email, request)

    await log_security_event(
        "registration_success",
        True,
        user_id=user.id,
        ip_address=get_client_ip(request)
    )

    return AuthResponse(
        message="Registration complete",
        token=create_access_token(user.id),
        user=_user_response(user)
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    credentials: LoginRequest,
    request: Request,
    store: VaultStore = Depends(get_vault_store)
):
    """
    Authenticate an account and issue an access token
    """
    user = await store.get_user_by_email(credentials.email)

    if not user:
        await log_security_event(
            "login_failed",
            False,
            email_attempted=credentials.email,
            ip_address=get_client_ip(request),
            details={"reason": "user_not_found"}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not verify_password(credentials.password, user.password_hash):
        await log_security_event(
            "login_failed",
            False,
            user_id=user.id,
            ip_address=get_client_ip(request),
            details={"reason": "invalid_password"}
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    await log_security_event(
        "login_success",
        True,
        user_id=user.id,
        ip_address=get_client_ip(request)
    )

    return AuthResponse(
        message="Logged in",
        token=create_access_token(user.id),
        user=_user_response(user)
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: VaultStore = Depends(get_vault_store)
) -> UserRecord:
    """
    Dependency resolving the bearer token to an account
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = int(payload["sub"])
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = await store.get_user_by_id(user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return user


@router.get("/me", response_model=MeResponse)
async def me(
    current_user: UserRecord = Depends(get_current_user),
    store: VaultStore = Depends(get_vault_store)
):
    """
    Current account and whether a vault / master password exists
    """
    vault = await store.get_vault(current_user.id)
    return MeResponse(
        user=_user_response(current_user),
        hasVault=vault is not None,
        hasMasterPassword=bool(vault and vault.master_hash)
    )
