from fastapi import APIRouter, Depends, HTTPException
from app.auth import get_portal, get_current_user
from app.schemas.auth import LoginRequest, SignupRequest, AuthResponse, UserResponse

router = APIRouter()


def _response(user) -> AuthResponse:
    return AuthResponse(user=UserResponse.from_user(user) if user else None)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, portal=Depends(get_portal)):
    result = await portal.login(body.email, body.password)
    if result.error or result.user is None:
        raise HTTPException(status_code=401, detail=result.error or "Login failed")
    return _response(result.user)


@router.post("/signup", response_model=AuthResponse, status_code=201)
async def signup(body: SignupRequest, portal=Depends(get_portal)):
    result = await portal.signup(body.email, body.password, body.name)
    if result.error or result.user is None:
        raise HTTPException(status_code=400, detail=result.error or "Signup failed")
    return _response(result.user)


@router.post("/logout", response_model=AuthResponse)
async def logout(portal=Depends(get_portal)):
    await portal.logout()
    return AuthResponse()


@router.get("/me", response_model=AuthResponse)
async def me(user=Depends(get_current_user)):
    return _response(user)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(portal=Depends(get_portal)):
    """Re-run the session bootstrap, e.g. after the shell regains focus."""
    return _response(await portal.bootstrap())
