from fastapi import APIRouter, HTTPException, status, Body, Depends, BackgroundTasks, UploadFile, File, Response
from starlette.concurrency import run_in_threadpool
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError, PyMongoError
from typing import Any, Dict
import logging

from models.user import UserCreate, UserUpdate, UserLogin, UserPublic, AuthResponse, ALLOWED_USER_UPDATES
from services.user_service import (
    InvalidCredentials,
    create_user,
    find_by_credentials,
    generate_auth_token,
    remove_token,
    clear_tokens,
    update_user,
    delete_user,
    set_avatar,
    clear_avatar,
    get_avatar,
)
from services.email_service import send_welcome_email, send_cancellation_email
from services.image_service import MAX_AVATAR_BYTES, InvalidImage, is_allowed_avatar_name, normalize_avatar
from routes.auth import get_current_user
from routes.errors import validation_error_detail

user_router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


# -----------------------------------------------------------------
# --- Signup / Login / Logout ---
# -----------------------------------------------------------------
@user_router.post(
    "",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user"
)
def signup(user_data: UserCreate, background_tasks: BackgroundTasks):
    """
    Creates the user, schedules the welcome email and returns the
    public profile together with a first token.
    """
    try:
        user = create_user(user_data)
    except DuplicateKeyError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    # Runs after the response is sent; failures are only logged
    background_tasks.add_task(send_welcome_email, user["email"], user["name"])

    try:
        token = generate_auth_token(user)
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return {"user": user, "token": token}


@user_router.post("/login", response_model=AuthResponse, summary="Log in with email and password")
def login(credentials: UserLogin):
    try:
        user = find_by_credentials(credentials.email, credentials.password)
        token = generate_auth_token(user)
    except (InvalidCredentials, PyMongoError):
        # Deliberately vague: never say whether the email or the password was wrong
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unable to login."
        )

    return {"user": user, "token": token}


@user_router.post("/logout", summary="Revoke the token used for this request")
def logout(current_user: dict = Depends(get_current_user)):
    try:
        remove_token(current_user["user"], current_user["token"])
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return Response(status_code=status.HTTP_200_OK)


@user_router.post("/logoutall", summary="Revoke every token of the user")
def logout_all(current_user: dict = Depends(get_current_user)):
    try:
        clear_tokens(current_user["user"])
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return Response(status_code=status.HTTP_200_OK)


# -----------------------------------------------------------------
# --- Profile ---
# -----------------------------------------------------------------
@user_router.get("/me", response_model=UserPublic, summary="Read your profile")
def read_profile(current_user: dict = Depends(get_current_user)):
    return current_user["user"]


@user_router.patch("/me", response_model=UserPublic, summary="Update your profile")
def update_profile(
    updates: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user)
):
    """
    Only name, age, email and password may be changed. Any other key
    rejects the whole request and nothing is written.
    """
    if not all(key in ALLOWED_USER_UPDATES for key in updates):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid properties to update."
        )

    try:
        changes = UserUpdate.model_validate(updates)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=validation_error_detail(e.errors())
        )

    try:
        return update_user(current_user["user"], changes)
    except DuplicateKeyError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered"
        )
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@user_router.delete("/me", response_model=UserPublic, summary="Delete your account and all your tasks")
def delete_account(background_tasks: BackgroundTasks, current_user: dict = Depends(get_current_user)):
    user = current_user["user"]
    try:
        delete_user(user)
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    background_tasks.add_task(send_cancellation_email, user["email"], user["name"])
    return user


# -----------------------------------------------------------------
# --- Avatar ---
# -----------------------------------------------------------------
@user_router.post("/me/avatar", summary="Upload a profile picture")
async def upload_avatar(
    avatar: UploadFile = File(...),
    current_user: dict = Depends(get_current_user)
):
    """
    Accepts a jpg, jpeg or png file of at most 1MB, stores it as a
    250x250 PNG on the user.
    """
    if not is_allowed_avatar_name(avatar.filename):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please upload a jpg, jpeg or png image file"
        )

    data = await avatar.read(MAX_AVATAR_BYTES + 1)
    if len(data) > MAX_AVATAR_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File too large"
        )

    try:
        image = await run_in_threadpool(normalize_avatar, data)
    except InvalidImage as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await run_in_threadpool(set_avatar, current_user["user"], image)
    logging.info(f"Stored avatar for user {current_user['user']['_id']}")
    return Response(status_code=status.HTTP_200_OK)


@user_router.delete("/me/avatar", summary="Remove your profile picture")
def remove_avatar(current_user: dict = Depends(get_current_user)):
    user = current_user["user"]
    if not user.get("avatar"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No avatar to remove"
        )
    try:
        clear_avatar(user)
    except PyMongoError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return Response(status_code=status.HTTP_200_OK)


@user_router.get(
    "/{user_id}/avatar",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}},
    summary="Fetch a user's profile picture"
)
def read_avatar(user_id: str):
    image = get_avatar(user_id)
    if image is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User or image data not found"
        )
    return Response(content=image, media_type="image/png")
