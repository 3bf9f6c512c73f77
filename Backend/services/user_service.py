"""
User document lifecycle: creation, credential checks, token list
maintenance, profile updates, avatar storage and account removal.

Users travel through the application as the raw dicts returned by
pymongo. Helpers that change a user also update the dict they were
given so the caller can respond with the new state without re-reading.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId

from db.database import get_user_collection, get_task_collection
from models.user import UserCreate, UserUpdate
from services.auth_service import get_password_hash, verify_password, create_access_token


class InvalidCredentials(Exception):
    pass


def _now() -> datetime:
    return datetime.now(timezone.utc)


def create_user(data: UserCreate) -> Dict[str, Any]:
    now = _now()
    user_doc = data.model_dump()
    # Only the hash is ever stored
    user_doc["password"] = get_password_hash(user_doc["password"])
    user_doc["tokens"] = []
    user_doc["created_at"] = now
    user_doc["updated_at"] = now

    result = get_user_collection().insert_one(user_doc)
    user_doc["_id"] = result.inserted_id
    return user_doc


def find_by_credentials(email: str, password: str) -> Dict[str, Any]:
    """
    Looks a user up by email and checks the password. The same error is
    raised for an unknown email and a wrong password.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        raise InvalidCredentials("Unable to login.")

    user = get_user_collection().find_one({"email": email.strip().lower()})
    if not user or not verify_password(password, user["password"]):
        raise InvalidCredentials("Unable to login.")
    return user


def find_by_token(user_id: str, token: str) -> Optional[Dict[str, Any]]:
    if not ObjectId.is_valid(user_id):
        return None
    return get_user_collection().find_one({"_id": ObjectId(user_id), "tokens.token": token})


def generate_auth_token(user: Dict[str, Any]) -> str:
    token = create_access_token(str(user["_id"]))
    get_user_collection().update_one(
        {"_id": user["_id"]},
        {"$push": {"tokens": {"token": token}}, "$set": {"updated_at": _now()}},
    )
    user.setdefault("tokens", []).append({"token": token})
    return token


def remove_token(user: Dict[str, Any], token: str) -> None:
    get_user_collection().update_one(
        {"_id": user["_id"]},
        {"$pull": {"tokens": {"token": token}}, "$set": {"updated_at": _now()}},
    )
    user["tokens"] = [t for t in user.get("tokens", []) if t.get("token") != token]


def clear_tokens(user: Dict[str, Any]) -> None:
    get_user_collection().update_one(
        {"_id": user["_id"]},
        {"$set": {"tokens": [], "updated_at": _now()}},
    )
    user["tokens"] = []


def update_user(user: Dict[str, Any], updates: UserUpdate) -> Dict[str, Any]:
    changes = updates.model_dump(exclude_unset=True)
    if "password" in changes:
        changes["password"] = get_password_hash(changes["password"])
    changes["updated_at"] = _now()

    get_user_collection().update_one({"_id": user["_id"]}, {"$set": changes})
    user.update(changes)
    return user


def delete_user(user: Dict[str, Any]) -> None:
    # Tasks go first; a failure between the two calls leaves orphans
    get_task_collection().delete_many({"owner": user["_id"]})
    get_user_collection().delete_one({"_id": user["_id"]})


def set_avatar(user: Dict[str, Any], data: bytes) -> None:
    get_user_collection().update_one(
        {"_id": user["_id"]},
        {"$set": {"avatar": data, "updated_at": _now()}},
    )
    user["avatar"] = data


def clear_avatar(user: Dict[str, Any]) -> None:
    get_user_collection().update_one(
        {"_id": user["_id"]},
        {"$unset": {"avatar": ""}, "$set": {"updated_at": _now()}},
    )
    user.pop("avatar", None)


def get_avatar(user_id: str) -> Optional[bytes]:
    if not ObjectId.is_valid(user_id):
        return None
    user = get_user_collection().find_one({"_id": ObjectId(user_id)}, {"avatar": 1})
    if not user or not user.get("avatar"):
        return None
    return bytes(user["avatar"])
