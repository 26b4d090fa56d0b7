"""
Resource helpers for the PlagCheck backend.

Each service wraps one family of endpoints on top of a CachedApiClient and
returns the decoded response body.
"""
import logging
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Optional, Union

from plagcheck.api_client import CachedApiClient
from plagcheck.errors import HTTPStatusError, PlagCheckError
from plagcheck.schemas import DetectionConfig, SessionUser
from plagcheck.session import SessionStore
from plagcheck.similarity import calculate_similarity_index

logger = logging.getLogger("services")


def _clean(params: Dict[str, Any]) -> Dict[str, Any]:
    """Drop unset query params."""
    return {k: v for k, v in params.items() if v is not None}


class ThesisService:
    """Thesis upload, listing, statistics and moderation."""

    def __init__(self, client: CachedApiClient):
        self.client = client

    def list(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        refresh: bool = False,
    ) -> List[Dict[str, Any]]:
        """Current user's theses with similarity scores normalized."""
        params = _clean({"page": page, "limit": limit, "search": search, "status": status})
        response = self.client.get("/theses", params=params, skip_cache=refresh)
        return [calculate_similarity_index(t) for t in response.data or []]

    def list_all(self, refresh: bool = False) -> List[Dict[str, Any]]:
        """Every thesis in the system (admin only)."""
        return self.client.get("/theses/all", skip_cache=refresh).data or []

    def stats(self, refresh: bool = False) -> Dict[str, Any]:
        return self.client.get("/theses/stats", skip_cache=refresh).data

    def get(self, thesis_id: str, refresh: bool = False) -> Dict[str, Any]:
        data = self.client.get(f"/theses/{thesis_id}", skip_cache=refresh).data
        return calculate_similarity_index(data)

    def upload(
        self,
        file: Union[str, Path, BinaryIO],
        title: str,
        abstract: str = "",
        check_ai_plagiarism: bool = True,
        check_traditional_plagiarism: bool = True,
    ) -> Dict[str, Any]:
        """
        Upload a thesis document for checking.

        Args:
            file: Path to the document, or an open binary file
            title: Thesis title
            abstract: Optional abstract
            check_ai_plagiarism: Run the AI-generated content check
            check_traditional_plagiarism: Run the text-match check
        """
        form = {
            "title": title,
            "abstract": abstract,
            "checkAiPlagiarism": str(check_ai_plagiarism).lower(),
            "checkTraditionalPlagiarism": str(check_traditional_plagiarism).lower(),
        }
        if isinstance(file, (str, Path)):
            path = Path(file)
            with open(path, "rb") as f:
                return self.client.post(
                    "/theses/upload", data=form, files={"file": (path.name, f)}
                ).data
        name = Path(getattr(file, "name", "thesis")).name
        return self.client.post("/theses/upload", data=form, files={"file": (name, file)}).data

    def delete(self, thesis_id: str) -> Any:
        return self.client.delete(f"/theses/{thesis_id}").data

    def approve(self, thesis_id: str) -> Any:
        return self.client.patch(f"/theses/{thesis_id}/approve").data

    def reject(self, thesis_id: str, reason: Optional[str] = None) -> Any:
        body = {"reason": reason} if reason else None
        return self.client.patch(f"/theses/{thesis_id}/reject", json=body).data

    def recheck(self, thesis_id: str) -> Any:
        """Queue the thesis for another plagiarism run."""
        return self.client.post(f"/theses/{thesis_id}/recheck").data


class UserService:
    """Account administration and profile updates."""

    def __init__(self, client: CachedApiClient):
        self.client = client

    def list(self, refresh: bool = False) -> List[Dict[str, Any]]:
        return self.client.get("/users", skip_cache=refresh).data or []

    def me(self, user_id: str) -> Dict[str, Any]:
        return self.client.get(f"/users/me/{user_id}").data

    def admin_stats(self, refresh: bool = False) -> Dict[str, Any]:
        return self.client.get("/users/admin/stats", skip_cache=refresh).data

    def create(self, values: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.post("/users", json=values).data

    def update(self, user_id: str, values: Dict[str, Any]) -> Dict[str, Any]:
        return self.client.put(f"/users/{user_id}", json=values).data

    def delete(self, user_id: str) -> Any:
        return self.client.delete(f"/users/{user_id}").data

    def toggle_admin(self, user_id: str, current_is_admin: bool) -> Dict[str, Any]:
        return self.update(user_id, {"isAdmin": not current_is_admin})


class AuthService:
    """Login, registration and password recovery."""

    def __init__(self, client: CachedApiClient, session_store: SessionStore):
        self.client = client
        self.session_store = session_store

    def login(self, email: str, password: str) -> SessionUser:
        """Log in and persist the session so later requests carry the token."""
        data = self.client.post("/users/login", json={"email": email, "password": password}).data
        user = SessionUser.model_validate({**data, "isEmailVerified": True})
        self.session_store.save(user.to_storage())
        # Cached reads belong to whoever was logged in before
        self.client.clear_cache()
        logger.info(f"Logged in as {user.email}")
        return user

    def login_with_google(self, token: str, user_id: str) -> SessionUser:
        """
        Finish a Google sign-in.

        The OAuth callback hands over a token and user id; the profile is
        fetched with that token and persisted like a password login.
        """
        if not token or not isinstance(token, str):
            raise ValueError("Invalid authentication token received")
        if not user_id or not isinstance(user_id, str):
            raise ValueError("Invalid user ID received")

        data = self.client.get(
            f"/users/me/{user_id}",
            skip_cache=True,
            headers={"Authorization": f"Bearer {token}"},
        ).data
        if not data:
            raise PlagCheckError("No user data received from server")

        user = SessionUser.model_validate({
            **data,
            "_id": data.get("_id") or user_id,
            "email": data.get("email") or "",
            "name": data.get("name") or "User",
            "token": token,
            "isEmailVerified": True,
        })
        self.session_store.save(user.to_storage())
        self.client.clear_cache()
        logger.info(f"Google sign-in as {user.email}")
        return user

    def _update_session(self, **changes: Any) -> Optional[SessionUser]:
        stored = self.session_store.load()
        if not stored:
            return None
        user = SessionUser.model_validate({**stored, **changes})
        self.session_store.save(user.to_storage())
        return user

    def update_profile(self, info: Dict[str, Any]) -> Dict[str, Any]:
        """Save profile changes and refresh the stored user, token included."""
        data = self.client.put("/users/profile", json=info).data
        changes = {
            key: data.get(key)
            for key in ("name", "email", "token")
            if data.get(key) is not None
        }
        # Cleared profile fields come back as null; store them blank
        for key in ("university", "faculty"):
            if key in data:
                changes[key] = data[key] or ""
        self._update_session(**changes)
        return data

    def link_google(
        self,
        google_id: str,
        google_email: str,
        profile_picture: Optional[str] = None,
    ) -> Dict[str, Any]:
        payload = _clean({
            "googleId": google_id,
            "googleEmail": google_email,
            "profilePicture": profile_picture,
        })
        data = self.client.post("/users/link-google", json=payload).data
        current = self.session_store.load() or {}
        self._update_session(
            googleId=google_id,
            isEmailVerified=True,
            profilePicture=current.get("profilePicture") or profile_picture,
        )
        return data

    def unlink_google(self) -> Dict[str, Any]:
        data = self.client.post("/users/unlink-google").data
        self._update_session(googleId=None)
        return data

    def logout(self) -> None:
        self.session_store.clear()
        self.client.clear_cache()

    def current_user(self) -> Optional[SessionUser]:
        stored = self.session_store.load()
        return SessionUser.model_validate(stored) if stored else None

    def register(
        self,
        name: str,
        email: str,
        password: str,
        university: str = "",
        faculty: str = "",
    ) -> Dict[str, Any]:
        return self.client.post(
            "/users/register",
            json={
                "name": name,
                "email": email,
                "password": password,
                "university": university,
                "faculty": faculty,
            },
        ).data

    def verify_email(self, token: str, email: str) -> Dict[str, Any]:
        return self.client.get(
            "/users/verify-email", params={"token": token, "email": email}, skip_cache=True
        ).data

    def resend_verification(self, email: str) -> Dict[str, Any]:
        return self.client.post("/users/resend-verification", json={"email": email}).data

    def forgot_password(self, email: str) -> Dict[str, Any]:
        return self.client.post("/users/forgot-password", json={"email": email}).data

    def reset_password(self, token: str, email: str, password: str) -> Dict[str, Any]:
        return self.client.post(
            "/users/reset-password",
            json={"token": token, "email": email, "password": password},
        ).data


# Descriptions stored alongside default values
CONFIG_DESCRIPTIONS = {
    "maxPlagiarismPercentage": "Maximum allowed plagiarism percentage",
    "useAIDetection": "Enable AI-generated content detection",
    "aiThreshold": "Minimum confidence for AI to flag plagiarism",
    "preferredModel": "Preferred AI model for plagiarism detection",
}

AI_CONFIG_DEFAULTS = {
    "useAIDetection": True,
    "aiThreshold": 50,
    "preferredModel": "gpt-4o",
}


class ConfigService:
    """Backend detection settings."""

    def __init__(self, client: CachedApiClient):
        self.client = client

    def get(self, key: str, refresh: bool = False) -> Any:
        """Value of `key`, or None when the backend has no such setting."""
        body = self.client.get(f"/config/{key}", skip_cache=refresh).data
        if isinstance(body, dict):
            return body.get("value")
        return None

    def set(self, key: str, value: Any) -> Any:
        """Update `key`, creating it when the backend doesn't know it yet."""
        payload = {"value": value, "description": CONFIG_DESCRIPTIONS.get(key, "")}
        try:
            return self.client.put(f"/config/{key}", json=payload).data
        except HTTPStatusError as e:
            if e.status != 404:
                raise
            logger.info(f"Config '{key}' missing, creating it")
            return self.client.post(f"/config/{key}", json=payload).data

    def init(self) -> Any:
        """Create the backend's default settings plus the AI-detection ones."""
        result = self.client.post("/config/init").data
        for key, value in AI_CONFIG_DEFAULTS.items():
            try:
                self.client.get(f"/config/{key}", skip_cache=True)
            except HTTPStatusError:
                self.client.post(
                    f"/config/{key}",
                    json={"value": value, "description": CONFIG_DESCRIPTIONS[key]},
                )
        return result

    def load_detection_config(self) -> DetectionConfig:
        """All detection settings; AI ones fall back to defaults when unset."""
        values: Dict[str, Any] = {
            "maxPlagiarismPercentage": self.get("maxPlagiarismPercentage"),
        }
        for key in AI_CONFIG_DEFAULTS:
            try:
                value = self.get(key)
            except PlagCheckError as e:
                logger.info(f"Config '{key}' unavailable, using default: {e}")
                continue
            if value is not None:
                values[key] = value
        return DetectionConfig.model_validate(values)

    def save_detection_config(self, config: DetectionConfig) -> None:
        for key, value in config.model_dump(by_alias=True).items():
            if value is not None:
                self.set(key, value)


class NotificationService:
    def __init__(self, client: CachedApiClient):
        self.client = client

    def list(self, refresh: bool = False) -> List[Dict[str, Any]]:
        return self.client.get("/notifications", skip_cache=refresh).data or []

    def mark_all_read(self) -> Any:
        return self.client.put("/notifications/read-all").data

    def mark_read(self, notification_id: str) -> Any:
        return self.client.put(f"/notifications/{notification_id}/read").data


class ActivityService:
    def __init__(self, client: CachedApiClient):
        self.client = client

    def list(self, limit: Optional[int] = None, refresh: bool = False) -> List[Dict[str, Any]]:
        params = _clean({"limit": limit})
        return self.client.get("/activities", params=params, skip_cache=refresh).data or []
