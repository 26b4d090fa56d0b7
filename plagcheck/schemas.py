"""
Pydantic schemas for backend payloads and status endpoints
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, Optional


# ===== AUTH SCHEMAS =====

class SessionUser(BaseModel):
    """Logged-in user as persisted between runs"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    email: str
    name: str
    university: Optional[str] = ""
    faculty: Optional[str] = ""
    is_admin: Optional[bool] = Field(default=False, alias="isAdmin")
    token: str
    profile_picture: Optional[str] = Field(default=None, alias="profilePicture")
    is_email_verified: bool = Field(default=True, alias="isEmailVerified")
    google_id: Optional[str] = Field(default=None, alias="googleId")

    @field_validator("university", "faculty", mode="before")
    @classmethod
    def _blank_if_missing(cls, value: Any) -> str:
        # Backend sends null for profiles that never filled these in
        return value or ""

    @field_validator("is_admin", mode="before")
    @classmethod
    def _truthy_admin(cls, value: Any) -> bool:
        return bool(value)

    def to_storage(self) -> Dict[str, Any]:
        """Camel-cased dict in the shape the backend and web app use"""
        data = self.model_dump(by_alias=True)
        data["id"] = self.id
        return data


# ===== CONFIG SCHEMAS =====

class DetectionConfig(BaseModel):
    """Plagiarism-detection settings edited from the admin dashboard"""
    model_config = ConfigDict(populate_by_name=True)

    max_plagiarism_percentage: Optional[float] = Field(default=None, alias="maxPlagiarismPercentage")
    use_ai_detection: bool = Field(default=True, alias="useAIDetection")
    ai_threshold: float = Field(default=50, alias="aiThreshold")
    preferred_model: str = Field(default="gpt-4o", alias="preferredModel")


# ===== STATUS SCHEMAS =====

class BackendHealth(BaseModel):
    """Result of probing the backend /health endpoint"""
    status: str  # "up" or "down"
    data: Any = None
    message: Optional[str] = None
    error: Optional[str] = None


class CacheClearResult(BaseModel):
    prefix: Optional[str] = None
    cleared: int
