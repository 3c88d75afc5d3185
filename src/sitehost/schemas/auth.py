from pydantic import BaseModel, Field, ValidationInfo, field_validator
from zxcvbn import zxcvbn

from src.sitehost.core.security import validate_username

# Minimum zxcvbn score (0-4 scale): 3 = "safely unguessable"
MIN_PASSWORD_SCORE = 3


class LoginRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=8, max_length=100)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=64)
    password: str = Field(min_length=8, max_length=100)

    @field_validator("username")
    @classmethod
    def validate_username_format(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str, info: ValidationInfo) -> str:
        """Validate password strength using zxcvbn entropy estimation."""
        user_inputs = [info.data["username"]] if "username" in info.data else []
        result = zxcvbn(v, user_inputs=user_inputs)
        if result["score"] >= MIN_PASSWORD_SCORE:
            return v

        feedback = result.get("feedback", {})
        warning = feedback.get("warning", "")
        suggestions = feedback.get("suggestions", [])
        if warning:
            raise ValueError(f"Weak password: {warning}")
        if suggestions:
            raise ValueError(f"Weak password: {suggestions[0]}")
        raise ValueError("Password is too weak. Use a longer password with a mix of characters.")
