from pydantic import BaseModel, Field, field_validator

from app.core.security import MAX_PASSWORD_BYTES


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=MAX_PASSWORD_BYTES)

    @field_validator("new_password")
    @classmethod
    def fits_bcrypt_input(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"must be at most {MAX_PASSWORD_BYTES} bytes when UTF-8 encoded")
        return value


class AdminOut(BaseModel):
    id: int
    username: str
    email: str | None = None


class LoginOut(BaseModel):
    token: str
    token_type: str = "bearer"
    admin: AdminOut


class UploadOut(BaseModel):
    url: str
    filename: str
    mimetype: str
    size: int
