from pydantic import BaseModel, EmailStr, Field, field_validator


class LoginUser(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.strip().lower()


class AdminLogin(LoginUser):
    adminCode: str = Field(min_length=4)
