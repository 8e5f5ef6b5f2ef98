import re

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

_PASSWORD_CLASSES = re.compile(r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


class RegisterUser(BaseModel):
    firstName: str = Field(min_length=1, max_length=50)
    lastName: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str
    confirmPassword: str
    agreeToTerms: bool = False

    @field_validator("firstName", "lastName", mode="before")
    @classmethod
    def strip_names(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("password")
    @classmethod
    def strong_password(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters long")
        if not _PASSWORD_CLASSES.match(value):
            raise ValueError(
                "Password must contain at least one uppercase letter, "
                "one lowercase letter, and one number"
            )
        return value

    @model_validator(mode="after")
    def passwords_and_terms(self):
        if self.password != self.confirmPassword:
            raise ValueError("Passwords do not match")
        if not self.agreeToTerms:
            raise ValueError("You must agree to the terms and conditions")
        return self
