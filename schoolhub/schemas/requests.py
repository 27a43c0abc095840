from pydantic import BaseModel, EmailStr, Field


class GateRequestIn(BaseModel):
    recipient: EmailStr = Field(
        ..., description="Address the verification code is sent to", max_length=255
    )


class GateSubmitIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=32, description="The code received")


class SchoolCreateIn(BaseModel):
    name: str = Field(..., min_length=2, description="School name")
    address: str = Field(..., min_length=5)
    city: str = Field(..., min_length=2)
    state: str = Field(..., min_length=2)
    contact: str = Field(..., pattern=r"^\d{10,15}$", description="10-15 digits")
    email_id: EmailStr
