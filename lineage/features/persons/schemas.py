"""
Pydantic schemas for persons.
"""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class PersonBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field("", max_length=100)
    gender: Optional[str] = Field(None, max_length=20, description="male, female, other")
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = Field(None, description="Leave empty for living persons")
    biography: Optional[str] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.date_of_birth and self.date_of_death and self.date_of_death < self.date_of_birth:
            raise ValueError("date_of_death must not be before date_of_birth")
        return self


class PersonCreate(PersonBase):
    pass


class PersonUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    gender: Optional[str] = Field(None, max_length=20)
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = None
    biography: Optional[str] = None


class PersonResponse(PersonBase):
    id: str
    tree_id: str
    is_living: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
